"""UTXO service — queries, balances, greedy selection, staging and completion."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from cardano_wallet.chain.blockfrost.models import LOVELACE, Amount
from cardano_wallet.engine.models.utxo import UTXO, UTXOOrigin
from cardano_wallet.engine.sync.address_resolver import AddressResolver
from cardano_wallet.engine.sync.utxo_builder import UTXOEntry
from cardano_wallet.errors.definitions import ErrNotEnoughFunds, ErrUTXONotFound
from cardano_wallet.errors.indexer_errors import ConfigurationError
from cardano_wallet.errors.wallet_errors import WalletError

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from cardano_wallet.engine.client import WalletEngine
    from cardano_wallet.engine.models import Wallet

logger = logging.getLogger(__name__)


def to_entry(row: UTXO) -> UTXOEntry:
    """Convert a stored row into its value form."""
    return UTXOEntry(
        tx_hash=row.tx_hash,
        output_index=row.output_index,
        address=row.address,
        amount=tuple(Amount.from_dict(a) for a in row.amount or []),
        block=row.block,
        data_hash=row.data_hash,
        inline_datum=row.inline_datum,
        reference_script_hash=row.reference_script_hash,
        is_spent=row.is_spent,
        spent_in_tx=row.spent_in_tx,
        is_external=row.is_external,
        origin=UTXOOrigin(row.origin),
    )


def apply_entry(row: UTXO, entry: UTXOEntry) -> None:
    """Copy every mutable field of *entry* onto *row*."""
    row.address = entry.address
    row.amount = [a.to_dict() for a in entry.amount]
    row.block = entry.block
    row.data_hash = entry.data_hash
    row.inline_datum = entry.inline_datum
    row.reference_script_hash = entry.reference_script_hash
    row.is_spent = entry.is_spent
    row.spent_in_tx = entry.spent_in_tx if entry.is_spent else None
    row.is_external = entry.is_external
    row.origin = entry.origin.value


def lovelace_of_row(row: UTXO) -> int:
    return sum(int(a["quantity"]) for a in row.amount or [] if a["unit"] == LOVELACE)


class UTXOService:
    """Business logic for a wallet's UTXO records.

    Quantities are stored as decimal strings and summed as Python ints.
    """

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_utxo(self, wallet_id: str, tx_hash: str, output_index: int) -> UTXO | None:
        """Look up a UTXO by its ``(tx_hash, output_index)`` key."""
        async with self._engine.datastore.session() as session:
            return await session.get(UTXO, (wallet_id, tx_hash, output_index))

    async def get_utxos(
        self,
        wallet_id: str,
        *,
        unspent_only: bool = False,
        spent_only: bool = False,
        include_external: bool = True,
    ) -> list[UTXO]:
        """Query a wallet's UTXOs with optional filters.

        Args:
            wallet_id: Owning wallet.
            unspent_only: Only unspent records.
            spent_only: Only spent records.
            include_external: Include records at addresses the wallet doesn't own.
        """
        stmt = select(UTXO).where(UTXO.wallet_id == wallet_id)
        if unspent_only:
            stmt = stmt.where(UTXO.is_spent.is_(False))
        if spent_only:
            stmt = stmt.where(UTXO.is_spent.is_(True))
        if not include_external:
            stmt = stmt.where(UTXO.is_external.is_(False))
        stmt = stmt.order_by(UTXO.tx_hash, UTXO.output_index)

        async with self._engine.datastore.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_utxos(self, wallet_id: str | None = None, *, unspent_only: bool = False) -> int:
        stmt = select(func.count()).select_from(UTXO)
        if wallet_id is not None:
            stmt = stmt.where(UTXO.wallet_id == wallet_id)
        if unspent_only:
            stmt = stmt.where(UTXO.is_spent.is_(False))
        async with self._engine.datastore.session() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def get_balance(self, wallet_id: str) -> int:
        """Lovelace held in the wallet's own unspent UTXOs."""
        utxos = await self.get_utxos(wallet_id, unspent_only=True, include_external=False)
        return sum(lovelace_of_row(u) for u in utxos)

    async def get_asset_balances(self, wallet_id: str) -> dict[str, int]:
        """Native-asset quantities held in the wallet's own unspent UTXOs."""
        totals: dict[str, int] = defaultdict(int)
        for utxo in await self.get_utxos(wallet_id, unspent_only=True, include_external=False):
            for amount in utxo.amount or []:
                if amount["unit"] != LOVELACE:
                    totals[amount["unit"]] += int(amount["quantity"])
        return dict(totals)

    async def select_utxos(self, wallet_id: str, *, required_lovelace: int) -> list[UTXO]:
        """Select unspent UTXOs to cover a lovelace amount.

        Uses a simple greedy approach — largest UTXOs first.

        Raises:
            WalletError: If the wallet can't cover the amount.
        """
        utxos = await self.get_utxos(wallet_id, unspent_only=True, include_external=False)
        utxos.sort(key=lovelace_of_row, reverse=True)

        selected: list[UTXO] = []
        total = 0
        for utxo in utxos:
            selected.append(utxo)
            total += lovelace_of_row(utxo)
            if total >= required_lovelace:
                return selected

        raise ErrNotEnoughFunds

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    async def load_entries(self, session: AsyncSession, wallet_id: str) -> list[UTXOEntry]:
        """Load the wallet's UTXO set in value form."""
        result = await session.execute(select(UTXO).where(UTXO.wallet_id == wallet_id))
        return [to_entry(row) for row in result.scalars().all()]

    async def stage_utxos(
        self,
        session: AsyncSession,
        wallet_id: str,
        entries: Iterable[UTXOEntry],
        *,
        synced_at: datetime,
    ) -> int:
        """Upsert *entries* into *session* without committing.

        Returns:
            Number of rows written.
        """
        written = 0
        for entry in entries:
            row = await session.get(UTXO, (wallet_id, entry.tx_hash, entry.output_index))
            if row is None:
                row = UTXO(
                    wallet_id=wallet_id, tx_hash=entry.tx_hash, output_index=entry.output_index
                )
                session.add(row)
            apply_entry(row, entry)
            row.last_synced = synced_at
            written += 1
        return written

    # ------------------------------------------------------------------
    # On-demand completion
    # ------------------------------------------------------------------

    async def complete_utxo(self, wallet: Wallet, tx_hash: str, output_index: int) -> UTXO:
        """Return a UTXO, fetching its producing transaction if the record is incomplete.

        The spent state of an existing record is kept. If the indexer can't
        provide the output, the stored record is returned unchanged.

        Raises:
            WalletError: If no record exists and none could be fetched.
            ConfigurationError: If the indexer credential is missing or rejected.
        """
        stored = await self.get_utxo(wallet.id, tx_hash, output_index)
        if stored is not None and stored.is_complete:
            return stored

        metrics = self._engine.metrics
        if metrics is None:
            return await self._complete(wallet, tx_hash, output_index, stored)
        with metrics.track_utxo_completion():
            return await self._complete(wallet, tx_hash, output_index, stored)

    async def _complete(
        self, wallet: Wallet, tx_hash: str, output_index: int, stored: UTXO | None
    ) -> UTXO:
        indexer = self._engine.indexer(wallet.network)
        try:
            summary, utxos, owned = await asyncio.gather(
                indexer.get_transaction(tx_hash),
                indexer.get_transaction_utxos(tx_hash),
                AddressResolver(indexer).resolve_wallet_addresses(wallet),
            )
        except ConfigurationError:
            raise
        except WalletError as exc:
            logger.warning(
                "Failed to complete utxo %s:%d: %s", tx_hash, output_index, exc.message
            )
            if stored is None:
                raise ErrUTXONotFound from exc
            return stored

        output = utxos.output_at(output_index)
        if output is None:
            if stored is None:
                raise ErrUTXONotFound
            return stored

        async with self._engine.datastore.session() as session:
            row = await session.get(UTXO, (wallet.id, tx_hash, output_index))
            if row is None:
                row = UTXO(wallet_id=wallet.id, tx_hash=tx_hash, output_index=output_index)
                row.is_spent = False
                row.spent_in_tx = None
                session.add(row)
            row.address = output.address
            row.amount = [a.to_dict() for a in output.amount]
            row.block = summary.block
            row.data_hash = output.data_hash
            row.inline_datum = output.inline_datum
            row.reference_script_hash = output.reference_script_hash
            row.is_external = output.address not in owned and output.address != wallet.address
            row.origin = UTXOOrigin.OUTPUT.value
            await session.commit()
            await session.refresh(row)

        logger.debug("completed utxo %s:%d", tx_hash, output_index)
        return row
