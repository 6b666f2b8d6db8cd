"""Wallet service — registration, lookup, deletion and storage stats."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select

from cardano_wallet.config.settings import Network
from cardano_wallet.engine.models import UTXO, SyncCheckpoint, Transaction, Wallet
from cardano_wallet.errors.definitions import (
    ErrMissingAddress,
    ErrWalletDuplicate,
    ErrWalletNotFound,
)
from cardano_wallet.errors.indexer_errors import ConfigurationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cardano_wallet.engine.client import WalletEngine

logger = logging.getLogger(__name__)


class WalletService:
    """Business logic for the wallet registry.

    Wallets arrive with their addresses already derived; this service only
    stores the identity and purges a wallet's ledger data on deletion.
    """

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def register_wallet(
        self,
        wallet_id: str,
        address: str,
        *,
        name: str = "",
        network: str = Network.MAINNET,
        stake_address: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> Wallet:
        """Register a new wallet.

        Args:
            wallet_id: Caller-chosen unique ID.
            address: Base payment address.
            name: Display name.
            network: ``mainnet`` or ``preprod``.
            stake_address: Reward address; empty for enterprise wallets.
            metadata: Optional metadata.

        Returns:
            The persisted Wallet model.

        Raises:
            WalletError: If the address is missing or the ID is taken.
            ConfigurationError: If the network is not supported.
        """
        if not address:
            raise ErrMissingAddress
        try:
            network = Network(network)
        except ValueError as exc:
            raise ConfigurationError(f"unsupported network: {network}") from exc

        if await self.get_wallet(wallet_id) is not None:
            raise ErrWalletDuplicate

        wallet = Wallet(
            id=wallet_id,
            name=name,
            network=network.value,
            address=address,
            stake_address=stake_address,
        )
        if metadata:
            wallet.metadata_ = metadata

        async with self._engine.datastore.session() as session:
            session.add(wallet)
            await session.commit()
            await session.refresh(wallet)

        logger.info("Registered wallet %s on %s", wallet_id, network)
        return wallet

    async def get_wallet(self, wallet_id: str) -> Wallet | None:
        """Look up a wallet by ID."""
        async with self._engine.datastore.session() as session:
            return await session.get(Wallet, wallet_id)

    async def require_wallet(self, wallet_id: str) -> Wallet:
        """Look up a wallet by ID.

        Raises:
            WalletError: If the wallet does not exist.
        """
        wallet = await self.get_wallet(wallet_id)
        if wallet is None:
            raise ErrWalletNotFound
        return wallet

    async def get_wallets(self, *, network: str | None = None) -> list[Wallet]:
        """List registered wallets, optionally for one network."""
        stmt = select(Wallet).order_by(Wallet.created_at, Wallet.id)
        if network is not None:
            stmt = stmt.where(Wallet.network == network)
        async with self._engine.datastore.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_wallets(self) -> int:
        async with self._engine.datastore.session() as session:
            result = await session.execute(select(func.count(Wallet.id)))
            return result.scalar_one()

    async def delete_wallet(self, wallet_id: str) -> None:
        """Delete a wallet and purge its transactions, UTXOs and checkpoint.

        Raises:
            WalletError: If the wallet does not exist.
        """
        async with self._engine.datastore.transaction() as session:
            wallet = await session.get(Wallet, wallet_id)
            if wallet is None:
                raise ErrWalletNotFound
            await self._purge(session, wallet_id)
            await session.delete(wallet)
        logger.info("Deleted wallet %s and its ledger data", wallet_id)

    async def clear_ledger(self, wallet_id: str) -> None:
        """Purge a wallet's transactions, UTXOs and checkpoint, keeping the wallet."""
        async with self._engine.datastore.transaction() as session:
            await self._purge(session, wallet_id)

    async def get_stats(self, wallet_id: str) -> dict[str, int]:
        """Storage statistics for one wallet."""
        engine = self._engine
        return {
            "transactions": await engine.transaction_service.count_transactions(wallet_id),
            "utxos": await engine.utxo_service.count_utxos(wallet_id),
            "unspent_utxos": await engine.utxo_service.count_utxos(wallet_id, unspent_only=True),
            "last_sync_block": await engine.checkpoint_service.get_last_sync_block(wallet_id),
        }

    @staticmethod
    async def _purge(session: AsyncSession, wallet_id: str) -> None:
        await session.execute(delete(UTXO).where(UTXO.wallet_id == wallet_id))
        await session.execute(delete(Transaction).where(Transaction.wallet_id == wallet_id))
        await session.execute(delete(SyncCheckpoint).where(SyncCheckpoint.wallet_id == wallet_id))
