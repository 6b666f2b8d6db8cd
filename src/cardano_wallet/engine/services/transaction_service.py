"""Transaction service — stored transaction queries and staging."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from cardano_wallet.engine.models.transaction import Transaction

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from cardano_wallet.chain.blockfrost.models import TransactionDetails
    from cardano_wallet.engine.client import WalletEngine


def to_record(wallet_id: str, tx: TransactionDetails) -> Transaction:
    """Build a Transaction row from fetched details."""
    return Transaction(
        wallet_id=wallet_id,
        hash=tx.hash,
        block=tx.block,
        block_height=tx.block_height,
        block_time=tx.block_time,
        slot=tx.slot,
        index=tx.index,
        fees=str(tx.fees),
        deposit=str(tx.deposit),
        size=tx.size,
        output_amount=[a.to_dict() for a in tx.output_amount],
        utxo_count=tx.utxo_count,
        withdrawal_count=tx.withdrawal_count,
        asset_mint_or_burn_count=tx.asset_mint_or_burn_count,
        redeemer_count=tx.redeemer_count,
        valid_contract=tx.valid_contract,
        inputs=[i.to_dict() for i in tx.inputs],
        outputs=[o.to_dict() for o in tx.outputs],
    )


class TransactionService:
    """Business logic for a wallet's stored transactions."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_transaction(self, wallet_id: str, tx_hash: str) -> Transaction | None:
        """Look up one stored transaction."""
        async with self._engine.datastore.session() as session:
            return await session.get(Transaction, (wallet_id, tx_hash))

    async def get_transactions(
        self,
        wallet_id: str,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Transaction]:
        """List a wallet's transactions, newest first.

        Args:
            wallet_id: Owning wallet.
            limit: Maximum number of rows, or all.
            offset: Rows to skip.
        """
        stmt = (
            select(Transaction)
            .where(Transaction.wallet_id == wallet_id)
            .order_by(Transaction.block_height.desc(), Transaction.index.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._engine.datastore.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_transaction_hashes(self, wallet_id: str) -> set[str]:
        """Hashes of every transaction already stored for the wallet."""
        async with self._engine.datastore.session() as session:
            result = await session.execute(
                select(Transaction.hash).where(Transaction.wallet_id == wallet_id)
            )
            return set(result.scalars().all())

    async def count_transactions(self, wallet_id: str | None = None) -> int:
        stmt = select(func.count(Transaction.hash))
        if wallet_id is not None:
            stmt = stmt.where(Transaction.wallet_id == wallet_id)
        async with self._engine.datastore.session() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    async def stage_transactions(
        self,
        session: AsyncSession,
        wallet_id: str,
        transactions: Iterable[TransactionDetails],
        *,
        synced_at: datetime,
    ) -> int:
        """Add fetched transactions to *session* without committing.

        A transaction already stored only gets its ``last_synced`` stamp
        refreshed.

        Returns:
            Number of newly added rows.
        """
        added = 0
        for tx in transactions:
            existing = await session.get(Transaction, (wallet_id, tx.hash))
            if existing is not None:
                existing.last_synced = synced_at
                continue
            record = to_record(wallet_id, tx)
            record.last_synced = synced_at
            session.add(record)
            added += 1
        return added
