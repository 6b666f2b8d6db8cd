"""Checkpoint service — the per-wallet sync watermark."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete

from cardano_wallet.engine.models.checkpoint import SyncCheckpoint

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cardano_wallet.engine.client import WalletEngine


def as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way back; treat naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class CheckpointService:
    """Read and advance sync checkpoints.

    ``last_sync_block`` never moves backwards except through :meth:`clear`.
    """

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    async def get_checkpoint(self, wallet_id: str) -> SyncCheckpoint | None:
        async with self._engine.datastore.session() as session:
            return await session.get(SyncCheckpoint, wallet_id)

    async def get_last_sync_block(self, wallet_id: str) -> int:
        checkpoint = await self.get_checkpoint(wallet_id)
        return checkpoint.last_sync_block if checkpoint is not None else 0

    async def get_age(self, wallet_id: str, *, now: datetime | None = None) -> float | None:
        """Seconds since the last successful sync, or ``None`` if never synced."""
        checkpoint = await self.get_checkpoint(wallet_id)
        if checkpoint is None or checkpoint.last_full_sync is None:
            return None
        now = now or datetime.now(UTC)
        return (now - as_utc(checkpoint.last_full_sync)).total_seconds()

    async def stage_advance(
        self,
        session: AsyncSession,
        wallet_id: str,
        block_height: int,
        *,
        synced_at: datetime,
    ) -> SyncCheckpoint:
        """Advance the watermark inside *session* without committing.

        Args:
            session: Session of the surrounding sync write.
            wallet_id: Wallet being synced.
            block_height: Candidate watermark; lower values are ignored.
            synced_at: Completion time of the sync.
        """
        checkpoint = await session.get(SyncCheckpoint, wallet_id)
        if checkpoint is None:
            checkpoint = SyncCheckpoint(wallet_id=wallet_id, last_sync_block=0)
            session.add(checkpoint)
        checkpoint.last_sync_block = max(checkpoint.last_sync_block or 0, block_height)
        checkpoint.last_full_sync = synced_at
        return checkpoint

    async def clear(self, wallet_id: str) -> None:
        """Forget the wallet's watermark so the next sync starts from genesis."""
        async with self._engine.datastore.session() as session:
            await session.execute(
                delete(SyncCheckpoint).where(SyncCheckpoint.wallet_id == wallet_id)
            )
            await session.commit()
