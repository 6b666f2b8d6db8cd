"""Sync checkpoint model — per-wallet watermark."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from cardano_wallet.engine.models.base import Base, TimestampMixin


class SyncCheckpoint(Base, TimestampMixin):
    """Highest block height incorporated into a wallet's local ledger."""

    __tablename__ = "sync_checkpoints"

    wallet_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_sync_block: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_full_sync: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    def __repr__(self) -> str:
        return f"<SyncCheckpoint wallet={self.wallet_id} block={self.last_sync_block}>"
