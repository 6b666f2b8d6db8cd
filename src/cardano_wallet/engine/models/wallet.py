"""Wallet model — a registered wallet identity."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from cardano_wallet.engine.models.base import Base, MetadataMixin, TimestampMixin


class Wallet(Base, TimestampMixin, MetadataMixin):
    """A wallet known to the backend.

    Key derivation happens elsewhere; a wallet is registered with its
    already-derived base address and (optional) stake address.
    """

    __tablename__ = "wallets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Wallet ID")
    name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    network: Mapped[str] = mapped_column(
        String(16), nullable=False, default="mainnet", comment="mainnet | preprod"
    )
    address: Mapped[str] = mapped_column(
        String(128), nullable=False, comment="Base payment address"
    )
    stake_address: Mapped[str] = mapped_column(
        String(128), nullable=False, default="", comment="Reward (stake) address, may be empty"
    )

    def __repr__(self) -> str:
        return f"<Wallet id={self.id} network={self.network}>"
