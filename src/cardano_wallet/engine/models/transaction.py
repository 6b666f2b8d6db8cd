"""Transaction model — confirmed transactions relevant to a wallet."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from cardano_wallet.engine.models.base import Base, TimestampMixin, WalletScopedMixin


class Transaction(Base, WalletScopedMixin, TimestampMixin):
    """A transaction fetched from the indexer.

    Stored once per ``(wallet_id, hash)`` and never rewritten afterwards
    apart from the ``last_synced`` stamp. Inputs and outputs are kept in
    indexer order as JSON lists.
    """

    __tablename__ = "transactions"

    hash: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Transaction hash")
    block: Mapped[str] = mapped_column(String(64), nullable=False, default="", comment="Block hash")
    block_height: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, index=True, comment="Block height"
    )
    block_time: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, comment="Block time (unix seconds)"
    )
    slot: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    index: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Position within the block"
    )
    fees: Mapped[str] = mapped_column(
        String(32), nullable=False, default="0", comment="Fee in lovelace (decimal string)"
    )
    deposit: Mapped[str] = mapped_column(
        String(32), nullable=False, default="0", comment="Deposit in lovelace (decimal string)"
    )
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_amount: Mapped[list[dict[str, str]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    utxo_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    withdrawal_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    asset_mint_or_burn_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    redeemer_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid_contract: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    inputs: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    outputs: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    def __repr__(self) -> str:
        return f"<Transaction hash={self.hash[:16]}... height={self.block_height}>"
