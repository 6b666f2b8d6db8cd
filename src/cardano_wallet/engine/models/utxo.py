"""UTXO model — outputs produced or consumed by a wallet's transactions."""

from __future__ import annotations

import enum

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cardano_wallet.engine.models.base import Base, TimestampMixin, WalletScopedMixin


class UTXOOrigin(enum.StrEnum):
    """How a UTXO record came to exist.

    Only ``OUTPUT`` records carry complete data; the other two were
    synthesized from an input reference and await completion.
    """

    OUTPUT = "output"
    HISTORICAL = "historical"
    EXTERNAL_INPUT = "external_input"


class UTXO(Base, WalletScopedMixin, TimestampMixin):
    """A transaction output tracked per wallet.

    Identified by ``(wallet_id, tx_hash, output_index)``; ``id`` renders the
    ``tx_hash:output_index`` form used by the API.
    """

    __tablename__ = "utxos"

    tx_hash: Mapped[str] = mapped_column(
        String(64), primary_key=True, comment="Producing transaction hash"
    )
    output_index: Mapped[int] = mapped_column(Integer, primary_key=True)
    address: Mapped[str] = mapped_column(String(128), nullable=False, default="", index=True)
    amount: Mapped[list[dict[str, str]]] = mapped_column(
        JSON, nullable=False, default=list, comment="[{unit, quantity}] with decimal strings"
    )
    block: Mapped[str] = mapped_column(
        String(64), nullable=False, default="", comment="Block hash, empty when unknown"
    )
    data_hash: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)
    inline_datum: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    reference_script_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True, default=None
    )
    is_spent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    spent_in_tx: Mapped[str | None] = mapped_column(
        String(64), nullable=True, default=None, comment="Spending transaction hash"
    )
    is_external: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    origin: Mapped[str] = mapped_column(
        String(16), nullable=False, default=UTXOOrigin.OUTPUT.value,
        comment="output | historical | external_input",
    )
    @property
    def id(self) -> str:
        return f"{self.tx_hash}:{self.output_index}"

    @property
    def is_complete(self) -> bool:
        """Whether the record carries full output data."""
        return self.origin == UTXOOrigin.OUTPUT and bool(self.block)

    def __repr__(self) -> str:
        return f"<Utxo {self.tx_hash[:16]}:{self.output_index} spent={self.is_spent}>"
