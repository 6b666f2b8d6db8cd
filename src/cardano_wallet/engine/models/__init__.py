"""Engine data models (SQLAlchemy ORM).

Import :data:`ALL_MODELS` for table creation.
"""

from cardano_wallet.engine.models.base import Base, MetadataMixin, TimestampMixin
from cardano_wallet.engine.models.checkpoint import SyncCheckpoint
from cardano_wallet.engine.models.transaction import Transaction
from cardano_wallet.engine.models.utxo import UTXO, UTXOOrigin
from cardano_wallet.engine.models.wallet import Wallet

ALL_MODELS: list[type[Base]] = [
    Wallet,
    Transaction,
    UTXO,
    SyncCheckpoint,
]

__all__ = [
    "ALL_MODELS",
    "UTXO",
    "Base",
    "MetadataMixin",
    "SyncCheckpoint",
    "TimestampMixin",
    "Transaction",
    "UTXOOrigin",
    "Wallet",
]
