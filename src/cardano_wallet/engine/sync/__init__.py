"""Ledger sync — address resolution, fetching, UTXO reconciliation, coordination."""

from cardano_wallet.engine.sync.address_resolver import AddressResolver
from cardano_wallet.engine.sync.coordinator import SyncCoordinator
from cardano_wallet.engine.sync.results import (
    SyncOptions,
    SyncResult,
    SyncState,
    SyncStatus,
    WalletData,
)
from cardano_wallet.engine.sync.transaction_fetcher import FetchOutcome, TransactionFetcher
from cardano_wallet.engine.sync.utxo_builder import (
    BuildResult,
    SpendConflict,
    UTXOBuilder,
    UTXOEntry,
)

__all__ = [
    "AddressResolver",
    "BuildResult",
    "FetchOutcome",
    "SpendConflict",
    "SyncCoordinator",
    "SyncOptions",
    "SyncResult",
    "SyncState",
    "SyncStatus",
    "TransactionFetcher",
    "UTXOBuilder",
    "UTXOEntry",
    "WalletData",
]
