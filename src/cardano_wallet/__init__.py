"""py-cardano-wallet: Cardano wallet backend with incremental ledger sync."""

__version__ = "0.1.0"
