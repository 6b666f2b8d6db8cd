"""Indexer and ledger reconciliation errors."""

from __future__ import annotations

from cardano_wallet.errors.wallet_errors import WalletError


class IndexerError(WalletError):
    """Non-2xx (other than 404) response or transport failure from the indexer.

    ``indexer_status`` is the HTTP status returned by the indexer, or 0 when
    the request never got a response.
    """

    def __init__(self, message: str, *, indexer_status: int = 0, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="indexer-error")
        self.indexer_status = indexer_status


class ConfigurationError(WalletError):
    """Missing or rejected indexer credential, or an unsupported network.

    Recoverable by the user (configure a key), never by retrying.
    """

    def __init__(self, message: str, *, status_code: int = 424) -> None:
        super().__init__(message, status_code=status_code, code="configuration-error")


class ConflictingSpendError(WalletError):
    """A UTXO was observed as spent by two different transactions."""

    def __init__(self, utxo_key: str, first_spender: str, second_spender: str) -> None:
        super().__init__(
            f"utxo {utxo_key} spent by {first_spender} and {second_spender}",
            status_code=409,
            code="conflicting-spend",
        )
        self.utxo_key = utxo_key
        self.first_spender = first_spender
        self.second_spender = second_spender
