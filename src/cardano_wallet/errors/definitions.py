"""Pre-defined error instances shared across the engine and API."""

from __future__ import annotations

from cardano_wallet.errors.wallet_errors import WalletError

# -- Not Found -------------------------------------------------------------

ErrWalletNotFound = WalletError("wallet not found", status_code=404, code="wallet-not-found")
ErrTransactionNotFound = WalletError(
    "transaction not found", status_code=404, code="transaction-not-found"
)
ErrUTXONotFound = WalletError("utxo not found", status_code=404, code="utxo-not-found")

# -- Validation ------------------------------------------------------------

ErrWalletDuplicate = WalletError("wallet already exists", status_code=409, code="wallet-duplicate")
ErrMissingAddress = WalletError(
    "missing required field: address", status_code=400, code="missing-address"
)

# -- Sync ------------------------------------------------------------------

ErrSyncInProgress = WalletError(
    "sync already in progress for this wallet", status_code=409, code="sync-in-progress"
)
ErrCooldownActive = WalletError("sync cooldown in effect", status_code=429, code="sync-cooldown")
ErrSyncTimeout = WalletError("sync timed out", status_code=504, code="sync-timeout")

# -- Funds -----------------------------------------------------------------

ErrNotEnoughFunds = WalletError("not enough funds", status_code=422, code="not-enough-funds")

# -- Server ----------------------------------------------------------------

ErrEngineUnavailable = WalletError(
    "wallet engine is not running", status_code=503, code="engine-unavailable"
)
