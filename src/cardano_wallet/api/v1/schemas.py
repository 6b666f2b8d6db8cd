"""V1 API request/response Pydantic schemas.

These are the *API-layer* schemas that define the HTTP contract. They do
NOT inherit from SQLAlchemy models; the endpoint code maps between ORM
objects and these schemas. Lovelace and asset quantities are decimal
strings so JavaScript clients never lose precision.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import Any

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error body: ``{"code": "...", "message": "..."}``."""

    code: str
    message: str


class AmountResponse(BaseModel):
    unit: str
    quantity: str


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class WalletCreateRequest(BaseModel):
    """POST /api/v1/wallets — register a wallet with its derived addresses."""

    id: str = Field(..., min_length=1, max_length=64)
    address: str
    name: str = ""
    network: str = "mainnet"
    stake_address: str = ""
    metadata: dict[str, Any] | None = None


class WalletResponse(BaseModel):
    """Serialised wallet for API responses."""

    id: str
    name: str = ""
    network: str
    address: str
    stake_address: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AssetHoldingResponse(BaseModel):
    unit: str
    policy_id: str
    asset_name: str
    quantity: str
    display_name: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class WalletStateResponse(BaseModel):
    """Indexer-reported balance and native assets."""

    status: str
    balance: str
    assets: list[AssetHoldingResponse] = Field(default_factory=list)


class WalletStatsResponse(BaseModel):
    transactions: int
    utxos: int
    unspent_utxos: int
    last_sync_block: int


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    """Serialised transaction for API responses."""

    model_config = {"from_attributes": True}

    hash: str
    block: str
    block_height: int
    block_time: int
    slot: int = 0
    index: int = 0
    fees: str = "0"
    deposit: str = "0"
    size: int = 0
    output_amount: list[AmountResponse] = Field(default_factory=list)
    utxo_count: int = 0
    withdrawal_count: int = 0
    asset_mint_or_burn_count: int = 0
    redeemer_count: int = 0
    valid_contract: bool = True
    inputs: list[dict[str, Any]] = Field(default_factory=list)
    outputs: list[dict[str, Any]] = Field(default_factory=list)
    last_synced: datetime | None = None


class UTXOResponse(BaseModel):
    """Serialised UTXO for API responses."""

    model_config = {"from_attributes": True}

    id: str
    tx_hash: str
    output_index: int
    address: str
    amount: list[AmountResponse] = Field(default_factory=list)
    block: str = ""
    data_hash: str | None = None
    inline_datum: str | None = None
    reference_script_hash: str | None = None
    is_spent: bool = False
    spent_in_tx: str | None = None
    is_external: bool = False
    origin: str = "output"
    last_synced: datetime | None = None


class BalanceResponse(BaseModel):
    """Balance computed from the wallet's own unspent UTXOs."""

    lovelace: str
    assets: dict[str, str] = Field(default_factory=dict)


class WalletDataResponse(BaseModel):
    """Stored ledger of a wallet plus its freshness."""

    transactions: list[TransactionResponse] = Field(default_factory=list)
    utxos: list[UTXOResponse] = Field(default_factory=list)
    last_sync: datetime | None = None
    is_stale: bool = True


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class SyncResultResponse(BaseModel):
    """Outcome of a sync request; counts only."""

    wallet_id: str
    success: bool
    new_transactions: int = 0
    utxos_created: int = 0
    utxos_updated: int = 0
    skipped_transactions: int = 0
    last_sync_block: int = 0
    duration: float = 0.0
    error: str | None = None
    error_code: str | None = None


class SyncStatusResponse(BaseModel):
    """Coordinator state of one wallet."""

    model_config = {"from_attributes": True}

    wallet_id: str
    state: str
    last_sync_block: int = 0
    last_full_sync: datetime | None = None
    cooldown_remaining: float = 0.0
    is_stale: bool = True
    is_syncing: bool = False
    time_since_last_sync: float | None = None
