"""Sync request options, results and per-wallet state."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - used in dataclass annotations
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cardano_wallet.engine.models import UTXO, Transaction


class SyncState(enum.StrEnum):
    """Coordinator state of one wallet."""

    IDLE = "idle"
    SYNCING = "syncing"
    COOLDOWN = "cooldown"


@dataclass(frozen=True)
class SyncOptions:
    """Options for a single sync request.

    Attributes:
        force_full: Ignore cooldown and staleness and always hit the indexer.
        max_age: Seconds a previous sync stays fresh; ``None`` uses the
            configured default.
    """

    force_full: bool = False
    max_age: float | None = None


@dataclass
class SyncResult:
    """Structured outcome of a sync request. Never raised, always returned."""

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
    transactions: list[Transaction] = field(default_factory=list)
    utxos: list[UTXO] = field(default_factory=list)

    @classmethod
    def failure(
        cls, wallet_id: str, error: str, error_code: str, *, duration: float = 0.0
    ) -> SyncResult:
        return cls(
            wallet_id=wallet_id,
            success=False,
            error=error,
            error_code=error_code,
            duration=duration,
        )

    def summary(self) -> dict[str, Any]:
        """Counts and outcome without the record lists."""
        return {
            "wallet_id": self.wallet_id,
            "success": self.success,
            "new_transactions": self.new_transactions,
            "utxos_created": self.utxos_created,
            "utxos_updated": self.utxos_updated,
            "skipped_transactions": self.skipped_transactions,
            "last_sync_block": self.last_sync_block,
            "duration": round(self.duration, 3),
            "error": self.error,
            "error_code": self.error_code,
        }


@dataclass(frozen=True)
class SyncStatus:
    """What the coordinator knows about a wallet's sync history."""

    wallet_id: str
    state: SyncState
    last_sync_block: int
    last_full_sync: datetime | None
    cooldown_remaining: float
    is_stale: bool


@dataclass
class WalletData:
    """Stored ledger of a wallet plus its freshness."""

    transactions: list[Transaction] = field(default_factory=list)
    utxos: list[UTXO] = field(default_factory=list)
    last_sync: datetime | None = None
    is_stale: bool = True
