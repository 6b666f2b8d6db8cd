"""Event types for the sync progress stream.

- ``SyncPhase`` — checking, downloading, complete
- ``SyncProgressEvent`` — one progress update for one wallet
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any


class SyncPhase(enum.StrEnum):
    """Phase of a sync run. The last event of every run is ``COMPLETE``."""

    CHECKING = "checking"
    DOWNLOADING = "downloading"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SyncProgressEvent:
    """Progress update emitted by the sync coordinator.

    Attributes:
        wallet_id: Wallet being synced.
        current: Items processed so far in this phase.
        total: Items expected in this phase (0 when unknown).
        message: Human-readable status line.
        phase: Current phase.
        new_items_count: Number of new transactions found by this run.
    """

    wallet_id: str
    current: int
    total: int
    message: str
    phase: SyncPhase
    new_items_count: int = 0

    @property
    def is_complete(self) -> bool:
        return self.phase == SyncPhase.COMPLETE

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict."""
        data = asdict(self)
        data["phase"] = self.phase.value
        return data
