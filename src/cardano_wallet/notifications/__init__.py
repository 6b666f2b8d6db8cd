"""Notifications — sync progress events and their fan-out stream."""

from __future__ import annotations

from cardano_wallet.notifications.events import SyncPhase, SyncProgressEvent
from cardano_wallet.notifications.service import ProgressStream, Subscription

__all__ = [
    "ProgressStream",
    "Subscription",
    "SyncPhase",
    "SyncProgressEvent",
]
