"""Task manager — periodic background jobs.

- Wallet sync (incremental, batched)
- Metrics calculation (entity counts for Prometheus gauges)
"""

from __future__ import annotations

from cardano_wallet.taskmanager.manager import CronJob, TaskManager

__all__ = ["CronJob", "TaskManager"]
