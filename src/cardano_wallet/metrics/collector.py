"""Metrics collector — Prometheus counters, gauges, histograms.

- ``cardano_wallet_stats_total`` gauge-vec (wallets, transactions, utxos, unspent_utxos)
- ``cardano_wallet_sync_total`` counter-vec by outcome
- ``cardano_wallet_sync_duration_seconds`` histogram
- ``cardano_wallet_sync_new_transactions_total`` counter
- ``cardano_wallet_utxo_completion_histogram``
- ``cardano_wallet_cron_histogram`` / ``cardano_wallet_cron_last_execution_gauge``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "cardano_wallet"

_STAT_LABELS = ("entity",)
_STAT_ENTITIES = (
    "wallets",
    "transactions",
    "utxos",
    "unspent_utxos",
)


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`EngineMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class EngineMetrics:
    """High-level engine metrics.

    All histograms track operation duration in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._stats = self._collector.gauge(
            f"{_PREFIX}_stats_total",
            "Entity counts in the local ledger store",
            _STAT_LABELS,
        )

        self._sync_total = self._collector.counter(
            f"{_PREFIX}_sync_total",
            "Sync requests by outcome",
            ("outcome",),
        )
        self._sync_duration = self._collector.histogram(
            f"{_PREFIX}_sync_duration_seconds",
            "Duration of sync pipeline runs",
        )
        self._sync_new_txs = self._collector.counter(
            f"{_PREFIX}_sync_new_transactions",
            "Transactions ingested by sync runs",
        )
        self._completion = self._collector.histogram(
            f"{_PREFIX}_utxo_completion_histogram",
            "Duration of on-demand UTXO completion",
        )

        self._cron_histogram = self._collector.histogram(
            f"{_PREFIX}_cron_histogram",
            "Duration of cron job executions",
            ("job_name",),
        )
        self._cron_last = self._collector.gauge(
            f"{_PREFIX}_cron_last_execution_gauge",
            "Timestamp of last cron execution",
            ("job_name",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    # -- Stat setters --

    def set_stat(self, entity: str, count: int) -> None:
        """Set the current count of one entity kind.

        Raises:
            ValueError: If *entity* is not a tracked entity.
        """
        if entity not in _STAT_ENTITIES:
            msg = f"unknown entity: {entity}"
            raise ValueError(msg)
        self._stats.labels(entity=entity).set(count)

    # -- Sync outcomes --

    def record_sync(self, outcome: str, *, duration: float = 0.0, new_transactions: int = 0) -> None:
        """Record one sync request.

        Args:
            outcome: ``success``, ``fresh``, ``failure``, ``in_progress`` or ``cooldown``.
            duration: Pipeline duration in seconds (only observed for pipeline runs).
            new_transactions: Transactions ingested by the run.
        """
        self._sync_total.labels(outcome=outcome).inc()
        if outcome in ("success", "failure"):
            self._sync_duration.observe(duration)
        if new_transactions:
            self._sync_new_txs.inc(new_transactions)

    # -- Operation trackers (context managers) --

    @contextmanager
    def track_utxo_completion(self) -> Iterator[None]:
        """Track the duration of an on-demand UTXO completion."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._completion.observe(time.monotonic() - start)

    @contextmanager
    def track_cron(self, job_name: str) -> Iterator[None]:
        """Track the duration of a cron job and record last execution time."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._cron_histogram.labels(job_name=job_name).observe(time.monotonic() - start)
            self._cron_last.labels(job_name=job_name).set(time.time())
