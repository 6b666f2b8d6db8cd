"""Metrics — Prometheus metrics collection and exposure."""

from __future__ import annotations

from cardano_wallet.metrics.collector import EngineMetrics, MetricsCollector

__all__ = ["EngineMetrics", "MetricsCollector"]
