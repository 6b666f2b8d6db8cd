"""Prometheus HTTP request metrics middleware for FastAPI.

Tracks:
- ``http_request_total`` (counter) — requests by method, route template, status
- ``http_request_duration_seconds`` (histogram) — request duration by method, route template
- ``http_requests_in_progress`` (gauge) — requests being served, by method

Requests that raise are counted with status ``500``. Scrape and probe
paths (``/metrics``, ``/health``) are not tracked.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from prometheus_client import CollectorRegistry
    from starlette.requests import Request
    from starlette.responses import Response

_APP_LABEL = "cardano-wallet"
_UNTRACKED_PATHS = ("/metrics", "/health")

_LABELS = ("method", "path", "status_code", "app")
_DURATION_LABELS = ("method", "path", "app")


def _route_path(request: Request) -> str:
    """Templated route path so wallet IDs don't explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that records request count, duration and concurrency."""

    def __init__(
        self,
        app: object,
        *,
        registry: CollectorRegistry,
        untracked_paths: Iterable[str] = _UNTRACKED_PATHS,
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._untracked = frozenset(untracked_paths)
        self._request_count = Counter(
            "http_request_total",
            "Total HTTP requests",
            _LABELS,
            registry=registry,
        )
        self._request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            _DURATION_LABELS,
            registry=registry,
        )
        self._in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently being served",
            ("method", "app"),
            registry=registry,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:  # type: ignore[type-arg]
        if request.url.path in self._untracked:
            return await call_next(request)

        method = request.method
        in_progress = self._in_progress.labels(method=method, app=_APP_LABEL)
        in_progress.inc()
        start = time.monotonic()
        status = "500"
        try:
            response: Response = await call_next(request)
            status = str(response.status_code)
        finally:
            in_progress.dec()
            self._observe(request, status, time.monotonic() - start)
        return response

    def _observe(self, request: Request, status: str, duration: float) -> None:
        path = _route_path(request)
        self._request_count.labels(
            method=request.method,
            path=path,
            status_code=status,
            app=_APP_LABEL,
        ).inc()
        self._request_duration.labels(
            method=request.method,
            path=path,
            app=_APP_LABEL,
        ).observe(duration)
