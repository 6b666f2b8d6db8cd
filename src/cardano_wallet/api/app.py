"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from cardano_wallet import __version__
from cardano_wallet.api.middleware.cors import setup_cors
from cardano_wallet.api.v1 import v1_router
from cardano_wallet.config.settings import AppConfig
from cardano_wallet.engine.client import WalletEngine
from cardano_wallet.errors.wallet_errors import WalletError
from cardano_wallet.metrics.collector import EngineMetrics
from cardano_wallet.metrics.middleware import PrometheusMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle hooks.

    Initialises the engine (datastore, indexers, services) on startup and
    gracefully shuts down on exit.
    """
    config: AppConfig = app.state.config
    engine = WalletEngine(config, metrics=getattr(app.state, "metrics", None))

    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("Cardano wallet engine initialized")
        yield
    finally:
        app.state.engine = None
        await engine.close()
        logger.info("Cardano wallet engine shut down")


def create_app(*, config: AppConfig | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
    """
    if config is None:
        config = AppConfig()

    app = FastAPI(
        title="py-cardano-wallet",
        version=__version__,
        description="Cardano wallet ledger sync service",
        lifespan=_lifespan,
    )

    # Store config on app.state for lifespan access
    app.state.config = config
    if config.metrics.enabled:
        app.state.metrics = EngineMetrics()

    # -- Middleware --
    setup_cors(app, config.server.cors_origins)

    # -- Error handler --
    @app.exception_handler(WalletError)
    async def _wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health(request: Request) -> JSONResponse:
        """Liveness plus component checks; 503 when any component is unhealthy."""
        engine: WalletEngine | None = getattr(request.app.state, "engine", None)
        if engine is None:
            return JSONResponse({"status": "ok"})
        checks = await engine.health_check()
        healthy = all(value == "ok" for value in checks.values())
        return JSONResponse(
            {"status": "ok" if healthy else "degraded", **checks},
            status_code=200 if healthy else 503,
        )

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        registry = app.state.metrics.registry if hasattr(app.state, "metrics") else None
        body = generate_latest(registry) if registry else generate_latest()
        return Response(
            content=body,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Prometheus request metrics middleware --
    if hasattr(app.state, "metrics"):
        app.add_middleware(PrometheusMiddleware, registry=app.state.metrics.registry)

    # -- Mount v1 API --
    app.include_router(v1_router)

    return app
