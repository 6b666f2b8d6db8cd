"""Application entry point for the Cardano wallet sync server."""

from __future__ import annotations

import os

import uvicorn

from cardano_wallet.config.settings import AppConfig


def main() -> None:
    """Start the wallet sync server."""
    server = AppConfig().server
    reload = os.getenv("CARDANO_WALLET_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "cardano_wallet.api.app:create_app",
        factory=True,
        host=server.host,
        port=server.port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
