"""FastAPI dependency injection helpers.

Provides ``Depends()``-compatible callables for engine and wallet access in
route handlers.

Usage in a route::

    @router.get("/wallets/{wallet_id}/balance")
    async def get_balance(
        wallet: Annotated[Wallet, Depends(get_wallet)],
        engine: Annotated[WalletEngine, Depends(get_engine)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from cardano_wallet.engine.client import WalletEngine  # noqa: TC001
from cardano_wallet.engine.models import Wallet  # noqa: TC001
from cardano_wallet.errors.definitions import ErrEngineUnavailable


def get_engine(request: Request) -> WalletEngine:
    """Retrieve the engine from ``app.state``.

    The engine is stored on ``app.state.engine`` during lifespan startup.

    Raises:
        WalletError: 503 if the engine is not initialized.
    """
    engine: WalletEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise ErrEngineUnavailable
    return engine


async def get_wallet(
    wallet_id: str,
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> Wallet:
    """Resolve the ``{wallet_id}`` path parameter to a registered wallet.

    Raises:
        WalletError: 404 if the wallet does not exist.
    """
    return await engine.wallet_service.require_wallet(wallet_id)
