"""V1 REST API routes.

Combines all sub-routers under the ``/api/v1`` prefix.
"""

from fastapi import APIRouter

from cardano_wallet.api.v1.ledger import router as ledger_router
from cardano_wallet.api.v1.sync import router as sync_router
from cardano_wallet.api.v1.wallets import router as wallets_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(wallets_router)
v1_router.include_router(ledger_router)
v1_router.include_router(sync_router)

__all__ = ["v1_router"]
