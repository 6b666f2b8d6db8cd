"""V1 wallet endpoints.

Registration, lookup and deletion of wallets, plus the indexer-reported
account state.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from cardano_wallet.api.dependencies import get_engine, get_wallet
from cardano_wallet.api.v1.schemas import (
    WalletCreateRequest,
    WalletResponse,
    WalletStateResponse,
    WalletStatsResponse,
)
from cardano_wallet.engine.client import WalletEngine  # noqa: TC001
from cardano_wallet.engine.models import Wallet  # noqa: TC001

router = APIRouter(tags=["wallet"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _wallet_resp(w: object) -> dict:
    return WalletResponse(
        id=w.id,
        name=w.name,
        network=w.network,
        address=w.address,
        stake_address=w.stake_address,
        metadata=w.metadata_ or {},
        created_at=w.created_at,
        updated_at=w.updated_at,
    ).model_dump(mode="json")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/wallets", status_code=201)
async def register_wallet(
    body: WalletCreateRequest,
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Register a wallet with its already-derived addresses."""
    wallet = await engine.wallet_service.register_wallet(
        body.id,
        body.address,
        name=body.name,
        network=body.network,
        stake_address=body.stake_address,
        metadata=body.metadata,
    )
    return _wallet_resp(wallet)


@router.get("/wallets")
async def list_wallets(
    engine: Annotated[WalletEngine, Depends(get_engine)],
    network: str | None = None,
) -> list[dict]:
    """List registered wallets."""
    wallets = await engine.wallet_service.get_wallets(network=network)
    return [_wallet_resp(w) for w in wallets]


@router.get("/wallets/{wallet_id}")
async def get_wallet_by_id(
    wallet: Annotated[Wallet, Depends(get_wallet)],
) -> dict:
    return _wallet_resp(wallet)


@router.delete("/wallets/{wallet_id}")
async def delete_wallet(
    wallet_id: str,
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Delete a wallet together with its transactions, UTXOs and checkpoint."""
    await engine.wallet_service.delete_wallet(wallet_id)
    engine.sync_coordinator.forget(wallet_id)
    return {"deleted": wallet_id}


@router.get("/wallets/{wallet_id}/state")
async def get_wallet_state(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Balance and native assets as reported by the indexer."""
    state = await engine.account_service.get_wallet_state(wallet)
    return WalletStateResponse.model_validate(state.to_dict()).model_dump(mode="json")


@router.get("/wallets/{wallet_id}/stats")
async def get_wallet_stats(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Stored record counts and the sync watermark."""
    stats = await engine.wallet_service.get_stats(wallet.id)
    return WalletStatsResponse(**stats).model_dump(mode="json")
