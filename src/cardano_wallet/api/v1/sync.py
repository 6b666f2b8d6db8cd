"""V1 sync endpoints.

Sync requests always answer with a result body; rejections (in progress,
cooldown) and failures are reported through ``success`` / ``error_code``
rather than HTTP errors.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Query
from starlette.responses import StreamingResponse

from cardano_wallet.api.dependencies import get_engine, get_wallet
from cardano_wallet.api.v1.schemas import SyncResultResponse, SyncStatusResponse
from cardano_wallet.engine.client import WalletEngine  # noqa: TC001
from cardano_wallet.engine.models import Wallet  # noqa: TC001
from cardano_wallet.engine.services.checkpoint_service import as_utc
from cardano_wallet.engine.sync import SyncOptions, SyncState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from cardano_wallet.engine.sync import SyncResult
    from cardano_wallet.notifications.service import Subscription

router = APIRouter(tags=["sync"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _result_resp(result: SyncResult) -> dict:
    return SyncResultResponse(**result.summary()).model_dump(mode="json")


def _line(payload: dict) -> bytes:
    return (json.dumps(payload) + "\n").encode()


async def _stream_sync(
    engine: WalletEngine, wallet: Wallet, options: SyncOptions, sub: Subscription
) -> AsyncIterator[bytes]:
    """Yield progress events for one sync run, then its result."""
    task = asyncio.create_task(engine.sync_coordinator.sync_wallet(wallet, options))
    try:
        while not task.done():
            getter = asyncio.ensure_future(sub.get())
            done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                try:
                    yield _line(getter.result().to_dict())
                except StopAsyncIteration:
                    break
            else:
                getter.cancel()
        while sub.pending():
            try:
                event = await sub.get()
            except StopAsyncIteration:
                break
            yield _line(event.to_dict())
        result = await task
        yield _line({"result": _result_resp(result)})
    finally:
        sub.close()
        if not task.done():
            task.cancel()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/wallets/{wallet_id}/sync")
async def sync_wallet(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
    force: bool = False,
    max_age: Annotated[float | None, Query(ge=0)] = None,
) -> dict:
    """Sync one wallet and return counts."""
    options = SyncOptions(force_full=force, max_age=max_age)
    result = await engine.sync_coordinator.sync_wallet(wallet, options)
    return _result_resp(result)


@router.post("/wallets/{wallet_id}/sync/stream")
async def sync_wallet_stream(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
    force: bool = False,
    max_age: Annotated[float | None, Query(ge=0)] = None,
) -> StreamingResponse:
    """Sync one wallet, streaming progress events as newline-delimited JSON.

    The last line is ``{"result": {...}}``.
    """
    sub = engine.progress.subscribe(wallet_id=wallet.id)
    options = SyncOptions(force_full=force, max_age=max_age)
    return StreamingResponse(
        _stream_sync(engine, wallet, options, sub), media_type=NDJSON_MEDIA_TYPE
    )


@router.get("/wallets/{wallet_id}/sync/status")
async def get_sync_status(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Coordinator state, watermark and staleness of one wallet."""
    status = await engine.sync_coordinator.get_sync_status(wallet.id)
    since = None
    if status.last_full_sync is not None:
        since = (datetime.now(UTC) - as_utc(status.last_full_sync)).total_seconds()
    return SyncStatusResponse(
        wallet_id=status.wallet_id,
        state=status.state.value,
        last_sync_block=status.last_sync_block,
        last_full_sync=status.last_full_sync,
        cooldown_remaining=status.cooldown_remaining,
        is_stale=status.is_stale,
        is_syncing=status.state == SyncState.SYNCING,
        time_since_last_sync=since,
    ).model_dump(mode="json")


@router.post("/wallets/{wallet_id}/resync")
async def reset_and_resync(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Purge the wallet's ledger data and sync it again from genesis."""
    result = await engine.sync_coordinator.reset_and_resync(wallet)
    return _result_resp(result)


@router.post("/sync")
async def sync_all_wallets(
    engine: Annotated[WalletEngine, Depends(get_engine)],
    network: str | None = None,
    force: bool = False,
) -> dict:
    """Sync every registered wallet in batches."""
    wallets = await engine.wallet_service.get_wallets(network=network)
    results = await engine.sync_coordinator.sync_many(wallets, SyncOptions(force_full=force))
    return {wallet_id: _result_resp(r) for wallet_id, r in results.items()}
