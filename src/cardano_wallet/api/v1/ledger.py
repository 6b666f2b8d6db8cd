"""V1 ledger endpoints.

Read access to a wallet's stored transactions and UTXOs. ``/data`` may
trigger an incremental sync first when the stored data is stale; single
UTXO lookups complete partial records on demand.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from cardano_wallet.api.dependencies import get_engine, get_wallet
from cardano_wallet.api.v1.schemas import (
    BalanceResponse,
    TransactionResponse,
    UTXOResponse,
    WalletDataResponse,
)
from cardano_wallet.engine.client import WalletEngine  # noqa: TC001
from cardano_wallet.engine.models import Wallet  # noqa: TC001
from cardano_wallet.errors.definitions import ErrTransactionNotFound

router = APIRouter(tags=["ledger"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tx_resp(t: object) -> dict:
    return TransactionResponse.model_validate(t).model_dump(mode="json")


def _utxo_resp(u: object) -> dict:
    return UTXOResponse.model_validate(u).model_dump(mode="json")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/wallets/{wallet_id}/data")
async def get_wallet_data(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
    auto_sync: bool = True,
) -> dict:
    """Stored transactions and UTXOs, syncing first when stale."""
    data = await engine.sync_coordinator.get_wallet_data(wallet, auto_sync=auto_sync)
    return WalletDataResponse(
        transactions=[TransactionResponse.model_validate(t) for t in data.transactions],
        utxos=[UTXOResponse.model_validate(u) for u in data.utxos],
        last_sync=data.last_sync,
        is_stale=data.is_stale,
    ).model_dump(mode="json")


@router.get("/wallets/{wallet_id}/transactions")
async def list_transactions(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict:
    """Stored transactions, newest first."""
    service = engine.transaction_service
    txs = await service.get_transactions(wallet.id, limit=limit, offset=offset)
    total = await service.count_transactions(wallet.id)
    return {
        "items": [_tx_resp(t) for t in txs],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/wallets/{wallet_id}/transactions/{tx_hash}")
async def get_transaction(
    tx_hash: str,
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    tx = await engine.transaction_service.get_transaction(wallet.id, tx_hash)
    if tx is None:
        raise ErrTransactionNotFound
    return _tx_resp(tx)


@router.get("/wallets/{wallet_id}/utxos")
async def list_utxos(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
    unspent_only: bool = False,
    include_external: bool = True,
) -> list[dict]:
    """Stored UTXOs, optionally only unspent or only the wallet's own."""
    utxos = await engine.utxo_service.get_utxos(
        wallet.id,
        unspent_only=unspent_only,
        include_external=include_external,
    )
    return [_utxo_resp(u) for u in utxos]


@router.get("/wallets/{wallet_id}/utxos/{tx_hash}/{output_index}")
async def get_utxo(
    tx_hash: str,
    output_index: int,
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """One UTXO, fetched from its producing transaction when incomplete."""
    utxo = await engine.utxo_service.complete_utxo(wallet, tx_hash, output_index)
    return _utxo_resp(utxo)


@router.get("/wallets/{wallet_id}/balance")
async def get_balance(
    wallet: Annotated[Wallet, Depends(get_wallet)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Balance of the wallet's own unspent UTXOs."""
    lovelace = await engine.utxo_service.get_balance(wallet.id)
    assets = await engine.utxo_service.get_asset_balances(wallet.id)
    return BalanceResponse(
        lovelace=str(lovelace),
        assets={unit: str(qty) for unit, qty in assets.items()},
    ).model_dump(mode="json")
