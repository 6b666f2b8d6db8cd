"""Shared test fixtures for py-cardano-wallet test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest

from cardano_wallet.config.settings import DatabaseEngine, Network

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

BASE_URL = "https://blockfrost.test/api/v0"

STAKE = "stake_test1uqwallet"
ADDR_A = "addr_test1qwalletaaa"


def lovelace(quantity: int) -> list[dict[str, str]]:
    return [{"unit": "lovelace", "quantity": str(quantity)}]


class FakeBlockfrost:
    """In-memory Blockfrost serving canned JSON through ``httpx.MockTransport``.

    Paths answer 404 unless seeded; paths in :attr:`failing` answer 500.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.account_addresses: dict[str, list[str]] = {}
        self.account_assets: dict[str, list[dict[str, Any]]] = {}
        self.address_txs: dict[str, list[dict[str, Any]]] = {}
        self.txs: dict[str, dict[str, Any]] = {}
        self.tx_utxos: dict[str, dict[str, Any]] = {}
        self.assets: dict[str, dict[str, Any]] = {}
        self.failing: set[str] = set()
        self.requests: list[httpx.Request] = []

    # -- seeding --

    def add_account(self, stake: str, addresses: list[str], *, balance: int = 0) -> None:
        self.account_addresses[stake] = list(addresses)
        self.accounts[stake] = {
            "stake_address": stake,
            "controlled_amount": str(balance),
            "active": True,
        }

    def add_transaction(
        self,
        tx_hash: str,
        *,
        height: int,
        index: int = 0,
        inputs: list[dict[str, Any]] | None = None,
        outputs: list[dict[str, Any]] | None = None,
        valid_contract: bool = True,
        listed_for: list[str] | None = None,
    ) -> None:
        """Seed a transaction and list it under every address it touches."""
        inputs = inputs or []
        outputs = outputs or []
        self.txs[tx_hash] = {
            "hash": tx_hash,
            "block": f"block{height}",
            "block_height": height,
            "block_time": 1_700_000_000 + height,
            "slot": height * 20,
            "index": index,
            "output_amount": lovelace(sum(int(o["amount"][0]["quantity"]) for o in outputs)),
            "fees": "170000",
            "deposit": "0",
            "size": 300,
            "utxo_count": len(inputs) + len(outputs),
            "valid_contract": valid_contract,
        }
        self.tx_utxos[tx_hash] = {"hash": tx_hash, "inputs": inputs, "outputs": outputs}
        touched = listed_for
        if touched is None:
            touched = [i["address"] for i in inputs] + [o["address"] for o in outputs]
        row = {"tx_hash": tx_hash, "tx_index": index, "block_height": height, "block_time": 0}
        for address in dict.fromkeys(touched):
            self.address_txs.setdefault(address, []).append(row)

    @staticmethod
    def output(address: str, quantity: int, index: int = 0, **extra: Any) -> dict[str, Any]:
        return {
            "address": address,
            "amount": lovelace(quantity),
            "output_index": index,
            "data_hash": None,
            "inline_datum": None,
            "reference_script_hash": None,
            "collateral": False,
            **extra,
        }

    @staticmethod
    def input(
        address: str, quantity: int, tx_hash: str, index: int = 0, **extra: Any
    ) -> dict[str, Any]:
        return {
            "address": address,
            "amount": lovelace(quantity),
            "tx_hash": tx_hash,
            "output_index": index,
            "collateral": False,
            "reference": False,
            **extra,
        }

    # -- inspection --

    def paths(self) -> list[str]:
        return [r.url.path.removeprefix("/api/v0") for r in self.requests]

    def detail_requests(self) -> list[str]:
        return [p for p in self.paths() if p.startswith("/txs/")]

    # -- transport --

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v0")
        if path in self.failing:
            return httpx.Response(500, json={"status_code": 500, "message": "boom"})

        params = request.url.params
        page = int(params.get("page", "1"))
        count = int(params.get("count", "100"))
        parts = path.strip("/").split("/")

        body: Any = None
        if parts[0] == "accounts" and len(parts) == 2:
            body = self.accounts.get(parts[1])
        elif parts[0] == "accounts" and parts[2:] == ["addresses"]:
            if parts[1] in self.account_addresses:
                body = [{"address": a} for a in self.account_addresses[parts[1]]]
                body = body[(page - 1) * count : page * count]
        elif parts[0] == "accounts" and parts[2:] == ["addresses", "assets"]:
            if parts[1] in self.account_assets:
                body = self.account_assets[parts[1]][(page - 1) * count : page * count]
        elif parts[0] == "addresses" and parts[2:] == ["transactions"]:
            if parts[1] in self.address_txs:
                lowest = int(params.get("from", "0"))
                rows = sorted(
                    (r for r in self.address_txs[parts[1]] if r["block_height"] >= lowest),
                    key=lambda r: (r["block_height"], r["tx_index"]),
                )
                body = rows[(page - 1) * count : page * count]
        elif parts[0] == "txs" and len(parts) == 2:
            body = self.txs.get(parts[1])
        elif parts[0] == "txs" and parts[2:] == ["utxos"]:
            body = self.tx_utxos.get(parts[1])
        elif parts[0] == "assets" and len(parts) == 2:
            body = self.assets.get(parts[1])

        if body is None:
            return httpx.Response(
                404, json={"status_code": 404, "error": "Not Found", "message": "missing"}
            )
        return httpx.Response(200, json=body)


def inject_transport(client: Any, transport: httpx.BaseTransport) -> None:
    """Replace a BlockfrostClient's internal httpx client with one using *transport*."""
    client._client = httpx.AsyncClient(
        transport=transport,
        base_url=BASE_URL,
        headers={"project_id": "test-key"},
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults."""
    from cardano_wallet.config.settings import (
        AppConfig,
        DatabaseConfig,
        IndexerConfig,
        MetricsConfig,
    )

    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
        indexer=IndexerConfig(
            mainnet_url=BASE_URL,
            preprod_url=BASE_URL,
            mainnet_api_key="test-key",
            preprod_api_key="test-key",
        ),
        metrics=MetricsConfig(enabled=True),
    )


@pytest.fixture
def blockfrost() -> FakeBlockfrost:
    return FakeBlockfrost()


@pytest.fixture
def indexer(app_config, blockfrost):
    """A preprod BlockfrostClient wired to the fake indexer."""
    from cardano_wallet.chain.blockfrost.client import BlockfrostClient

    client = BlockfrostClient(app_config.indexer, Network.PREPROD)
    inject_transport(client, blockfrost.transport())
    return client


@pytest.fixture
async def engine(app_config, indexer) -> AsyncIterator:
    """Initialised WalletEngine on in-memory SQLite and the fake indexer."""
    from cardano_wallet.engine.client import WalletEngine

    eng = WalletEngine(app_config, indexers={Network.PREPROD: indexer})
    await eng.initialize()
    yield eng
    await eng.close()


@pytest.fixture
async def wallet(engine):
    """A registered preprod wallet with a stake address."""
    return await engine.wallet_service.register_wallet(
        "w1", ADDR_A, name="Test", network=Network.PREPROD, stake_address=STAKE
    )


@pytest.fixture
def test_client(app_config):
    """Provide a FastAPI TestClient with the app wired to test config."""
    from fastapi.testclient import TestClient

    from cardano_wallet.api.app import create_app

    app = create_app(config=app_config)
    return TestClient(app, raise_server_exceptions=False)
