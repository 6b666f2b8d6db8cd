"""Tests for the Blockfrost HTTP client — uses httpx mock transport."""

from __future__ import annotations

import httpx
import pytest

from cardano_wallet.chain.blockfrost.client import BlockfrostClient
from cardano_wallet.chain.blockfrost.models import AccountInfo, AssetMetadata
from cardano_wallet.config.settings import IndexerConfig, Network
from cardano_wallet.errors.indexer_errors import ConfigurationError, IndexerError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_BASE = "https://cardano-preprod.blockfrost.io/api/v0"
_STAKE = "stake_test1uqaccount"
_ADDR = "addr_test1qaddress"
_TX = "a" * 64


def _client(*, key: str = "preprodKey", page_size: int = 100) -> BlockfrostClient:
    return BlockfrostClient(
        IndexerConfig(preprod_api_key=key, page_size=page_size), Network.PREPROD
    )


def _inject_transport(client: BlockfrostClient, transport: httpx.MockTransport) -> None:
    """Replace the internal httpx client with one using mock transport."""
    client._client = httpx.AsyncClient(transport=transport, base_url=_BASE)


def _respond(status: int, body: object = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestBlockfrostLifecycle:
    async def test_not_connected_by_default(self) -> None:
        assert _client().is_connected is False

    async def test_connect_and_close(self) -> None:
        bf = _client()
        await bf.connect()
        assert bf.is_connected is True
        await bf.close()
        assert bf.is_connected is False

    async def test_close_idempotent(self) -> None:
        bf = _client()
        await bf.close()
        assert bf.is_connected is False

    async def test_not_connected_raises(self) -> None:
        with pytest.raises(IndexerError, match="not connected"):
            await _client().get("/health")

    async def test_connect_sets_project_id_header(self) -> None:
        bf = _client(key="secret")
        await bf.connect()
        try:
            assert bf._client.headers["project_id"] == "secret"
            assert str(bf._client.base_url).startswith(_BASE)
        finally:
            await bf.close()

    def test_network_and_page_size(self) -> None:
        bf = _client(page_size=50)
        assert bf.network == Network.PREPROD
        assert bf.page_size == 50


# ---------------------------------------------------------------------------
# Raw GET and status mapping
# ---------------------------------------------------------------------------


class TestBlockfrostGet:
    async def test_returns_json(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(200, {"ok": True}))
        assert await bf.get("/anything") == {"ok": True}

    async def test_404_is_none(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(404, {"status_code": 404, "error": "Not Found"}))
        assert await bf.get("/accounts/unknown") is None

    async def test_missing_key_is_configuration_error(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={})

        bf = _client(key="")
        _inject_transport(bf, httpx.MockTransport(handler))
        with pytest.raises(ConfigurationError, match="no Blockfrost project key"):
            await bf.get("/accounts/x")
        assert requests == []

    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_key_is_configuration_error(self, status: int) -> None:
        bf = _client()
        _inject_transport(bf, _respond(status, {"message": "Invalid project token."}))
        with pytest.raises(ConfigurationError):
            await bf.get("/accounts/x")

    async def test_server_error_is_indexer_error(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(500, {"message": "internal"}))
        with pytest.raises(IndexerError) as exc_info:
            await bf.get("/txs/x")
        assert exc_info.value.indexer_status == 500
        assert "internal" in exc_info.value.message

    async def test_rate_limit_message(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(429, {"message": "slow down"}))
        with pytest.raises(IndexerError, match="rate limit") as exc_info:
            await bf.get("/txs/x")
        assert exc_info.value.indexer_status == 429

    async def test_non_json_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        bf = _client()
        _inject_transport(bf, httpx.MockTransport(handler))
        with pytest.raises(IndexerError, match="Bad Gateway"):
            await bf.get("/txs/x")

    async def test_transport_error_is_indexer_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        bf = _client()
        _inject_transport(bf, httpx.MockTransport(handler))
        with pytest.raises(IndexerError, match="connection refused") as exc_info:
            await bf.get("/txs/x")
        assert exc_info.value.indexer_status == 0

    async def test_invalid_json_is_indexer_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        bf = _client()
        _inject_transport(bf, httpx.MockTransport(handler))
        with pytest.raises(IndexerError, match="invalid JSON"):
            await bf.get("/txs/x")


# ---------------------------------------------------------------------------
# Typed helpers
# ---------------------------------------------------------------------------


class TestAccounts:
    async def test_get_account(self) -> None:
        bf = _client()
        _inject_transport(
            bf,
            _respond(
                200,
                {"stake_address": _STAKE, "controlled_amount": "4200000", "active": True},
            ),
        )
        account = await bf.get_account(_STAKE)
        assert isinstance(account, AccountInfo)
        assert account.controlled_amount == 4_200_000
        assert account.active is True

    async def test_get_account_unknown(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(404))
        assert await bf.get_account(_STAKE) is None

    async def test_get_account_addresses_params(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"address": "addr1"}, {"address": "addr2"}])

        bf = _client()
        _inject_transport(bf, httpx.MockTransport(handler))
        addresses = await bf.get_account_addresses(_STAKE, page=2)
        assert addresses == ["addr1", "addr2"]
        assert seen[0].url.path.endswith(f"/accounts/{_STAKE}/addresses")
        assert seen[0].url.params["page"] == "2"
        assert seen[0].url.params["count"] == "100"

    async def test_get_account_addresses_404_is_empty(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(404))
        assert await bf.get_account_addresses(_STAKE) == []

    async def test_get_account_assets_follows_pages(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params["page"])
            if page == 1:
                return httpx.Response(
                    200,
                    json=[
                        {"unit": "lovelace", "quantity": "1"},
                        {"unit": "ab" * 28, "quantity": "5"},
                    ],
                )
            return httpx.Response(200, json=[{"unit": "cd" * 28, "quantity": "7"}])

        bf = _client(page_size=2)
        _inject_transport(bf, httpx.MockTransport(handler))
        balances = await bf.get_account_assets(_STAKE)
        assert [b.quantity for b in balances] == [1, 5, 7]
        assert balances[1].policy_id == "ab" * 28


class TestAddressTransactions:
    async def test_params_without_from(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json=[{"tx_hash": _TX, "tx_index": 3, "block_height": 100, "block_time": 1}]
            )

        bf = _client()
        _inject_transport(bf, httpx.MockTransport(handler))
        rows = await bf.get_address_transactions(_ADDR)
        assert rows[0].tx_hash == _TX
        assert rows[0].block_height == 100
        assert rows[0].tx_index == 3
        params = seen[0].url.params
        assert params["order"] == "asc"
        assert params["count"] == "100"
        assert params["page"] == "1"
        assert "from" not in params

    async def test_params_with_from(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        bf = _client()
        _inject_transport(bf, httpx.MockTransport(handler))
        assert await bf.get_address_transactions(_ADDR, page=3, from_block=501) == []
        assert seen[0].url.params["from"] == "501"
        assert seen[0].url.params["page"] == "3"


class TestTransactions:
    async def test_get_transaction(self) -> None:
        bf = _client()
        _inject_transport(
            bf,
            _respond(
                200,
                {
                    "hash": _TX,
                    "block": "b" * 64,
                    "block_height": 10,
                    "index": 2,
                    "fees": "170000",
                    "output_amount": [{"unit": "lovelace", "quantity": "5000000"}],
                    "valid_contract": True,
                },
            ),
        )
        tx = await bf.get_transaction(_TX)
        assert tx.hash == _TX
        assert tx.block_height == 10
        assert tx.fees == 170_000
        assert tx.output_amount[0].quantity == 5_000_000

    async def test_get_transaction_missing_is_error(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(404))
        with pytest.raises(IndexerError) as exc_info:
            await bf.get_transaction(_TX)
        assert exc_info.value.indexer_status == 404

    async def test_get_transaction_utxos(self) -> None:
        bf = _client()
        _inject_transport(
            bf,
            _respond(
                200,
                {
                    "hash": _TX,
                    "inputs": [
                        {
                            "address": _ADDR,
                            "amount": [{"unit": "lovelace", "quantity": "10"}],
                            "tx_hash": "c" * 64,
                            "output_index": 1,
                            "collateral": False,
                            "reference": False,
                        }
                    ],
                    "outputs": [
                        {
                            "address": _ADDR,
                            "amount": [{"unit": "lovelace", "quantity": "9"}],
                            "output_index": 0,
                            "data_hash": None,
                            "inline_datum": None,
                            "reference_script_hash": None,
                            "collateral": False,
                        }
                    ],
                },
            ),
        )
        utxos = await bf.get_transaction_utxos(_TX)
        assert utxos.hash == _TX
        assert utxos.inputs[0].output_index == 1
        assert utxos.output_at(0).amount[0].quantity == 9
        assert utxos.output_at(5) is None

    async def test_get_transaction_utxos_missing_is_error(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(404))
        with pytest.raises(IndexerError):
            await bf.get_transaction_utxos(_TX)


class TestAssets:
    async def test_get_asset(self) -> None:
        unit = "ab" * 28 + "546f6b656e"
        bf = _client()
        _inject_transport(
            bf,
            _respond(200, {"asset": unit, "asset_name": "546f6b656e", "metadata": {"name": "Tok"}}),
        )
        meta = await bf.get_asset(unit)
        assert isinstance(meta, AssetMetadata)
        assert meta.name == "Tok"

    async def test_get_asset_unknown(self) -> None:
        bf = _client()
        _inject_transport(bf, _respond(404))
        assert await bf.get_asset("ab" * 28) is None
