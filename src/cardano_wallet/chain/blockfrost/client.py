"""Blockfrost REST client — accounts, address history, transactions, assets.

Async HTTP client for the Blockfrost v0 API, one instance per network:
- GET /accounts/{stake}                      account balance
- GET /accounts/{stake}/addresses            payment addresses of an account
- GET /accounts/{stake}/addresses/assets     native-asset balances
- GET /addresses/{addr}/transactions         transaction history of an address
- GET /txs/{hash}                            transaction summary
- GET /txs/{hash}/utxos                      resolved inputs and outputs
- GET /assets/{unit}                         asset metadata

A 404 means "no data yet" and is returned as ``None`` by :meth:`get`;
collection helpers turn it into an empty list.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from cardano_wallet.chain.blockfrost.models import (
    AccountInfo,
    AddressTransaction,
    AssetBalance,
    AssetMetadata,
    TransactionSummary,
    TransactionUtxos,
)
from cardano_wallet.errors.indexer_errors import ConfigurationError, IndexerError

if TYPE_CHECKING:
    from cardano_wallet.config.settings import IndexerConfig, Network

logger = logging.getLogger(__name__)


class BlockfrostClient:
    """Async HTTP client for one Blockfrost network.

    Usage::

        bf = BlockfrostClient(config.indexer, Network.PREPROD)
        await bf.connect()
        try:
            addresses = await bf.get_account_addresses("stake_test1...")
        finally:
            await bf.close()
    """

    def __init__(self, config: IndexerConfig, network: Network) -> None:
        """Initialize the client.

        Args:
            config: Indexer configuration (URLs, keys, timeout, page size).
            network: Network this client talks to.
        """
        self._config = config
        self._network = network
        self._api_key = config.api_key(network)
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["project_id"] = self._api_key
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url(self._network).rstrip("/"),
            headers=headers,
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    @property
    def network(self) -> Network:
        return self._network

    @property
    def page_size(self) -> int:
        return self._config.page_size

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Issue an authenticated GET request.

        Args:
            path: Path relative to the network base URL.
            params: Optional query parameters.

        Returns:
            Decoded JSON body, or ``None`` when the indexer answered 404.

        Raises:
            ConfigurationError: No key configured, or the key was rejected.
            IndexerError: Any other non-2xx response or a transport failure.
        """
        client = self._ensure_connected()
        if not self._api_key:
            msg = f"no Blockfrost project key configured for {self._network}"
            raise ConfigurationError(msg)

        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise IndexerError(f"Blockfrost request {path} failed: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.status_code in (401, 403):
            msg = f"Blockfrost rejected the project key for {self._network}"
            raise ConfigurationError(msg)
        if not response.is_success:
            self._raise_for_status(response, path)

        try:
            return response.json()
        except ValueError as exc:
            raise IndexerError(
                f"Blockfrost returned invalid JSON for {path}",
                indexer_status=response.status_code,
            ) from exc

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def get_account(self, stake_address: str) -> AccountInfo | None:
        """Get account balance info, or ``None`` for an account never seen on chain."""
        data = await self.get(f"/accounts/{stake_address}")
        if data is None:
            return None
        return AccountInfo.from_dict(data)

    async def get_account_addresses(self, stake_address: str, *, page: int = 1) -> list[str]:
        """Get one page of payment addresses associated with a stake address."""
        data = await self.get(
            f"/accounts/{stake_address}/addresses",
            params={"count": self.page_size, "page": page},
        )
        return [item["address"] for item in data or []]

    async def get_account_assets(self, stake_address: str) -> list[AssetBalance]:
        """Get every native-asset balance held by an account (all pages)."""
        items = await self._collect_pages(f"/accounts/{stake_address}/addresses/assets")
        return [AssetBalance.from_dict(item) for item in items]

    # ------------------------------------------------------------------
    # Addresses & transactions
    # ------------------------------------------------------------------

    async def get_address_transactions(
        self,
        address: str,
        *,
        page: int = 1,
        from_block: int | None = None,
    ) -> list[AddressTransaction]:
        """Get one page of an address's transactions in ascending chain order.

        Args:
            address: Payment address.
            page: 1-based page number.
            from_block: Lowest block height to include, if any.
        """
        params: dict[str, Any] = {"order": "asc", "count": self.page_size, "page": page}
        if from_block is not None:
            params["from"] = str(from_block)
        data = await self.get(f"/addresses/{address}/transactions", params=params)
        return [AddressTransaction.from_dict(item) for item in data or []]

    async def get_transaction(self, tx_hash: str) -> TransactionSummary:
        """Get the summary of a single transaction.

        Raises:
            IndexerError: If the transaction is unknown to the indexer.
        """
        data = await self.get(f"/txs/{tx_hash}")
        if data is None:
            raise IndexerError(f"transaction {tx_hash} not found", indexer_status=404)
        return TransactionSummary.from_dict(data)

    async def get_transaction_utxos(self, tx_hash: str) -> TransactionUtxos:
        """Get the resolved inputs and outputs of a single transaction.

        Raises:
            IndexerError: If the transaction is unknown to the indexer.
        """
        data = await self.get(f"/txs/{tx_hash}/utxos")
        if data is None:
            raise IndexerError(f"utxos of transaction {tx_hash} not found", indexer_status=404)
        return TransactionUtxos.from_dict(data, tx_hash=tx_hash)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def get_asset(self, unit: str) -> AssetMetadata | None:
        """Get display metadata for a native asset, or ``None`` if unknown."""
        data = await self.get(f"/assets/{unit}")
        if data is None:
            return None
        return AssetMetadata.from_dict(unit, data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _collect_pages(self, path: str) -> list[dict[str, Any]]:
        """Follow ``page`` until a short or empty page (or a 404)."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self.get(path, params={"count": self.page_size, "page": page})
            if not data:
                break
            items.extend(data)
            if len(data) < self.page_size:
                break
            page += 1
        return items

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "Blockfrost client not connected. Call connect() first."
            raise IndexerError(msg, status_code=500)
        return self._client

    def _raise_for_status(self, response: httpx.Response, path: str) -> None:
        """Raise an IndexerError from a non-2xx response."""
        status = response.status_code
        try:
            body = response.json()
            detail = body.get("message", body.get("error", response.text))
        except (ValueError, AttributeError):
            detail = response.text

        error_map = {
            402: "Blockfrost daily request limit exceeded",
            418: "Blockfrost auto-banned this client",
            429: "Blockfrost rate limit exceeded",
        }
        message = error_map.get(status, f"Blockfrost GET {path} failed ({status}): {detail}")
        logger.debug("indexer error %s on %s: %s", status, path, detail)
        raise IndexerError(message, indexer_status=status)
