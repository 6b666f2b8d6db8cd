"""Transaction fetcher — new transaction hashes and their details.

Listing pages through ``/addresses/{addr}/transactions`` per address, all
addresses concurrently. Detail fetching joins ``/txs/{hash}`` with
``/txs/{hash}/utxos`` for every new hash, also concurrently; a transaction
whose pair fails is skipped and reported so the next sync retries it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cardano_wallet.chain.blockfrost.models import TransactionDetails
from cardano_wallet.errors.indexer_errors import ConfigurationError
from cardano_wallet.errors.wallet_errors import WalletError

if TYPE_CHECKING:
    from cardano_wallet.chain.blockfrost.client import BlockfrostClient

logger = logging.getLogger(__name__)

# Called with (completed, total) after every detail fetch
FetchProgress = Callable[[int, int], None]


@dataclass
class FetchOutcome:
    """Result of a detail fetch: what arrived and what has to be retried."""

    details: list[TransactionDetails] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def sorted_details(self) -> list[TransactionDetails]:
        """Details in chain order (block height, then position in block)."""
        return sorted(self.details, key=lambda tx: (tx.block_height, tx.index, tx.hash))


class TransactionFetcher:
    """Fetch transaction hashes and details for a set of addresses.

    Args:
        indexer: Network-specific indexer client.
        max_concurrency: Upper bound on in-flight indexer requests.
    """

    def __init__(self, indexer: BlockfrostClient, *, max_concurrency: int = 5) -> None:
        self._indexer = indexer
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def list_address_transactions(
        self, addresses: Iterable[str], since_block: int = 0
    ) -> dict[str, int]:
        """Map every transaction touching *addresses* after *since_block* to its height.

        Returns:
            ``{tx_hash: block_height}`` deduplicated across addresses.
        """
        pages = await asyncio.gather(
            *(self._list_one(address, since_block) for address in sorted(set(addresses)))
        )
        heights: dict[str, int] = {}
        for page in pages:
            heights.update(page)
        return heights

    async def fetch_new_transaction_hashes(
        self, addresses: Iterable[str], since_block: int = 0
    ) -> set[str]:
        """Return the set of transaction hashes after *since_block*."""
        return set(await self.list_address_transactions(addresses, since_block))

    async def fetch_transaction_details(
        self,
        hashes: Iterable[str],
        progress: FetchProgress | None = None,
    ) -> FetchOutcome:
        """Fetch summary + inputs/outputs for every hash.

        Per-transaction indexer failures are logged and collected in
        :attr:`FetchOutcome.failed`. A :class:`ConfigurationError` aborts the
        whole fetch since no other request can succeed either.
        """
        ordered = sorted(set(hashes))
        total = len(ordered)
        outcome = FetchOutcome()
        completed = 0

        async def fetch(tx_hash: str) -> None:
            nonlocal completed
            try:
                details = await self._fetch_one(tx_hash)
            except ConfigurationError:
                raise
            except WalletError as exc:
                logger.warning("Skipping transaction %s: %s", tx_hash, exc.message)
                outcome.failed.append(tx_hash)
            else:
                outcome.details.append(details)
            completed += 1
            if progress is not None:
                progress(completed, total)

        await asyncio.gather(*(fetch(h) for h in ordered))
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _list_one(self, address: str, since_block: int) -> dict[str, int]:
        from_block = since_block + 1 if since_block > 0 else None
        heights: dict[str, int] = {}
        page = 1
        while True:
            async with self._semaphore:
                batch = await self._indexer.get_address_transactions(
                    address, page=page, from_block=from_block
                )
            for item in batch:
                heights[item.tx_hash] = item.block_height
            if len(batch) < self._indexer.page_size:
                break
            page += 1
        logger.debug(
            "address %s: %d transactions since block %d", address, len(heights), since_block
        )
        return heights

    async def _fetch_one(self, tx_hash: str) -> TransactionDetails:
        async with self._semaphore:
            summary, utxos = await asyncio.gather(
                self._indexer.get_transaction(tx_hash),
                self._indexer.get_transaction_utxos(tx_hash),
            )
        return TransactionDetails.combine(summary, utxos)
