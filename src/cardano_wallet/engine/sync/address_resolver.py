"""Address resolver — stake account to payment addresses."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cardano_wallet.chain.blockfrost.client import BlockfrostClient
    from cardano_wallet.engine.models import Wallet

logger = logging.getLogger(__name__)


class AddressResolver:
    """Resolve the payment addresses that belong to a wallet."""

    def __init__(self, indexer: BlockfrostClient) -> None:
        self._indexer = indexer

    async def resolve_payment_addresses(self, stake_address: str) -> set[str]:
        """Return every payment address ever associated with *stake_address*.

        An account the indexer has never seen (404) resolves to an empty
        set; that is the normal state of a fresh, unfunded wallet.

        Args:
            stake_address: Bech32 reward address.

        Returns:
            Set of payment addresses.
        """
        addresses: set[str] = set()
        page = 1
        while True:
            batch = await self._indexer.get_account_addresses(stake_address, page=page)
            addresses.update(batch)
            if len(batch) < self._indexer.page_size:
                break
            page += 1
        logger.debug("resolved %d payment addresses for %s", len(addresses), stake_address)
        return addresses

    async def resolve_wallet_addresses(self, wallet: Wallet) -> set[str]:
        """Resolve a wallet's addresses, falling back to its base address.

        Wallets registered without a stake address (enterprise addresses)
        only own the address they were registered with.
        """
        if not wallet.stake_address:
            return {wallet.address}
        return await self.resolve_payment_addresses(wallet.stake_address)
