"""Account service — indexer-reported balance, assets and asset metadata."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from cardano_wallet.chain.blockfrost.models import (
    LOVELACE,
    POLICY_ID_LENGTH,
    AssetMetadata,
    hex_to_string,
)
from cardano_wallet.errors.indexer_errors import ConfigurationError
from cardano_wallet.errors.wallet_errors import WalletError

if TYPE_CHECKING:
    from cardano_wallet.chain.blockfrost.client import BlockfrostClient
    from cardano_wallet.engine.client import WalletEngine
    from cardano_wallet.engine.models import Wallet

logger = logging.getLogger(__name__)

_METADATA_CONCURRENCY = 5


class AccountStatus(enum.StrEnum):
    """Whether the indexer knows the wallet's account."""

    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass
class AssetHolding:
    """A native asset held by a wallet."""

    unit: str
    quantity: int
    metadata: AssetMetadata = field(default_factory=AssetMetadata)

    @property
    def policy_id(self) -> str:
        return self.unit[:POLICY_ID_LENGTH]

    @property
    def asset_name(self) -> str:
        return self.unit[POLICY_ID_LENGTH:]

    @property
    def display_name(self) -> str:
        return self.metadata.name or hex_to_string(self.asset_name) or self.unit

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit": self.unit,
            "policy_id": self.policy_id,
            "asset_name": self.asset_name,
            "quantity": str(self.quantity),
            "display_name": self.display_name,
            "metadata": asdict(self.metadata),
        }


@dataclass
class WalletState:
    """Balance snapshot of a wallet."""

    status: AccountStatus
    balance: int = 0
    assets: list[AssetHolding] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "balance": str(self.balance),
            "assets": [a.to_dict() for a in self.assets],
        }


class AccountService:
    """Business logic for indexer-reported wallet state."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    async def get_wallet_state(self, wallet: Wallet) -> WalletState:
        """Fetch balance and native assets for *wallet*.

        A stake account the indexer has never seen is ``not_found`` with a
        zero balance. Wallets without a stake address are answered from the
        local UTXO set.

        Raises:
            ConfigurationError: If the indexer credential is missing or rejected.
            IndexerError: If the balance or asset list can't be fetched.
        """
        if not wallet.stake_address:
            return await self._local_state(wallet)

        indexer = self._engine.indexer(wallet.network)
        account = await indexer.get_account(wallet.stake_address)
        if account is None:
            return WalletState(status=AccountStatus.NOT_FOUND)

        balances = await indexer.get_account_assets(wallet.stake_address)
        holdings = [
            AssetHolding(unit=b.unit, quantity=b.quantity)
            for b in balances
            if b.unit != LOVELACE
        ]
        await self._attach_metadata(indexer, holdings)
        return WalletState(
            status=AccountStatus.FOUND,
            balance=account.controlled_amount,
            assets=holdings,
        )

    async def get_asset_metadata(self, indexer: BlockfrostClient, unit: str) -> AssetMetadata:
        """Best-effort metadata for one asset; failures give empty metadata."""
        try:
            metadata = await indexer.get_asset(unit)
        except ConfigurationError:
            raise
        except WalletError as exc:
            logger.warning("Asset metadata for %s unavailable: %s", unit, exc.message)
            return AssetMetadata()
        return metadata or AssetMetadata()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _attach_metadata(
        self, indexer: BlockfrostClient, holdings: list[AssetHolding]
    ) -> None:
        semaphore = asyncio.Semaphore(_METADATA_CONCURRENCY)

        async def attach(holding: AssetHolding) -> None:
            async with semaphore:
                holding.metadata = await self.get_asset_metadata(indexer, holding.unit)

        await asyncio.gather(*(attach(h) for h in holdings))

    async def _local_state(self, wallet: Wallet) -> WalletState:
        utxo_service = self._engine.utxo_service
        balance = await utxo_service.get_balance(wallet.id)
        assets = await utxo_service.get_asset_balances(wallet.id)
        has_utxos = await utxo_service.count_utxos(wallet.id) > 0
        return WalletState(
            status=AccountStatus.FOUND if has_utxos else AccountStatus.NOT_FOUND,
            balance=balance,
            assets=[AssetHolding(unit=u, quantity=q) for u, q in sorted(assets.items())],
        )
