"""Tests for AccountService — indexer-reported balance and native assets."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from cardano_wallet.chain.blockfrost.models import LOVELACE, Amount
from cardano_wallet.engine.services.account_service import (
    AccountStatus,
    AssetHolding,
    WalletState,
)
from cardano_wallet.engine.sync.utxo_builder import UTXOEntry
from cardano_wallet.errors.indexer_errors import ConfigurationError, IndexerError

_STAKE = "stake_test1uqwallet"
_POLICY = "ab" * 28
_UNIT = _POLICY + "546f6b656e"  # "Token"
_NFT = "cd" * 28 + "4e4654"  # "NFT"


def _seed_account(blockfrost, *, balance: int = 7_000_000) -> None:
    blockfrost.add_account(_STAKE, ["addr_test1qwalletaaa"], balance=balance)
    blockfrost.account_assets[_STAKE] = [
        {"unit": LOVELACE, "quantity": str(balance)},
        {"unit": _UNIT, "quantity": "1000"},
        {"unit": _NFT, "quantity": "1"},
    ]


class TestWalletState:
    async def test_unknown_account(self, engine, wallet) -> None:
        state = await engine.account_service.get_wallet_state(wallet)
        assert state.status == AccountStatus.NOT_FOUND
        assert state.balance == 0
        assert state.assets == []

    async def test_balance_and_assets(self, engine, wallet, blockfrost) -> None:
        _seed_account(blockfrost)
        blockfrost.assets[_UNIT] = {
            "asset": _UNIT,
            "asset_name": "546f6b656e",
            "metadata": {"name": "Token", "ticker": "TOK", "decimals": 6},
        }

        state = await engine.account_service.get_wallet_state(wallet)

        assert state.status == AccountStatus.FOUND
        assert state.balance == 7_000_000
        assert [a.unit for a in state.assets] == [_UNIT, _NFT]
        token = state.assets[0]
        assert token.quantity == 1000
        assert token.metadata.ticker == "TOK"
        assert token.metadata.decimals == 6

    async def test_metadata_failure_degrades(self, engine, wallet, blockfrost) -> None:
        _seed_account(blockfrost)
        blockfrost.failing.add(f"/assets/{_NFT}")

        state = await engine.account_service.get_wallet_state(wallet)

        nft = state.assets[1]
        assert nft.metadata.name is None
        assert nft.display_name == "NFT"

    async def test_balance_failure_raises(self, engine, wallet, blockfrost) -> None:
        _seed_account(blockfrost)
        blockfrost.failing.add(f"/accounts/{_STAKE}")
        with pytest.raises(IndexerError):
            await engine.account_service.get_wallet_state(wallet)

    async def test_missing_key_raises(self, engine, wallet, indexer) -> None:
        indexer._api_key = ""
        with pytest.raises(ConfigurationError):
            await engine.account_service.get_wallet_state(wallet)

    async def test_enterprise_wallet_uses_local_utxos(self, engine, blockfrost) -> None:
        ent = await engine.wallet_service.register_wallet(
            "ent", "addr_test1qent", network="preprod"
        )
        empty = await engine.account_service.get_wallet_state(ent)
        assert empty.status == AccountStatus.NOT_FOUND

        async with engine.datastore.session() as session:
            await engine.utxo_service.stage_utxos(
                session,
                ent.id,
                [
                    UTXOEntry(
                        "a" * 64, 0, "addr_test1qent",
                        (Amount(LOVELACE, 3_000_000), Amount(_UNIT, 5)), block="b",
                    )
                ],
                synced_at=datetime.now(UTC),
            )
            await session.commit()

        state = await engine.account_service.get_wallet_state(ent)
        assert state.status == AccountStatus.FOUND
        assert state.balance == 3_000_000
        assert [(a.unit, a.quantity) for a in state.assets] == [(_UNIT, 5)]
        assert blockfrost.requests == []


class TestSerialization:
    def test_holding_to_dict(self) -> None:
        holding = AssetHolding(unit=_UNIT, quantity=12)
        data = holding.to_dict()
        assert data["policy_id"] == _POLICY
        assert data["asset_name"] == "546f6b656e"
        assert data["quantity"] == "12"
        assert data["display_name"] == "Token"
        assert data["metadata"]["name"] is None

    def test_state_to_dict(self) -> None:
        state = WalletState(status=AccountStatus.FOUND, balance=10**17)
        assert state.to_dict() == {
            "status": "found",
            "balance": "100000000000000000",
            "assets": [],
        }
