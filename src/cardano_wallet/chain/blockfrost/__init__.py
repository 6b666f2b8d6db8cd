"""Blockfrost — Cardano indexer REST API."""

from cardano_wallet.chain.blockfrost.client import BlockfrostClient
from cardano_wallet.chain.blockfrost.models import (
    LOVELACE,
    AccountInfo,
    AddressTransaction,
    Amount,
    AssetBalance,
    AssetMetadata,
    TransactionDetails,
    TransactionSummary,
    TransactionUtxos,
    TxInput,
    TxOutput,
)

__all__ = [
    "LOVELACE",
    "AccountInfo",
    "AddressTransaction",
    "Amount",
    "AssetBalance",
    "AssetMetadata",
    "BlockfrostClient",
    "TransactionDetails",
    "TransactionSummary",
    "TransactionUtxos",
    "TxInput",
    "TxOutput",
]
