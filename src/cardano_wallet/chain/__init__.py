"""Chain access — Cardano indexer clients."""

from cardano_wallet.chain.blockfrost import BlockfrostClient

__all__ = ["BlockfrostClient"]
