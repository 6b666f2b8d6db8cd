"""Background task definitions — cron job handlers.

- ``sync_wallets`` — incremental sync of every registered wallet
- ``calculate_metrics`` — entity counts for Prometheus gauges
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cardano_wallet.engine.client import WalletEngine
    from cardano_wallet.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


async def task_sync_wallets(engine: WalletEngine) -> None:
    """Incrementally sync all registered wallets in batches.

    Wallets synced recently enough are answered from the store without
    touching the indexer.
    """
    try:
        wallets = await engine.wallet_service.get_wallets()
        if not wallets:
            return
        results = await engine.sync_coordinator.sync_many(wallets)
        failed = [wid for wid, r in results.items() if not r.success]
        if failed:
            logger.warning("Background sync failed for %d wallets: %s", len(failed), failed)
        logger.info("Background sync finished for %d wallets", len(results))
    except Exception:
        logger.exception("sync_wallets failed")


async def task_calculate_metrics(engine: WalletEngine, metrics: EngineMetrics) -> None:
    """Count entities and push them to Prometheus gauges."""
    try:
        metrics.set_stat("wallets", await engine.wallet_service.count_wallets())
        metrics.set_stat("transactions", await engine.transaction_service.count_transactions())
        metrics.set_stat("utxos", await engine.utxo_service.count_utxos())
        metrics.set_stat("unspent_utxos", await engine.utxo_service.count_utxos(unspent_only=True))
    except Exception:
        logger.exception("calculate_metrics failed")
