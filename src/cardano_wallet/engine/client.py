"""WalletEngine — central engine client owning all services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cardano_wallet.config.settings import Network
from cardano_wallet.errors.indexer_errors import ConfigurationError

if TYPE_CHECKING:
    from cardano_wallet.chain.blockfrost.client import BlockfrostClient
    from cardano_wallet.config.settings import AppConfig
    from cardano_wallet.datastore.client import Datastore
    from cardano_wallet.engine.services.account_service import AccountService
    from cardano_wallet.engine.services.checkpoint_service import CheckpointService
    from cardano_wallet.engine.services.transaction_service import TransactionService
    from cardano_wallet.engine.services.utxo_service import UTXOService
    from cardano_wallet.engine.services.wallet_service import WalletService
    from cardano_wallet.engine.sync.coordinator import SyncCoordinator
    from cardano_wallet.metrics.collector import EngineMetrics
    from cardano_wallet.notifications.service import ProgressStream
    from cardano_wallet.taskmanager.manager import TaskManager

logger = logging.getLogger(__name__)

_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class WalletEngine:
    """Central engine that owns infrastructure, services and the sync coordinator.

    Usage::

        engine = WalletEngine(AppConfig())
        await engine.initialize()
        try:
            wallet = await engine.wallet_service.register_wallet("w1", "addr1...")
            result = await engine.sync_coordinator.full_sync(wallet)
        finally:
            await engine.close()
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        indexers: dict[Network, BlockfrostClient] | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            indexers: Pre-built indexer clients per network; missing networks
                get a client built from ``config.indexer``.
            metrics: Shared metrics (e.g. the HTTP app's registry); created
                here when omitted and metrics are enabled.
        """
        self._config = config
        self._initialized = False
        self._indexers: dict[Network, BlockfrostClient] = dict(indexers or {})

        # Infrastructure components
        self._datastore: Datastore | None = None
        self._progress: ProgressStream | None = None
        self._metrics: EngineMetrics | None = metrics
        self._task_manager: TaskManager | None = None

        # Services
        self._wallet_service: WalletService | None = None
        self._transaction_service: TransactionService | None = None
        self._utxo_service: UTXOService | None = None
        self._checkpoint_service: CheckpointService | None = None
        self._account_service: AccountService | None = None
        self._sync_coordinator: SyncCoordinator | None = None

    async def initialize(self) -> None:
        """Open the datastore, connect indexers and start services.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        # Import here to avoid circular deps
        from cardano_wallet.chain.blockfrost.client import BlockfrostClient
        from cardano_wallet.datastore.client import Datastore

        self._datastore = Datastore(self._config.db)
        await self._datastore.open()

        for network in Network:
            client = self._indexers.get(network)
            if client is None:
                client = BlockfrostClient(self._config.indexer, network)
                self._indexers[network] = client
            if not client.is_connected:
                await client.connect()

        from cardano_wallet.engine.services.account_service import AccountService
        from cardano_wallet.engine.services.checkpoint_service import CheckpointService
        from cardano_wallet.engine.services.transaction_service import TransactionService
        from cardano_wallet.engine.services.utxo_service import UTXOService
        from cardano_wallet.engine.services.wallet_service import WalletService

        self._wallet_service = WalletService(self)
        self._transaction_service = TransactionService(self)
        self._utxo_service = UTXOService(self)
        self._checkpoint_service = CheckpointService(self)
        self._account_service = AccountService(self)

        if self._metrics is None and self._config.metrics.enabled:
            from cardano_wallet.metrics.collector import EngineMetrics

            self._metrics = EngineMetrics()

        from cardano_wallet.engine.sync.coordinator import SyncCoordinator
        from cardano_wallet.notifications.service import ProgressStream

        self._progress = ProgressStream()
        self._sync_coordinator = SyncCoordinator(
            self, self._config.sync, progress=self._progress
        )

        # Task manager and cron jobs
        from functools import partial

        from cardano_wallet.taskmanager.manager import CronJob, TaskManager
        from cardano_wallet.taskmanager.tasks import task_calculate_metrics, task_sync_wallets

        if self._config.task.enabled:
            self._task_manager = TaskManager(metrics=self._metrics)
            self._task_manager.register(
                "sync_wallets",
                CronJob(
                    handler=partial(task_sync_wallets, self),
                    period=self._config.task.sync_period,
                    run_at_start=True,
                ),
            )
            if self._metrics is not None:
                self._task_manager.register(
                    "calculate_metrics",
                    CronJob(
                        handler=partial(task_calculate_metrics, self, self._metrics),
                        period=self._config.task.metrics_period,
                    ),
                )
            await self._task_manager.start()

        self._initialized = True
        logger.info("Wallet engine initialized")

    async def close(self) -> None:
        """Gracefully shut down all services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        # Stop task manager first (depends on services)
        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None

        if self._progress is not None:
            self._progress.close()
            self._progress = None

        self._sync_coordinator = None
        self._wallet_service = None
        self._transaction_service = None
        self._utxo_service = None
        self._checkpoint_service = None
        self._account_service = None

        for client in self._indexers.values():
            await client.close()

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        self._initialized = False
        logger.info("Wallet engine closed")

    @property
    def is_initialized(self) -> bool:
        """Check if the engine is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def datastore(self) -> Datastore:
        """Get the datastore instance.

        Raises:
            RuntimeError: If engine not initialized.
        """
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    def indexer(self, network: str) -> BlockfrostClient:
        """Get the indexer client for a network.

        Raises:
            ConfigurationError: If the network is not supported.
            RuntimeError: If engine not initialized.
        """
        try:
            key = Network(network)
        except ValueError as exc:
            raise ConfigurationError(f"unsupported network: {network}") from exc
        client = self._indexers.get(key)
        if client is None or not self._initialized:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return client

    @property
    def wallet_service(self) -> WalletService:
        """Get the wallet service."""
        if self._wallet_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._wallet_service

    @property
    def transaction_service(self) -> TransactionService:
        """Get the transaction service."""
        if self._transaction_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._transaction_service

    @property
    def utxo_service(self) -> UTXOService:
        """Get the UTXO service."""
        if self._utxo_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._utxo_service

    @property
    def checkpoint_service(self) -> CheckpointService:
        """Get the checkpoint service."""
        if self._checkpoint_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._checkpoint_service

    @property
    def account_service(self) -> AccountService:
        """Get the account service."""
        if self._account_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._account_service

    @property
    def sync_coordinator(self) -> SyncCoordinator:
        """Get the sync coordinator."""
        if self._sync_coordinator is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._sync_coordinator

    @property
    def progress(self) -> ProgressStream:
        """Get the sync progress stream."""
        if self._progress is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._progress

    @property
    def metrics(self) -> EngineMetrics | None:
        """Get the engine metrics (None if disabled)."""
        return self._metrics

    @property
    def task_manager(self) -> TaskManager | None:
        """Get the task manager (None if not enabled)."""
        return self._task_manager

    async def health_check(self) -> dict[str, str]:
        """Check health status of all engine components.

        Returns:
            Dictionary with component statuses.
        """
        status = {
            "engine": "ok" if self._initialized else "not_initialized",
            "datastore": "unknown",
        }
        if self._initialized:
            healthy = self._datastore is not None and await self._datastore.ping()
            status["datastore"] = "ok" if healthy else "error"
            for network, client in self._indexers.items():
                status[f"indexer_{network}"] = "ok" if client.is_connected else "not_connected"
        return status
