"""Sync coordinator — one ledger sync per wallet at a time.

Per wallet the coordinator is ``IDLE``, ``SYNCING`` or ``COOLDOWN``. The
in-progress registry and cooldown map live on the instance and are
checked-and-set under an ``asyncio.Lock``. Different wallets sync
concurrently; their rows never overlap.

A pipeline run:

1. ``checking``: resolve the wallet's payment addresses.
2. List transaction hashes above the watermark and drop those already stored.
3. ``downloading``: fetch summary + inputs/outputs of every new hash.
4. Reconcile the UTXO set and persist transactions, changed UTXOs and the
   new watermark in one database transaction.
5. ``complete``.

Failures and timeouts become a :class:`SyncResult` with ``success=False``;
the watermark is left where it was and no cooldown starts.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cardano_wallet.engine.sync.address_resolver import AddressResolver
from cardano_wallet.engine.sync.results import (
    SyncOptions,
    SyncResult,
    SyncState,
    SyncStatus,
    WalletData,
)
from cardano_wallet.engine.sync.transaction_fetcher import FetchOutcome, TransactionFetcher
from cardano_wallet.engine.sync.utxo_builder import UTXOBuilder
from cardano_wallet.errors.definitions import (
    ErrCooldownActive,
    ErrSyncInProgress,
    ErrSyncTimeout,
)
from cardano_wallet.errors.wallet_errors import WalletError
from cardano_wallet.notifications.events import SyncPhase, SyncProgressEvent

if TYPE_CHECKING:
    from cardano_wallet.config.settings import SyncConfig
    from cardano_wallet.engine.client import WalletEngine
    from cardano_wallet.engine.models import Wallet
    from cardano_wallet.notifications.service import ProgressStream

logger = logging.getLogger(__name__)

UP_TO_DATE = "Up to date"
CHECKING = "Checking for updates..."


def next_watermark(since_block: int, heights: dict[str, int], outcome: FetchOutcome) -> int:
    """Highest block that is safe to record as fully ingested.

    Every listed hash is stored after a run except the failed ones, so the
    highest listed block counts, capped below the lowest failed transaction
    and never below *since_block*.
    """
    watermark = max(heights.values(), default=since_block)
    failed_heights = [heights[h] for h in outcome.failed if h in heights]
    if failed_heights:
        watermark = min(watermark, min(failed_heights) - 1)
    return max(since_block, watermark)


class SyncCoordinator:
    """Orchestrates address resolution, fetching, reconciliation and persistence.

    Args:
        engine: Engine providing datastore, services and indexer clients.
        config: Sync settings (max age, cooldown, timeout, batching).
        progress: Stream receiving progress events, if any.
        clock: Monotonic clock in seconds, for cooldown bookkeeping.
        sleep: Coroutine used for the inter-batch delay.
    """

    def __init__(
        self,
        engine: WalletEngine,
        config: SyncConfig,
        *,
        progress: ProgressStream | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._engine = engine
        self._config = config
        self._progress = progress
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._in_progress: set[str] = set()
        self._last_success: dict[str, float] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def is_syncing(self, wallet_id: str) -> bool:
        return wallet_id in self._in_progress

    def cooldown_remaining(self, wallet_id: str) -> float:
        """Seconds left before a non-forced sync is accepted again."""
        last = self._last_success.get(wallet_id)
        if last is None:
            return 0.0
        return max(0.0, self._config.cooldown_seconds - (self._clock() - last))

    def state(self, wallet_id: str) -> SyncState:
        if self.is_syncing(wallet_id):
            return SyncState.SYNCING
        if self.cooldown_remaining(wallet_id) > 0:
            return SyncState.COOLDOWN
        return SyncState.IDLE

    def forget(self, wallet_id: str) -> None:
        """Drop cooldown bookkeeping for a deleted or reset wallet."""
        self._last_success.pop(wallet_id, None)

    # ------------------------------------------------------------------
    # Sync entry points
    # ------------------------------------------------------------------

    async def sync_wallet(self, wallet: Wallet, options: SyncOptions | None = None) -> SyncResult:
        """Bring a wallet's local ledger up to date.

        Never raises for sync failures; inspect ``success`` and ``error_code``.

        Args:
            wallet: Wallet to sync.
            options: Force / max-age options.

        Returns:
            A :class:`SyncResult`.
        """
        options = options or SyncOptions()
        start = self._clock()

        rejection = await self._acquire(wallet.id, force=options.force_full)
        if rejection is not None:
            return self._reject(wallet.id, rejection)

        try:
            if not options.force_full and await self._is_fresh(wallet.id, options.max_age):
                result = await self._stored_result(wallet.id)
                self._emit(wallet.id, 0, 0, UP_TO_DATE, SyncPhase.COMPLETE)
                self._record("fresh")
                return result
            return await self._run_and_record(wallet, start)
        finally:
            await self._release(wallet.id)

    async def incremental_sync(self, wallet: Wallet) -> SyncResult:
        """Sync only if the stored data is older than the configured max age."""
        return await self.sync_wallet(wallet, SyncOptions(force_full=False))

    async def full_sync(self, wallet: Wallet) -> SyncResult:
        """Sync regardless of cooldown and staleness."""
        return await self.sync_wallet(wallet, SyncOptions(force_full=True))

    async def sync_many(
        self, wallets: Iterable[Wallet], options: SyncOptions | None = None
    ) -> dict[str, SyncResult]:
        """Sync several wallets in fixed-size concurrent batches.

        Batches run one after another with a short delay in between so the
        indexer never sees more than one batch of wallets at once.
        """
        wallets = list(wallets)
        size = self._config.batch_size
        batches = [wallets[i : i + size] for i in range(0, len(wallets), size)]
        results: dict[str, SyncResult] = {}

        for position, batch in enumerate(batches):
            outcomes = await asyncio.gather(*(self.sync_wallet(w, options) for w in batch))
            for wallet, result in zip(batch, outcomes, strict=True):
                results[wallet.id] = result
            if position < len(batches) - 1:
                await self._sleep(self._config.batch_delay_seconds)

        return results

    async def get_wallet_data(self, wallet: Wallet, *, auto_sync: bool = True) -> WalletData:
        """Return the stored ledger, syncing first when it is stale."""
        if auto_sync and await self._is_stale(wallet.id):
            await self.incremental_sync(wallet)

        engine = self._engine
        checkpoint = await engine.checkpoint_service.get_checkpoint(wallet.id)
        return WalletData(
            transactions=await engine.transaction_service.get_transactions(wallet.id),
            utxos=await engine.utxo_service.get_utxos(wallet.id),
            last_sync=checkpoint.last_full_sync if checkpoint is not None else None,
            is_stale=await self._is_stale(wallet.id),
        )

    async def reset_and_resync(self, wallet: Wallet) -> SyncResult:
        """Purge the wallet's ledger data and sync from genesis.

        The wallet stays registered as syncing from before the purge until
        the resync finishes, so no other sync can interleave with either.

        Returns:
            The full sync result, or an in-progress rejection without
            touching stored data.
        """
        start = self._clock()
        rejection = await self._acquire(wallet.id, force=True)
        if rejection is not None:
            return self._reject(wallet.id, rejection)

        try:
            await self._engine.wallet_service.clear_ledger(wallet.id)
            self.forget(wallet.id)
            logger.info("Reset ledger data for wallet %s", wallet.id)
            return await self._run_and_record(wallet, start)
        finally:
            await self._release(wallet.id)

    async def get_sync_status(self, wallet_id: str) -> SyncStatus:
        checkpoint = await self._engine.checkpoint_service.get_checkpoint(wallet_id)
        return SyncStatus(
            wallet_id=wallet_id,
            state=self.state(wallet_id),
            last_sync_block=checkpoint.last_sync_block if checkpoint is not None else 0,
            last_full_sync=checkpoint.last_full_sync if checkpoint is not None else None,
            cooldown_remaining=self.cooldown_remaining(wallet_id),
            is_stale=await self._is_stale(wallet_id),
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run_and_record(self, wallet: Wallet, start: float) -> SyncResult:
        result = await self._run(wallet)
        result.duration = self._clock() - start
        if result.success:
            self._last_success[wallet.id] = self._clock()
        self._record(
            "success" if result.success else "failure",
            duration=result.duration,
            new_transactions=result.new_transactions,
        )
        return result

    async def _run(self, wallet: Wallet) -> SyncResult:
        """Run the pipeline under the overall timeout and convert failures."""
        try:
            return await asyncio.wait_for(
                self._pipeline(wallet), timeout=self._config.timeout_seconds
            )
        except TimeoutError:
            logger.warning("Sync of wallet %s timed out", wallet.id)
            error: WalletError = ErrSyncTimeout
        except WalletError as exc:
            logger.warning("Sync of wallet %s failed: %s", wallet.id, exc.message)
            error = exc
        except Exception as exc:
            logger.exception("Sync of wallet %s failed unexpectedly", wallet.id)
            error = WalletError(f"sync failed: {exc}", code="sync-failed")

        self._emit(wallet.id, 0, 0, f"Sync failed: {error.message}", SyncPhase.COMPLETE)
        return SyncResult.failure(wallet.id, error.message, error.code)

    async def _pipeline(self, wallet: Wallet) -> SyncResult:
        engine = self._engine
        wallet_id = wallet.id
        self._emit(wallet_id, 0, 0, CHECKING, SyncPhase.CHECKING)

        indexer = engine.indexer(wallet.network)
        addresses = await AddressResolver(indexer).resolve_wallet_addresses(wallet)
        since_block = await engine.checkpoint_service.get_last_sync_block(wallet_id)
        logger.info(
            "Sync starting for wallet %s: %d addresses, last block %d",
            wallet_id, len(addresses), since_block,
        )

        fetcher = TransactionFetcher(
            indexer, max_concurrency=engine.config.indexer.max_concurrent_requests
        )
        heights: dict[str, int] = {}
        if addresses:
            heights = await fetcher.list_address_transactions(addresses, since_block)
        known = await engine.transaction_service.get_transaction_hashes(wallet_id)
        new_hashes = set(heights) - known

        if not new_hashes:
            watermark = next_watermark(since_block, heights, FetchOutcome())
            await self._persist(wallet_id, addresses, FetchOutcome(), watermark)
            result = await self._stored_result(wallet_id)
            result.last_sync_block = watermark
            self._emit(wallet_id, 0, 0, UP_TO_DATE, SyncPhase.COMPLETE)
            logger.info("Wallet %s up to date at block %d", wallet_id, watermark)
            return result

        total = len(new_hashes)

        def on_progress(done: int, expected: int) -> None:
            self._emit(
                wallet_id, done, expected, f"Downloading {done}/{expected}",
                SyncPhase.DOWNLOADING, new_items_count=total,
            )

        outcome = await fetcher.fetch_transaction_details(new_hashes, on_progress)
        watermark = next_watermark(since_block, heights, outcome)
        created, updated = await self._persist(wallet_id, addresses, outcome, watermark)

        result = await self._stored_result(wallet_id)
        result.new_transactions = len(outcome.details)
        result.utxos_created = created
        result.utxos_updated = updated
        result.skipped_transactions = len(outcome.failed)
        result.last_sync_block = watermark
        self._emit(wallet_id, total, total, UP_TO_DATE, SyncPhase.COMPLETE, new_items_count=total)
        logger.info(
            "Sync complete for wallet %s: %d new transactions (%d skipped), "
            "%d utxos created, %d updated, watermark %d",
            wallet_id, len(outcome.details), len(outcome.failed), created, updated, watermark,
        )
        return result

    async def _persist(
        self,
        wallet_id: str,
        addresses: set[str],
        outcome: FetchOutcome,
        watermark: int,
    ) -> tuple[int, int]:
        """Reconcile and write everything from one run in a single transaction."""
        engine = self._engine
        now = datetime.now(UTC)
        builder = UTXOBuilder(
            addresses, reject_conflicting_spends=self._config.reject_conflicting_spends
        )
        async with engine.datastore.transaction() as session:
            existing = await engine.utxo_service.load_entries(session, wallet_id)
            build = builder.build(outcome.sorted_details(), existing)
            await engine.transaction_service.stage_transactions(
                session, wallet_id, outcome.details, synced_at=now
            )
            await engine.utxo_service.stage_utxos(
                session, wallet_id, build.changed(), synced_at=now
            )
            await engine.checkpoint_service.stage_advance(
                session, wallet_id, watermark, synced_at=now
            )
        return len(build.created), len(build.updated)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _acquire(self, wallet_id: str, *, force: bool) -> WalletError | None:
        """Atomically register a sync, or return the reason it is rejected."""
        async with self._lock:
            if wallet_id in self._in_progress:
                return ErrSyncInProgress
            if not force and self.cooldown_remaining(wallet_id) > 0:
                return ErrCooldownActive
            self._in_progress.add(wallet_id)
            return None

    async def _release(self, wallet_id: str) -> None:
        async with self._lock:
            self._in_progress.discard(wallet_id)

    def _reject(self, wallet_id: str, rejection: WalletError) -> SyncResult:
        """Report a refused sync to metrics and subscribers."""
        self._record("in_progress" if rejection is ErrSyncInProgress else "cooldown")
        self._emit(wallet_id, 0, 0, rejection.message, SyncPhase.COMPLETE)
        return SyncResult.failure(wallet_id, rejection.message, rejection.code)

    async def _is_fresh(self, wallet_id: str, max_age: float | None) -> bool:
        age = await self._engine.checkpoint_service.get_age(wallet_id)
        limit = self._config.max_age_seconds if max_age is None else max_age
        return age is not None and age <= limit

    async def _is_stale(self, wallet_id: str) -> bool:
        return not await self._is_fresh(wallet_id, None)

    async def _stored_result(self, wallet_id: str) -> SyncResult:
        engine = self._engine
        return SyncResult(
            wallet_id=wallet_id,
            success=True,
            last_sync_block=await engine.checkpoint_service.get_last_sync_block(wallet_id),
            transactions=await engine.transaction_service.get_transactions(wallet_id),
            utxos=await engine.utxo_service.get_utxos(wallet_id),
        )

    def _emit(
        self,
        wallet_id: str,
        current: int,
        total: int,
        message: str,
        phase: SyncPhase,
        *,
        new_items_count: int = 0,
    ) -> None:
        if self._progress is None:
            return
        self._progress.publish(
            SyncProgressEvent(
                wallet_id=wallet_id,
                current=current,
                total=total,
                message=message,
                phase=phase,
                new_items_count=new_items_count,
            )
        )

    def _record(
        self, outcome: str, *, duration: float = 0.0, new_transactions: int = 0
    ) -> None:
        metrics = self._engine.metrics
        if metrics is not None:
            metrics.record_sync(outcome, duration=duration, new_transactions=new_transactions)
