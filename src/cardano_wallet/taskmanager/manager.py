"""Task manager — periodic background jobs on asyncio tasks.

Each ``CronJob`` has a period in seconds and a handler coroutine. A job can
ask to run once right after start (``run_at_start``), which is how the
wallet sync job catches up after the server was down.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from cardano_wallet.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CronJob:
    """A recurring background job."""

    handler: Callable[[], Awaitable[None]]
    period: float  # seconds
    name: str = ""
    run_at_start: bool = False


class TaskManager:
    """Runs registered cron jobs until stopped.

    Usage::

        tm = TaskManager(metrics=engine_metrics)
        tm.register("sync_wallets", CronJob(handler=..., period=300))
        await tm.start()
        ...
        await tm.stop()
    """

    def __init__(self, *, metrics: EngineMetrics | None = None) -> None:
        self._jobs: dict[str, CronJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._running = False
        self._metrics = metrics

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> dict[str, CronJob]:
        """Registered jobs (name → CronJob)."""
        return dict(self._jobs)

    def register(self, name: str, job: CronJob) -> None:
        """Register a cron job; starts it immediately if the manager is running."""
        named = replace(job, name=name)
        self._jobs[name] = named
        if self._running:
            self._tasks[name] = asyncio.create_task(self._loop(named))

    async def start(self) -> None:
        """Start all registered cron jobs."""
        if self._running:
            return
        self._running = True
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._loop(job))
        logger.info("TaskManager started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Cancel all running jobs and wait for them to finish."""
        if not self._running:
            return
        self._running = False
        for task in self._tasks.values():
            task.cancel()
        results = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        for r in results:
            if isinstance(r, Exception) and not isinstance(r, asyncio.CancelledError):
                logger.error("Task error during shutdown: %s", r)
        self._tasks.clear()
        logger.info("TaskManager stopped")

    async def trigger(self, name: str) -> None:
        """Run one job now, outside its schedule.

        Raises:
            KeyError: If no job is registered under *name*.
        """
        await self._execute(self._jobs[name])

    async def _loop(self, job: CronJob) -> None:
        if job.run_at_start:
            await self._execute(job)
        while self._running:
            await asyncio.sleep(job.period)
            if not self._running:
                break
            await self._execute(job)

    async def _execute(self, job: CronJob) -> None:
        name = job.name or "unnamed"
        try:
            if self._metrics:
                with self._metrics.track_cron(name):
                    await job.handler()
            else:
                await job.handler()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Cron job %r failed", name)
