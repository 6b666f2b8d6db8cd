"""Progress stream — fan sync progress events out to subscribers.

Every subscriber owns an unbounded queue, so events are delivered in
publish order and never dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from types import TracebackType

    from cardano_wallet.notifications.events import SyncProgressEvent

logger = logging.getLogger(__name__)


class Subscription:
    """An async-iterable view of the progress stream.

    Usage::

        async with stream.subscribe(wallet_id="w1") as sub:
            async for event in sub:
                ...
                if event.is_complete:
                    break
    """

    def __init__(self, stream: ProgressStream, key: int, wallet_id: str | None) -> None:
        self._stream = stream
        self._key = key
        self._wallet_id = wallet_id
        self._queue: asyncio.Queue[SyncProgressEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def wallet_id(self) -> str | None:
        return self._wallet_id

    @property
    def closed(self) -> bool:
        return self._closed

    def accepts(self, event: SyncProgressEvent) -> bool:
        """Whether this subscription wants *event*."""
        return self._wallet_id is None or event.wallet_id == self._wallet_id

    def deliver(self, event: SyncProgressEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def pending(self) -> int:
        """Number of events delivered but not yet consumed."""
        return self._queue.qsize()

    async def get(self) -> SyncProgressEvent:
        """Wait for the next event.

        Raises:
            StopAsyncIteration: If the subscription was closed.
        """
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def close(self) -> None:
        """Detach from the stream and wake any waiting consumer."""
        if self._closed:
            return
        self._closed = True
        self._stream._remove(self._key)
        self._queue.put_nowait(None)

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> SyncProgressEvent:
        return await self.get()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ProgressStream:
    """Fan-out of :class:`SyncProgressEvent` to any number of subscribers.

    Usage::

        stream = ProgressStream()
        sub = stream.subscribe()
        stream.publish(SyncProgressEvent("w1", 0, 0, "Checking for updates...", SyncPhase.CHECKING))
        event = await sub.get()
        sub.close()
    """

    def __init__(self) -> None:
        self._subscribers: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, *, wallet_id: str | None = None) -> Subscription:
        """Register a subscriber, optionally limited to one wallet."""
        key = next(self._ids)
        sub = Subscription(self, key, wallet_id)
        self._subscribers[key] = sub
        return sub

    def publish(self, event: SyncProgressEvent) -> None:
        """Deliver *event* to every matching subscriber."""
        logger.debug(
            "progress %s %s %d/%d: %s",
            event.wallet_id, event.phase, event.current, event.total, event.message,
        )
        for sub in list(self._subscribers.values()):
            if sub.accepts(event):
                sub.deliver(event)

    def close(self) -> None:
        """Close every subscription."""
        for sub in list(self._subscribers.values()):
            sub.close()

    def _remove(self, key: int) -> None:
        self._subscribers.pop(key, None)
