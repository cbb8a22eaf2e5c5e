"""Fan-out of log lines to live subscribers."""

import asyncio
import itertools
import logging

from .sources.base import LogLine

logger = logging.getLogger(__name__)

_END = object()


class Subscription:
    """A registered subscriber and its bounded delivery queue.

    Iterate it with ``async for`` to receive lines. Used as an async context
    manager it unsubscribes itself on exit.
    """

    def __init__(self, broadcaster: "Broadcaster", subscriber_id: int, maxsize: int):
        self.id = subscriber_id
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def qsize(self) -> int:
        return self._queue.qsize()

    async def _deliver(self, line: LogLine) -> bool:
        """Queue a line, waiting for room. Returns False if the subscription closed first."""
        if self._closed.is_set():
            return False

        try:
            self._queue.put_nowait(line)
            return True
        except asyncio.QueueFull:
            pass

        put = asyncio.ensure_future(self._queue.put(line))
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({put, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            put.cancel()
            closed.cancel()
        return put.done() and not put.cancelled()

    def _close(self) -> None:
        self._closed.set()
        # Wake a consumer blocked on an empty queue
        if self._queue.empty():
            self._queue.put_nowait(_END)

    async def get(self) -> LogLine:
        """Wait for the next line. Raises StopAsyncIteration once unsubscribed and drained."""
        if self._closed.is_set() and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> LogLine:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._broadcaster.unsubscribe(self)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Subscription {self.id} {state} queued={self.qsize()}>"


class Broadcaster:
    """Deliver each published line to every currently registered subscriber.

    Backpressure: publish() suspends the producer while any subscriber's queue
    is full, until that subscriber reads or unsubscribes. Lines published with
    no subscribers are discarded, so nothing is replayed to later subscribers.
    """

    def __init__(self, queue_size: int = 1000):
        """
        Initialize the broadcaster.

        Args:
            queue_size: Default bound of each subscriber queue (0 = unbounded)
        """
        self.queue_size = queue_size
        self._subscribers: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        """Register a new subscriber."""
        subscription = Subscription(
            self,
            next(self._ids),
            self.queue_size if maxsize is None else maxsize,
        )
        self._subscribers[subscription.id] = subscription
        logger.debug("Subscriber %s registered", subscription.id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscriber. Lines already queued stay readable; nothing more is delivered."""
        if self._subscribers.pop(subscription.id, None) is not None:
            logger.debug("Subscriber %s removed", subscription.id)
        subscription._close()

    async def publish(self, line: LogLine) -> None:
        """Deliver line to every subscriber registered when the call starts."""
        for subscription in list(self._subscribers.values()):
            await subscription._deliver(line)

    def close(self) -> None:
        """Unsubscribe everyone, ending their iterators."""
        for subscription in list(self._subscribers.values()):
            self.unsubscribe(subscription)
