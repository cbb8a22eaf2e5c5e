"""Log service that streams a log source to subscribers."""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .broadcaster import Broadcaster, Subscription
from .errors import AlreadyRunning, IOFailure, LogRelayError, StreamEnded
from .sources.base import LiveSource, LogLine, LogSource
from .sources.command import CommandSource

logger = logging.getLogger(__name__)


class ServiceState(Enum):
    IDLE = "idle"
    STREAMING = "streaming"


@dataclass
class SessionEvent:
    """How a streaming session ended without stop() being called."""

    kind: str  # "ended" or "failed"
    source: str
    error: LogRelayError
    returncode: int | None = None
    timestamp: datetime = field(default_factory=datetime.now)


SessionListener = Callable[[SessionEvent], None]


class LogService:
    """Owns one log source, its streaming session and the subscriber fan-out.

    At most one streaming session (and so one log process) exists at a time.
    """

    def __init__(
        self,
        source: LogSource | None = None,
        broadcaster: Broadcaster | None = None,
    ):
        self.source = source or CommandSource()
        self.broadcaster = broadcaster or Broadcaster()
        self.last_event: SessionEvent | None = None

        self._state = ServiceState.IDLE
        self._lock = asyncio.Lock()
        self._live: LiveSource | None = None
        self._task: asyncio.Task | None = None
        self._listeners: list[SessionListener] = []

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._state is ServiceState.STREAMING

    async def start(self, pid: int | None = None) -> None:
        """Start streaming. Raises AlreadyRunning if a session is active."""
        async with self._lock:
            if self._state is ServiceState.STREAMING:
                raise AlreadyRunning()

            # SpawnFailure propagates and leaves the service idle
            live = await self.source.start_streaming(pid)

            self._live = live
            self._task = asyncio.create_task(self._pump(live), name=f"logrelay:{live.name}")
            self._state = ServiceState.STREAMING
            logger.info("Started streaming %s", live.name)

    async def stop(self) -> None:
        """Stop streaming. Subscribers stay registered. No-op when idle."""
        async with self._lock:
            if self._state is ServiceState.IDLE:
                return

            live, task = self._live, self._task
            self._release()

            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            if live is not None:
                await live.terminate()
            logger.info("Stopped streaming %s", self.source.name)

    def _release(self) -> None:
        self._live = None
        self._task = None
        self._state = ServiceState.IDLE

    async def _pump(self, live: LiveSource) -> None:
        """Read lines from the live source and publish them until it ends."""
        try:
            async for line in live.lines():
                await self.broadcaster.publish(line)
        except IOFailure as e:
            logger.warning("Log stream %s failed: %s", live.name, e)
            await self._end_session(live, "failed", e)
        except Exception as e:
            logger.exception("Unexpected error streaming %s", live.name)
            await self._end_session(live, "failed", IOFailure(str(e)))
        else:
            # Output closed without stop()
            error = StreamEnded(await live.wait())
            logger.info("Log stream %s ended with status %s", live.name, error.returncode)
            await self._end_session(live, "ended", error)

    async def _end_session(self, live: LiveSource, kind: str, error: LogRelayError) -> None:
        await live.terminate()
        # stop() may have taken the session meanwhile
        if self._live is not live:
            return
        self._release()

        returncode = error.returncode if isinstance(error, StreamEnded) else None
        self._emit(SessionEvent(kind=kind, source=live.name, error=error, returncode=returncode))

    def add_listener(self, listener: SessionListener) -> None:
        """Call listener once per session that ends without stop()."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: SessionEvent) -> None:
        self.last_event = event
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    async def snapshot(self, pid: int | None = None) -> list[LogLine]:
        """Dump the currently buffered log. Does not affect streaming."""
        return await self.source.snapshot(pid)

    async def clear(self) -> None:
        """Clear the buffered log."""
        await self.source.clear()

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        return self.broadcaster.subscribe(maxsize)

    def unsubscribe(self, subscription: Subscription) -> None:
        self.broadcaster.unsubscribe(subscription)


# Process-wide instance; install one at startup with set_default_service()
_default: LogService | None = None


def set_default_service(service: LogService | None) -> None:
    """Install (or with None, forget) the process-wide log service."""
    global _default
    _default = service


def default_service() -> LogService:
    """Return the process-wide log service, creating one on first use.

    Call ``await default_service().stop()`` before exiting so the log
    process is not left behind.
    """
    global _default
    if _default is None:
        _default = LogService()
    return _default
