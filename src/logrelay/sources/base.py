"""Base classes for log sources."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime


@dataclass
class LogLine:
    """Represents a single log line."""

    content: str
    timestamp: datetime
    source: str

    def __str__(self) -> str:
        return self.content


class LiveSource(ABC):
    """A running log stream. Produces lines once and cannot be restarted."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def lines(self) -> AsyncIterator[LogLine]:
        """Yield lines as they are produced until the stream closes."""

    @abstractmethod
    async def terminate(self) -> None:
        """Stop the stream and release its resources. Safe to call twice."""

    @abstractmethod
    async def wait(self) -> int | None:
        """Wait for the stream to finish and return its exit status."""

    @property
    @abstractmethod
    def terminated(self) -> bool:
        """Whether terminate() has completed."""


class LogSource(ABC):
    """Abstract base class for log sources."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def snapshot(self, pid: int | None = None) -> list[LogLine]:
        """Read every currently buffered log line."""

    @abstractmethod
    async def clear(self) -> None:
        """Discard buffered log lines."""

    @abstractmethod
    async def start_streaming(self, pid: int | None = None) -> LiveSource:
        """Start following new log lines."""
