"""
Pytest configuration and fixtures
"""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

import pytest

from logrelay.broadcaster import Broadcaster
from logrelay.service import LogService
from logrelay.sources.base import LiveSource, LogLine, LogSource
from logrelay.sources.command import CommandConfig, CommandSource


FAKE_TOOL = Path(__file__).parent / "fake_logtool.py"

_EOF = object()


def make_line(content: str, source: str = "test") -> LogLine:
    return LogLine(content=content, timestamp=datetime.now(), source=source)


class FakeLiveSource(LiveSource):
    """In-memory live stream fed by the test."""

    def __init__(self, name: str = "fake"):
        super().__init__(name=name)
        self.returncode: int | None = None
        self.terminate_calls = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._terminated = False

    def emit(self, content: str) -> None:
        self._queue.put_nowait(content)

    def finish(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self._queue.put_nowait(_EOF)

    def fail(self, error: Exception) -> None:
        self._queue.put_nowait(error)

    @property
    def terminated(self) -> bool:
        return self._terminated

    async def lines(self):
        while not self._terminated:
            item = await self._queue.get()
            if item is _EOF:
                break
            if isinstance(item, Exception):
                raise item
            yield make_line(item, self.name)

    async def wait(self) -> int | None:
        return self.returncode

    async def terminate(self) -> None:
        self.terminate_calls += 1
        self._terminated = True
        self._queue.put_nowait(_EOF)


class FakeSource(LogSource):
    """In-memory log source that records how it was used."""

    def __init__(self, records: list[str] | None = None):
        super().__init__(name="fake")
        self.records = list(records or [])
        self.start_calls = 0
        self.spawn_error: Exception | None = None
        self.lives: list[FakeLiveSource] = []

    @property
    def live(self) -> FakeLiveSource | None:
        return self.lives[-1] if self.lives else None

    async def snapshot(self, pid: int | None = None) -> list[LogLine]:
        return [make_line(r, self.name) for r in self.records]

    async def clear(self) -> None:
        self.records.clear()

    async def start_streaming(self, pid: int | None = None) -> FakeLiveSource:
        if self.spawn_error is not None:
            raise self.spawn_error
        self.start_calls += 1
        live = FakeLiveSource(self.name)
        self.lives.append(live)
        return live


@pytest.fixture
def fake_source():
    return FakeSource(records=["one", "two"])


@pytest.fixture
def service(fake_source):
    return LogService(source=fake_source, broadcaster=Broadcaster(queue_size=100))


@pytest.fixture
def log_store(tmp_path, monkeypatch):
    """Buffered records read by the fake log tool."""
    store = tmp_path / "logbuffer.txt"
    store.write_text("")
    monkeypatch.setenv("FAKE_LOG_STORE", str(store))
    for name in ("FAKE_LOG_DELAY", "FAKE_LOG_HOLD", "FAKE_LOG_FAIL", "FAKE_LOG_IGNORE_TERM"):
        monkeypatch.delenv(name, raising=False)
    return store


@pytest.fixture
def spawn_log(tmp_path, monkeypatch):
    """File the fake log tool appends its arguments to on every run."""
    path = tmp_path / "spawns.txt"
    monkeypatch.setenv("FAKE_LOG_SPAWNS", str(path))
    return path


@pytest.fixture
def tool_config():
    return CommandConfig(command=[sys.executable, str(FAKE_TOOL)], kill_timeout=1.0)


@pytest.fixture
def command_source(tool_config, log_store):
    return CommandSource(tool_config, name="fake-logcat")
