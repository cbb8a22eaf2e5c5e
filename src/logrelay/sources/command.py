"""Log source backed by an external log command (logcat by default)."""

import asyncio
import logging
import shlex
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ..errors import AlreadyRunning, CommandFailed, IOFailure, SpawnFailure
from .base import LiveSource, LogLine, LogSource

logger = logging.getLogger(__name__)


@dataclass
class CommandConfig:
    """How to invoke the external log command in each of its modes."""

    # Executable plus any leading arguments, e.g. ["adb", "logcat"]
    command: list[str] = field(default_factory=lambda: ["logcat"])

    dump_args: list[str] = field(default_factory=lambda: ["-d"])
    follow_args: list[str] = field(default_factory=lambda: ["-v", "brief"])
    clear_args: list[str] = field(default_factory=lambda: ["-c"])

    # Filter argument, only added for dump and follow
    pid_template: str = "--pid={pid}"

    # Seconds to wait after SIGTERM before sending SIGKILL
    kill_timeout: float = 2.0

    encoding: str = "utf-8"

    @classmethod
    def from_command_line(cls, command: str, **kwargs) -> "CommandConfig":
        """Build a config from a shell-style command string."""
        argv = shlex.split(command)
        if not argv:
            raise ValueError("Log command must not be empty")
        return cls(command=argv, **kwargs)

    def build(self, mode: str, pid: int | None = None) -> list[str]:
        """Return the argv for mode ("dump", "follow" or "clear")."""
        mode_args = {
            "dump": self.dump_args,
            "follow": self.follow_args,
            "clear": self.clear_args,
        }
        if mode not in mode_args:
            raise ValueError(f"Unknown command mode: {mode}")

        argv = list(self.command)
        if pid is not None and mode != "clear":
            argv.append(self.pid_template.format(pid=pid))
        return argv + list(mode_args[mode])


def _split_output(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]


async def _spawn(argv: list[str], **kwargs) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(*argv, **kwargs)
    except OSError as e:
        raise SpawnFailure(argv, e.strerror or str(e)) from e


class ProcessStream(LiveSource):
    """Lines read from the stdout of a running log command."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        argv: list[str],
        name: str,
        encoding: str = "utf-8",
        kill_timeout: float = 2.0,
    ):
        self.argv = argv
        self.encoding = encoding
        self.kill_timeout = kill_timeout
        self._process = process
        self._cancelled = False
        self._terminated = False
        super().__init__(name=name)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def terminated(self) -> bool:
        return self._terminated or self._process.returncode is not None

    async def lines(self) -> AsyncIterator[LogLine]:
        """Yield lines until the command closes stdout or the stream is terminated."""
        while not self._cancelled:
            try:
                raw = await self._readline()
            except OSError as e:
                raise IOFailure(str(e)) from e

            if not raw:
                break  # EOF

            yield LogLine(
                content=raw.decode(self.encoding, errors="replace").rstrip("\r\n"),
                timestamp=datetime.now(),
                source=self.name,
            )

    async def _readline(self) -> bytes:
        """Read one line of any length. Returns b"" at EOF."""
        stdout = self._process.stdout
        chunks = []
        while True:
            try:
                chunks.append(await stdout.readuntil(b"\n"))
            except asyncio.IncompleteReadError as e:
                chunks.append(e.partial)  # EOF
            except asyncio.LimitOverrunError as e:
                # Longer than the reader limit, take what is buffered and keep going
                chunks.append(await stdout.readexactly(e.consumed))
                continue
            return b"".join(chunks)

    async def wait(self) -> int | None:
        return await self._process.wait()

    async def terminate(self) -> None:
        """Terminate the command, escalating to SIGKILL after kill_timeout."""
        self._cancelled = True
        process = self._process

        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass

            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Log command (pid %s) ignored SIGTERM for %.1fs, killing it",
                    process.pid,
                    self.kill_timeout,
                )
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        if not self._terminated:
            logger.debug("Log command (pid %s) exited with %s", process.pid, process.returncode)
        self._terminated = True


class CommandSource(LogSource):
    """Read, follow and clear logs through an external command."""

    def __init__(
        self,
        config: CommandConfig | None = None,
        default_pid: int | None = None,
        name: str | None = None,
    ):
        """
        Initialize the command source.

        Args:
            config: Command invocation settings (logcat defaults)
            default_pid: Process filter used when a call passes none
            name: Display name for produced lines (defaults to the executable name)
        """
        self.config = config or CommandConfig()
        self.default_pid = default_pid
        self._live: ProcessStream | None = None
        super().__init__(name=name or Path(self.config.command[0]).name)

    @property
    def live(self) -> ProcessStream | None:
        """The most recently started stream, if any."""
        return self._live

    def _resolve_pid(self, pid: int | None) -> int | None:
        return pid if pid is not None else self.default_pid

    def _decode(self, data: bytes) -> str:
        return data.decode(self.config.encoding, errors="replace")

    async def _run(self, argv: list[str]) -> str:
        """Run a one-shot command to completion and return its stdout."""
        process = await _spawn(
            argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        logger.debug("Running %s (pid %s)", argv, process.pid)

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            raise CommandFailed(argv, process.returncode, self._decode(stderr))
        return self._decode(stdout)

    async def snapshot(self, pid: int | None = None) -> list[LogLine]:
        """Dump the buffered log and return its lines in order."""
        argv = self.config.build("dump", self._resolve_pid(pid))
        output = await self._run(argv)
        now = datetime.now()
        return [
            LogLine(content=line, timestamp=now, source=self.name)
            for line in _split_output(output)
        ]

    async def clear(self) -> None:
        """Clear the buffered log."""
        await self._run(self.config.build("clear"))

    async def start_streaming(self, pid: int | None = None) -> ProcessStream:
        """Spawn the follow command and return its live stream."""
        if self._live is not None and not self._live.terminated:
            raise AlreadyRunning()

        argv = self.config.build("follow", self._resolve_pid(pid))
        # stderr is discarded so an unread pipe never stalls the command
        process = await _spawn(
            argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        logger.debug("Streaming %s (pid %s)", argv, process.pid)

        self._live = ProcessStream(
            process,
            argv,
            name=self.name,
            encoding=self.config.encoding,
            kill_timeout=self.config.kill_timeout,
        )
        return self._live
