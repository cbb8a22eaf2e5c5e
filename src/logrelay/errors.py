"""Errors raised by log sources and the log service."""


class LogRelayError(Exception):
    """Base class for all logrelay errors."""


class SpawnFailure(LogRelayError):
    """The external log command could not be launched."""

    def __init__(self, command: list[str], reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Cannot launch {' '.join(command)!r}: {reason}")


class CommandFailed(LogRelayError):
    """A one-shot log command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"{' '.join(command)!r} exited with status {returncode}"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


class AlreadyRunning(LogRelayError):
    """A streaming session is already active."""

    def __init__(self, message: str = "Log stream is already running"):
        super().__init__(message)


class StreamEnded(LogRelayError):
    """The log command closed its output while streaming."""

    def __init__(self, returncode: int | None = None):
        self.returncode = returncode
        super().__init__(f"Log stream ended (exit status {returncode})")


class IOFailure(LogRelayError):
    """Reading the log stream failed for a reason other than a clean close."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Log stream read failed: {reason}")
