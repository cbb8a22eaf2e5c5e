"""Log source implementations."""

from .base import LiveSource, LogLine, LogSource
from .command import CommandConfig, CommandSource, ProcessStream

__all__ = [
    "LogLine",
    "LogSource",
    "LiveSource",
    "CommandConfig",
    "CommandSource",
    "ProcessStream",
]
