"""logrelay - stream an external log command to live subscribers."""

__version__ = "0.1.0"

from .broadcaster import Broadcaster, Subscription
from .errors import (
    AlreadyRunning,
    CommandFailed,
    IOFailure,
    LogRelayError,
    SpawnFailure,
    StreamEnded,
)
from .service import (
    LogService,
    ServiceState,
    SessionEvent,
    default_service,
    set_default_service,
)
from .sources import CommandConfig, CommandSource, LogLine, LogSource

__all__ = [
    "__version__",
    "Broadcaster",
    "Subscription",
    "LogService",
    "ServiceState",
    "SessionEvent",
    "default_service",
    "set_default_service",
    "CommandConfig",
    "CommandSource",
    "LogLine",
    "LogSource",
    "LogRelayError",
    "SpawnFailure",
    "CommandFailed",
    "AlreadyRunning",
    "StreamEnded",
    "IOFailure",
]
