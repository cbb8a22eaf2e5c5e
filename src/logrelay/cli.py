"""CLI interface for logrelay."""

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console

from . import __version__
from . import output
from .errors import LogRelayError
from .service import LogService, SessionEvent, default_service, set_default_service
from .sources.command import CommandConfig, CommandSource


app = typer.Typer(
    name="logrelay",
    help="logrelay - stream an external log command to the terminal",
    no_args_is_help=True,
)
console = Console()

CommandOption = Annotated[
    str,
    typer.Option("--command", envvar="LOGRELAY_COMMAND", help="Log command to run"),
]
PidOption = Annotated[
    Optional[int],
    typer.Option("--pid", "-p", help="Only show logs from this process id"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Show debug logging"),
]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"logrelay v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """logrelay - follow, dump and clear logs from an external log command."""
    pass


def _setup(command: str, verbose: bool, kill_timeout: float = 2.0) -> LogService:
    """Configure logging and install the process-wide service."""
    output.configure_logging(verbose)
    try:
        config = CommandConfig.from_command_line(command, kill_timeout=kill_timeout)
    except ValueError as e:
        output.print_error(str(e))
        raise typer.Exit(1)

    set_default_service(LogService(CommandSource(config)))
    return default_service()


async def _follow(service: LogService, pid: int | None, queue_size: int) -> None:
    subscription = service.subscribe(queue_size)

    def on_session_end(event: SessionEvent) -> None:
        output.print_session_end(event)
        service.unsubscribe(subscription)

    service.add_listener(on_session_end)
    try:
        await service.start(pid)
        output.print_startup(service.source.name, pid)
        async for line in subscription:
            output.print_log_line(line)
    finally:
        service.remove_listener(on_session_end)
        service.unsubscribe(subscription)
        await service.stop()


@app.command()
def follow(
    pid: PidOption = None,
    command: CommandOption = "logcat",
    queue_size: Annotated[
        int,
        typer.Option("--queue-size", "-q", help="Lines buffered before the reader is paused"),
    ] = 1000,
    kill_timeout: Annotated[
        float,
        typer.Option("--kill-timeout", help="Seconds to wait before killing the log command"),
    ] = 2.0,
    verbose: VerboseOption = False,
) -> None:
    """Follow new log lines as they are written."""
    service = _setup(command, verbose, kill_timeout)

    try:
        asyncio.run(_follow(service, pid, queue_size))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped following.[/dim]")
    except LogRelayError as e:
        output.print_error(str(e))
        raise typer.Exit(1)


@app.command()
def dump(
    pid: PidOption = None,
    command: CommandOption = "logcat",
    verbose: VerboseOption = False,
) -> None:
    """Print the currently buffered log and exit."""
    service = _setup(command, verbose)

    try:
        lines = asyncio.run(service.snapshot(pid))
    except LogRelayError as e:
        output.print_error(str(e))
        raise typer.Exit(1)

    for line in lines:
        output.print_log_line(line)


@app.command()
def clear(
    command: CommandOption = "logcat",
    verbose: VerboseOption = False,
) -> None:
    """Clear the buffered log."""
    service = _setup(command, verbose)

    try:
        asyncio.run(service.clear())
    except LogRelayError as e:
        output.print_error(str(e))
        raise typer.Exit(1)

    output.print_info("Log cleared.")


if __name__ == "__main__":
    app()
