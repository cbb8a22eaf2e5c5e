"""Terminal output and logging setup using rich."""

import logging

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from .service import SessionEvent
from .sources.base import LogLine


console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Send library logging through the shared rich console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
        force=True,
    )


def print_startup(source: str, pid: int | None = None) -> None:
    """Print startup message."""
    target = f"[green]{source}[/green]"
    if pid is not None:
        target += f" [dim](pid {pid})[/dim]"
    console.print()
    console.print(
        Panel(
            f"[bold cyan]logrelay[/bold cyan] is following {target}\n"
            "[dim]Press Ctrl+C to stop[/dim]",
            box=box.ROUNDED,
            border_style="cyan",
        )
    )
    console.print()


def print_log_line(line: LogLine) -> None:
    """Print a log line verbatim."""
    console.print(line.content, markup=False, highlight=False)


def print_session_end(event: SessionEvent) -> None:
    """Print why a streaming session ended."""
    if event.kind == "failed":
        print_error(str(event.error))
    else:
        console.print(f"\n[yellow]{event.source} closed its output[/yellow] [dim](exit status {event.returncode})[/dim]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[cyan]{message}[/cyan]")
