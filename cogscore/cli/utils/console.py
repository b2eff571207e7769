"""Console helpers shared by CLI commands."""

from typing import Optional

from rich.console import Console

_console: Optional[Console] = None


def get_console() -> Console:
    """Return the shared rich console."""
    global _console
    if _console is None:
        _console = Console(highlight=False)
    return _console


def print_error(message: str) -> None:
    get_console().print(f"[red]✗ {message}[/red]")


def print_warning(message: str) -> None:
    get_console().print(f"[yellow]⚠ {message}[/yellow]")


def print_success(message: str) -> None:
    get_console().print(f"[green]✓ {message}[/green]")
