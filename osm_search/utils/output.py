"""Rich console output helpers for osm-search."""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

# Module-level verbosity flags (set by cli.py after argument parsing)
_verbose_enabled: bool = False

# Custom theme for osm-search
THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "feature.kind": "bold",
        "feature.id": "magenta",
    }
)

# Global console instances
console = Console(theme=THEME, stderr=False)
error_console = Console(theme=THEME, stderr=True)


def set_verbosity(*, verbose: bool = False, debug: bool = False) -> None:
    """Configure module-level verbosity flags.

    Called from the CLI entry point after argument parsing. In debug mode
    library log records are also shown on stderr.
    """
    global _verbose_enabled
    _verbose_enabled = verbose or debug  # debug implies verbose

    if debug:
        root = logging.getLogger("osm_search")
        if not any(isinstance(h, RichHandler) for h in root.handlers):
            root.addHandler(RichHandler(console=error_console, show_path=False))
        root.setLevel(logging.DEBUG)


def set_color(enabled: bool) -> None:
    """Enable or disable color on both console instances."""
    console.no_color = not enabled
    error_console.no_color = not enabled


def info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{escape(message)}[/info]")


def warning(message: str) -> None:
    """Print a warning message to stderr."""
    error_console.print(f"[warning]Warning:[/warning] {escape(message)}")


def error(message: str, hint: str | None = None) -> None:
    """Print an error message to stderr.

    Args:
        message: The error message.
        hint: Optional hint for resolution.
    """
    error_console.print(f"[error]Error:[/error] {escape(message)}")
    if hint:
        error_console.print(f"  [info]Hint:[/info] {hint}")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/success]")


def verbose(message: str) -> None:
    """Print a message only when verbose mode is enabled."""
    if _verbose_enabled:
        console.print(f"[info]{escape(message)}[/info]")


def create_table(title: str | None = None, **kwargs: Any) -> Table:
    """Create a styled table.

    Args:
        title: Optional table title.
        **kwargs: Additional Table arguments.

    Returns:
        Rich Table instance.
    """
    return Table(title=title, **kwargs)
