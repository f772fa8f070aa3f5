"""Subcommands of ``osm-search``, one module per command."""

from __future__ import annotations

import importlib
import logging
import pkgutil
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


def discover_commands() -> Iterator[click.Command]:
    """Yield the ``cli`` command of every public module in this package.

    Raises:
        RuntimeError: If two modules define commands with the same name.
    """
    import osm_search.commands as commands_pkg

    seen: dict[str, str] = {}
    for module_info in pkgutil.iter_modules(commands_pkg.__path__):
        if module_info.name.startswith("_"):
            continue

        module = importlib.import_module(f"{commands_pkg.__name__}.{module_info.name}")
        cmd = getattr(module, "cli", None)
        if not isinstance(cmd, click.Command):
            logger.debug("Module %s has no command", module.__name__)
            continue

        if cmd.name in seen:
            raise RuntimeError(
                f"Command '{cmd.name}' is defined in both {seen[cmd.name]} and {module.__name__}"
            )
        seen[cmd.name] = module.__name__
        yield cmd
