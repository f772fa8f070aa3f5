"""Command-line interface for osm-search."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click

from osm_search import __version__
from osm_search.config import Config, load_config
from osm_search.exceptions import ConfigError
from osm_search.utils.output import (
    error,
    set_color,
    set_verbosity,
    warning,
)

logger = logging.getLogger(__name__)

CONFIG_ENVVAR = "OSM_SEARCH_CONFIG"


class Context:
    """State shared by the commands of one invocation."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: bool = False
        self.debug: bool = False
        self.quiet: bool = False

    @property
    def settings(self) -> Config:
        """The loaded config, or the defaults when none was loaded."""
        if self.config is None:
            self.config = Config()
        return self.config

    def search_flags(self, case_sensitive: bool | None, regex: bool | None) -> tuple[bool, bool]:
        """Resolve tri-state ``--case-sensitive``/``--regex`` flags against the config."""
        settings = self.settings
        if case_sensitive is None:
            case_sensitive = settings.case_sensitive
        if regex is None:
            regex = settings.regex_search
        return case_sensitive, regex

    def data_file(self, explicit: Path | None) -> Path | None:
        """``--data`` when given, else ``data.default_file`` from the config."""
        if explicit is not None:
            return explicit
        return self.settings.default_file


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    envvar=CONFIG_ENVVAR,
    help=f"Path to config file (env: {CONFIG_ENVVAR}, default: ~/.config/osm-search/config.toml)",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Log compiled queries and data loading (implies --verbose)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Only print results and errors",
)
@click.version_option(version=__version__, prog_name="osm-search")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
) -> None:
    """osm-search: Search OpenStreetMap data with a compact query language.

    Queries combine tag tests (highway=primary, name:Main), keywords
    (closed, untagged, nodes:3-10, child type:node) and boolean operators
    (adjacency for AND, OR, !, parentheses). Data is read from Overpass
    JSON files.

    The config file sets the default case sensitivity, regex mode and data
    file; command line flags override it. NO_COLOR disables colors.

    \b
    Exit codes of search:
      0  results printed, or nothing matched
      1  invalid query, --view or config
      2  data file could not be loaded
      3  no data file given

    Examples:

        # Closed ways tagged as buildings
        osm-search search --data extract.json "building=* closed"

        # Store a default data file, then search it
        osm-search init-config --default-file extract.json
        osm-search search "amenity=cafe OR amenity=restaurant"
    """
    ctx.ensure_object(Context)
    app_ctx = ctx.obj
    app_ctx.verbose = verbose or debug
    app_ctx.debug = debug
    app_ctx.quiet = quiet

    set_verbosity(verbose=verbose, debug=debug)

    disable_color = no_color or os.environ.get("NO_COLOR") is not None
    if disable_color:
        set_color(False)

    try:
        loaded_config, warnings = load_config(config)
    except ConfigError as e:
        error(str(e))
        ctx.exit(1)

    app_ctx.config = loaded_config
    if not disable_color and not loaded_config.colored_output:
        set_color(False)

    if not quiet:
        for warn in warnings:
            warning(warn)

    logger.debug(
        "Settings from %s: case_sensitive=%s regex=%s default_file=%s",
        loaded_config.config_path or "defaults",
        loaded_config.case_sensitive,
        loaded_config.regex_search,
        loaded_config.default_file,
    )


def register_commands() -> None:
    """Register all commands from the commands package."""
    from osm_search.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


# Register commands on import
register_commands()
