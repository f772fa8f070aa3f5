"""Write the effective osm-search configuration to a TOML file."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import click
from rich.markup import escape

from osm_search.cli import Context, pass_context
from osm_search.config import Config, get_default_config_path, save_config
from osm_search.utils.output import create_table, console, error, info, success, warning


def _target_path(config: Config, output: Path | None) -> Path:
    """Explicit --output, else the file the config came from, else the default."""
    if output is not None:
        return output.expanduser().resolve()
    if config.config_path is not None:
        return config.config_path
    return get_default_config_path().expanduser().resolve()


def _apply_overrides(
    config: Config,
    case_sensitive: bool | None,
    regex: bool | None,
    default_file: Path | None,
    colored_output: bool | None,
) -> Config:
    changes: dict[str, object] = {}
    if case_sensitive is not None:
        changes["case_sensitive"] = case_sensitive
    if regex is not None:
        changes["regex_search"] = regex
    if default_file is not None:
        changes["default_file"] = default_file
    if colored_output is not None:
        changes["colored_output"] = colored_output
    return replace(config, **changes)


def _print_settings(config: Config) -> None:
    table = create_table(title="Settings", show_header=True, header_style="bold")
    table.add_column("Key", no_wrap=True)
    table.add_column("Value")
    table.add_row("search.case_sensitive", str(config.case_sensitive).lower())
    table.add_row("search.regex", str(config.regex_search).lower())
    table.add_row("data.default_file", escape(str(config.default_file or "(not set)")))
    table.add_row("display.colored_output", str(config.colored_output).lower())
    console.print(table)


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path (default: the loaded config file or ~/.config/osm-search/config.toml)",
)
@click.option(
    "--case-sensitive/--ignore-case",
    default=None,
    help="Default case sensitivity of text comparison",
)
@click.option(
    "--regex/--no-regex",
    default=None,
    help="Treat text operands as regular expressions by default",
)
@click.option(
    "--default-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Overpass JSON file searched when --data is not given",
)
@click.option(
    "--colored-output/--plain-output",
    default=None,
    help="Use colored terminal output",
)
@pass_context
def cli(
    ctx: Context,
    force: bool,
    output: Path | None,
    case_sensitive: bool | None,
    regex: bool | None,
    default_file: Path | None,
    colored_output: bool | None,
) -> None:
    """Save the effective configuration, with any overrides, as TOML.

    Settings start from the loaded config (or the defaults when there is
    none); the flags of this command replace single values. Writing over
    an existing file needs --force, so the command can also update one
    setting in place.

    Examples:

    \b
      # Create config at default location
      osm-search init-config

    \b
      # Make regex search the default in the current config
      osm-search init-config --force --regex

    \b
      # Create config at custom location with a default data file
      osm-search init-config -o ./my-config.toml --default-file ~/osm/munich.json
    """
    config = _apply_overrides(ctx.settings, case_sensitive, regex, default_file, colored_output)
    config_path = _target_path(config, output)

    if config_path.exists() and not force:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)

    warnings = config.validate()
    if not ctx.quiet:
        for warn in warnings:
            warning(warn)

    try:
        save_config(config, config_path)
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    success(f"Wrote config file: {config_path}")
    if not ctx.quiet:
        _print_settings(config)
        info("Command line flags still override these values.")
