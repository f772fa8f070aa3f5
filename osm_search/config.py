"""Configuration management for osm-search."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w

from osm_search.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "osm-search" / "config.toml"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        case_sensitive: Default for case-sensitive text comparison.
        regex_search: Default for treating text operands as regexes.
        default_file: Data file searched when ``--data`` is not given.
        colored_output: Whether to use colored terminal output.
        config_path: Path where config was loaded from (None if defaults).
    """

    case_sensitive: bool = False
    regex_search: bool = False
    default_file: Path | None = None
    colored_output: bool = True
    config_path: Path | None = None

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.
        """
        warnings: list[str] = []

        if self.default_file is not None:
            self.default_file = self.default_file.expanduser().resolve()
            # Warning, not error - the file might be downloaded later
            if not self.default_file.exists():
                warnings.append(f"Default data file not found: {self.default_file}")

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config()
        warnings: list[str] = []
        if explicit:
            warnings.append(
                f"No config file found at {config_path}. Using defaults. "
                f"Create config with: osm-search init-config"
            )
        return config, warnings + config.validate()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    return config, config.validate()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigValidationError(name, section, "must be a table")
    return section


def _require_bool(section: dict[str, Any], name: str, key: str) -> bool:
    value = section[name]
    if not isinstance(value, bool):
        raise ConfigValidationError(key, value, "must be a boolean")
    return value


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [search] section
    search = _section(data, "search")
    if "case_sensitive" in search:
        config.case_sensitive = _require_bool(search, "case_sensitive", "search.case_sensitive")
    if "regex" in search:
        config.regex_search = _require_bool(search, "regex", "search.regex")

    # Parse [data] section
    data_section = _section(data, "data")
    if "default_file" in data_section:
        value = data_section["default_file"]
        if not isinstance(value, str):
            raise ConfigValidationError("data.default_file", value, "must be a string path")
        config.default_file = Path(value)

    # Parse [display] section
    display = _section(data, "display")
    if "colored_output" in display:
        config.colored_output = _require_bool(display, "colored_output", "display.colored_output")

    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "search": {
            "case_sensitive": config.case_sensitive,
            "regex": config.regex_search,
        },
        "display": {
            "colored_output": config.colored_output,
        },
    }

    if config.default_file is not None:
        data["data"] = {"default_file": str(config.default_file)}

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
