"""Exception hierarchy for osm-search."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from osm_search.search.tokenizer import Token, TokenKind


class OsmSearchError(Exception):
    """Base exception for all osm-search errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all osm-search errors with
    a single except clause.
    """

    pass


# Configuration Errors
class ConfigError(OsmSearchError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


# Data Errors
class DataError(OsmSearchError):
    """Map data related errors."""

    pass


class DataLoadError(DataError):
    """A map data file could not be read or decoded."""

    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Cannot load map data from {path}: {detail}")


# Search Errors
class SearchParseError(OsmSearchError):
    """Raised when a search query cannot be compiled.

    Carries a human-readable message only. Use :meth:`unexpected_token`
    for structural mismatches between an expected and a found token.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @classmethod
    def unexpected_token(
        cls, expected: Token | TokenKind, found: Token | TokenKind
    ) -> SearchParseError:
        return cls(f"Unexpected token. Expected {expected}, found {found}")
