"""Date parsing for ``timestamp:`` queries."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from osm_search.exceptions import SearchParseError

# Earliest representable instant, used for an open lower bound
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

_YEAR = re.compile(r"[0-9]{4}")
_YEAR_MONTH = re.compile(r"([0-9]{4})-([0-9]{2})")


def parse_date(text: str) -> datetime:
    """Parse an ISO 8601 date or date-time into an aware UTC datetime.

    Accepts ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` and full date-times with
    an optional ``Z`` or offset. Naive values are taken as UTC.

    Raises:
        SearchParseError: If *text* is not a recognized date.
    """
    text = text.strip()
    try:
        if _YEAR.fullmatch(text):
            dt = datetime(int(text), 1, 1)
        elif m := _YEAR_MONTH.fullmatch(text):
            dt = datetime(int(m.group(1)), int(m.group(2)), 1)
        else:
            dt = datetime.fromisoformat(text)
    except ValueError as e:
        raise SearchParseError(f"Invalid date: {text}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch(dt: datetime) -> int:
    """Whole seconds since the epoch; naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def format_timestamp(dt: datetime) -> str:
    """Render a timestamp the way OSM data carries it (``2011-03-01T12:00:00Z``)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
