"""Shared text normalization and regex helpers for tag matching.

Every predicate that compares text goes through this module so that
Unicode normalization, case folding and regex flags behave the same for
all of them:

- strings are compared in NFC form, so ``"Café"`` typed with a combining
  accent still matches the precomposed tag value;
- case-insensitive comparisons use :meth:`str.casefold`;
- regexes are compiled with ``re.DOTALL`` and, when case-insensitive,
  ``re.IGNORECASE`` (Unicode-aware for ``str`` patterns). ``re`` has no
  canonical-equivalence flag, so both the pattern and every subject are
  NFC-normalized instead.
"""

from __future__ import annotations

import re
import unicodedata

from osm_search.exceptions import SearchParseError

_RX_ERROR = 'The regex "{pattern}" had a parse error at offset {pos}, full error:\n\n{msg}'
_RX_ERROR_NO_POS = 'The regex "{pattern}" had a parse error, full error:\n\n{msg}'


def normalize(s: str) -> str:
    """Return the NFC form of *s*."""
    return unicodedata.normalize("NFC", s)


def fold(s: str, case_sensitive: bool) -> str:
    """Normalize *s* for comparison, case folding unless *case_sensitive*."""
    if not case_sensitive:
        s = s.casefold()
    return normalize(s)


def contains(haystack: str, needle: str, case_sensitive: bool) -> bool:
    """Substring test on normalized text.

    *needle* is expected to be folded already (see :func:`fold`), since
    predicates fold their search text once at construction.
    """
    return needle in fold(haystack, case_sensitive)


def regex_flags(case_sensitive: bool) -> int:
    """Flags used for every user supplied pattern."""
    flags = re.DOTALL
    if not case_sensitive:
        flags |= re.IGNORECASE
    return flags


def compile_pattern(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    """Compile a user supplied regex eagerly.

    Raises:
        SearchParseError: If the pattern is invalid. The message names the
            pattern and, when ``re`` reports one, the error offset.
    """
    pattern = normalize(pattern)
    try:
        return re.compile(pattern, regex_flags(case_sensitive))
    except re.error as e:
        if e.pos is None:
            raise SearchParseError(
                _RX_ERROR_NO_POS.format(pattern=pattern, msg=e.msg)
            ) from e
        raise SearchParseError(_RX_ERROR.format(pattern=pattern, pos=e.pos, msg=e.msg)) from e
    except (OverflowError, RecursionError) as e:
        raise SearchParseError(_RX_ERROR_NO_POS.format(pattern=pattern, msg=e)) from e


def search(pattern: re.Pattern[str], s: str) -> bool:
    """Unanchored search of *pattern* in normalized *s*."""
    return pattern.search(normalize(s)) is not None


def full_match(pattern: re.Pattern[str], s: str) -> bool:
    """Whether *pattern* matches the whole of normalized *s*."""
    return pattern.fullmatch(normalize(s)) is not None
