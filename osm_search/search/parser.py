"""Compile feature search queries into predicate trees.

Grammar::

    query      := expression EOF
    expression := factor ( 'OR' expression | expression )?
    factor     := '(' expression ')'
                | '!' factor
                | KEY ( '=' value | ':' value | '?' )?

Adjacent factors are AND-ed. ``OR`` takes the factor on its left and the
whole rest of the expression on its right, so ``a b OR c`` is
``a AND (b OR c)`` and ``a OR b c`` is ``a OR (b AND c)``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from osm_search.data.models import FeatureKind
from osm_search.exceptions import SearchParseError
from osm_search.search.ast_nodes import (
    Always,
    And,
    AnyTextSearch,
    AreaSource,
    BooleanFlag,
    ChangesetId,
    CountDimension,
    CountRange,
    ExactKeyValue,
    HasChildMatching,
    HasParentMatching,
    Id,
    InArea,
    IsClosedWay,
    IsIncomplete,
    IsModified,
    IsNew,
    IsSelected,
    IsUntagged,
    KeyValueSubstring,
    Not,
    Or,
    Predicate,
    Quantifier,
    RoleIs,
    TypeIs,
    UserIs,
    Version,
)
from osm_search.search.dates import EARLIEST, parse_date, to_epoch
from osm_search.search.tokenizer import PushbackTokenizer, Range, TokenKind

if TYPE_CHECKING:
    from osm_search.data.models import MapContext

logger = logging.getLogger(__name__)

# Bare keywords that stand for a status flag
_FLAG_KEYWORDS: dict[str, type[Predicate]] = {
    "new": IsNew,
    "modified": IsModified,
    "incomplete": IsIncomplete,
    "untagged": IsUntagged,
    "selected": IsSelected,
    "closed": IsClosedWay,
}

# Bare keywords that build an area predicate
_AREA_KEYWORDS: dict[str, tuple[AreaSource, Quantifier]] = {
    "indownloadedarea": (AreaSource.DOWNLOADED_AREA, Quantifier.ANY),
    "allindownloadedarea": (AreaSource.DOWNLOADED_AREA, Quantifier.ALL),
    "inview": (AreaSource.CURRENT_VIEW, Quantifier.ANY),
    "allinview": (AreaSource.CURRENT_VIEW, Quantifier.ALL),
}

# ``key:range`` keywords
_RANGE_KEYWORDS: dict[str, CountDimension] = {
    "tags": CountDimension.TAG_COUNT,
    "nodes": CountDimension.NODE_COUNT,
    "areasize": CountDimension.AREA,
}

_TYPE_NAMES: dict[str, FeatureKind] = {kind.value: kind for kind in FeatureKind}


class SearchCompiler:
    """Recursive descent parser over a :class:`PushbackTokenizer`.

    The ``_parse_*`` methods return None when no expression or factor
    starts at the current token; :func:`_require` turns that into an error
    where one is mandatory.
    """

    def __init__(
        self,
        tokenizer: PushbackTokenizer,
        *,
        case_sensitive: bool = False,
        regex_search: bool = False,
        map_context: MapContext | None = None,
    ) -> None:
        self.tokenizer = tokenizer
        self.case_sensitive = case_sensitive
        self.regex_search = regex_search
        self.map_context = map_context

    def parse(self) -> Predicate:
        """Parse the whole query; an empty query matches everything."""
        expression = self._parse_expression()
        if not self.tokenizer.read_if_equal(TokenKind.EOF):
            raise SearchParseError(f"Unexpected token: {self.tokenizer.next_token()}")
        if expression is None:
            return Always()
        return expression

    def _parse_expression(self) -> Predicate | None:
        """Factors joined by OR or adjacency, folded into a right-nested chain."""
        factors: list[Predicate] = []
        operators: list[type[And] | type[Or]] = []
        while True:
            factor = self._parse_factor()
            if factor is None:
                if operators and operators[-1] is Or:
                    raise SearchParseError("Missing parameter for OR")
                break
            factors.append(factor)
            operators.append(Or if self.tokenizer.read_if_equal(TokenKind.OR) else And)

        if not factors:
            return None
        expression = factors.pop()
        operators.pop()
        while factors:
            expression = operators.pop()(factors.pop(), expression)
        return expression

    def _parse_factor(self) -> Predicate | None:
        tokenizer = self.tokenizer
        if tokenizer.read_if_equal(TokenKind.LEFT_PAREN):
            expression = self._parse_expression()
            if not tokenizer.read_if_equal(TokenKind.RIGHT_PAREN):
                raise SearchParseError.unexpected_token(
                    TokenKind.RIGHT_PAREN, tokenizer.next_token()
                )
            return expression
        if tokenizer.read_if_equal(TokenKind.NOT):
            return Not(_require(self._parse_factor(), "Missing operand for NOT"))
        if not tokenizer.read_if_equal(TokenKind.KEY):
            return None

        key = tokenizer.text or ""
        if tokenizer.read_if_equal(TokenKind.EQUALS):
            return ExactKeyValue(
                key,
                tokenizer.read_text_or_number() or "",
                regex=self.regex_search,
                case_sensitive=self.case_sensitive,
            )
        if tokenizer.read_if_equal(TokenKind.COLON):
            return self._parse_colon(key)
        if tokenizer.read_if_equal(TokenKind.QUESTION):
            return BooleanFlag(key, default=False)
        return self._parse_keyword(key)

    def _parse_colon(self, key: str) -> Predicate:
        """``key:...`` - keyword specific operand or a tag substring match."""
        tokenizer = self.tokenizer
        if key == "id":
            return Id(tokenizer.read_number("Primitive id expected"))
        if key in _RANGE_KEYWORDS:
            return CountRange(
                _RANGE_KEYWORDS[key], tokenizer.read_range("Range of numbers expected")
            )
        if key == "timestamp":
            return self._parse_timestamp(tokenizer.read_text_or_number() or "")
        if key == "changeset":
            return ChangesetId(tokenizer.read_number("Changeset id expected"))
        if key == "version":
            return Version(tokenizer.read_number("Version expected"))
        return self._parse_key_value(key, tokenizer.read_text_or_number() or "")

    def _parse_timestamp(self, value: str) -> Predicate:
        parts = value.split("/")
        if len(parts) == 1:
            return KeyValueSubstring(
                "timestamp",
                value,
                regex=self.regex_search,
                case_sensitive=self.case_sensitive,
            )
        if len(parts) != 2:
            raise SearchParseError("Expecting min/max after 'timestamp'")

        low, high = (p.strip() for p in parts)
        start = parse_date(low) if low else EARLIEST
        end = parse_date(high) if high else datetime.now(timezone.utc)
        return CountRange(CountDimension.TIMESTAMP, Range(to_epoch(start), to_epoch(end)))

    def _parse_key_value(self, key: str, value: str) -> Predicate:
        if key == "type":
            kind = _TYPE_NAMES.get(value)
            if kind is None:
                raise SearchParseError(
                    f"Unknown primitive type: {value}. "
                    "Allowed values are node, way or relation"
                )
            return TypeIs(kind)
        if key == "user":
            return UserIs(None if value == "anonymous" else value)
        if key == "role":
            return RoleIs(value)
        return KeyValueSubstring(
            key, value, regex=self.regex_search, case_sensitive=self.case_sensitive
        )

    def _parse_keyword(self, key: str) -> Predicate:
        """A KEY with no operator: flag keyword, child/parent, area or free text."""
        flag = _FLAG_KEYWORDS.get(key)
        if flag is not None:
            return flag()
        if key == "child":
            return HasChildMatching(self._parse_factor() or Always())
        if key == "parent":
            return HasParentMatching(self._parse_factor() or Always())
        if key in _AREA_KEYWORDS:
            source, quantifier = _AREA_KEYWORDS[key]
            predicate = InArea.capture(source, quantifier, self.map_context)
            if predicate.bounds is None:
                logger.warning("No bounds available for '%s'; it will match nothing", key)
            return predicate
        return AnyTextSearch(key, regex=self.regex_search, case_sensitive=self.case_sensitive)


def _require(predicate: Predicate | None, message: str) -> Predicate:
    """Return *predicate*, or raise *message* when there is none."""
    if predicate is None:
        raise SearchParseError(message)
    return predicate


def compile_query(
    query: str,
    *,
    case_sensitive: bool = False,
    regex_search: bool = False,
    map_context: MapContext | None = None,
) -> Predicate:
    """Compile a search query into an immutable predicate.

    Args:
        query: The search query.
        case_sensitive: Compare text case-sensitively.
        regex_search: Treat text operands as regular expressions.
        map_context: Source of the bounds used by ``inview`` and
            ``indownloadedarea``, read once, now.

    Returns:
        The predicate tree; ``Always`` for an empty query.

    Raises:
        SearchParseError: On any syntax or regex error.
    """
    compiler = SearchCompiler(
        PushbackTokenizer(query),
        case_sensitive=case_sensitive,
        regex_search=regex_search,
        map_context=map_context,
    )
    predicate = compiler.parse()
    logger.debug("Compiled %r to %s", query, predicate)
    return predicate
