"""Predicate tree produced by the search compiler.

Every node is a frozen dataclass; text comparing leaves normalize or
compile their search text once, in ``__post_init__``, so an invalid regex
fails while the tree is being built. Matching lives in
:mod:`osm_search.search.evaluator`.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from osm_search.data.models import Bounds, FeatureKind
from osm_search.exceptions import SearchParseError
from osm_search.search import text
from osm_search.search.tokenizer import Range

if TYPE_CHECKING:
    from osm_search.data.models import Feature, MapContext, Selection


class Predicate:
    """Base class of all predicate nodes."""

    __slots__ = ()

    def match(self, feature: Feature, selection: Selection | None = None) -> bool:
        """Test *feature*; *selection* is only consulted by ``selected``."""
        from osm_search.search.evaluator import match

        return match(self, feature, selection)


# ---------------------------------------------------------------------------
# Structural
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Always(Predicate):
    def __str__(self) -> str:
        return "*"


@dataclass(frozen=True)
class Never(Predicate):
    def __str__(self) -> str:
        return "!*"


@dataclass(frozen=True)
class Not(Predicate):
    operand: Predicate

    def __str__(self) -> str:
        return f"!{self.operand}"


@dataclass(frozen=True)
class And(Predicate):
    lhs: Predicate
    rhs: Predicate

    def __str__(self) -> str:
        return _chain_str(self)


@dataclass(frozen=True)
class Or(Predicate):
    lhs: Predicate
    rhs: Predicate

    def __str__(self) -> str:
        return _chain_str(self)


def _chain_str(node: Predicate) -> str:
    """Render a right-nested And/Or chain without recursing down its spine."""
    heads: list[tuple[Predicate, str]] = []
    while isinstance(node, (And, Or)):
        heads.append((node.lhs, "&&" if isinstance(node, And) else "||"))
        node = node.rhs
    rendered = str(node)
    for lhs, symbol in reversed(heads):
        rendered = f"({lhs} {symbol} {rendered})"
    return rendered


# ---------------------------------------------------------------------------
# Identity and metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Id(Predicate):
    """Unique id; ``id:0`` stands for "any new primitive"."""

    id: int

    def __str__(self) -> str:
        return f"id={self.id}"


@dataclass(frozen=True)
class ChangesetId(Predicate):
    changeset_id: int

    def __str__(self) -> str:
        return f"changeset={self.changeset_id}"


@dataclass(frozen=True)
class Version(Predicate):
    version: int

    def __str__(self) -> str:
        return f"version={self.version}"


# ---------------------------------------------------------------------------
# Tag matching
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyValueSubstring(Predicate):
    """``key:value`` - the tag value contains (or the regex finds) *value*.

    In regex mode *key* is a pattern too, searched in every tag key.
    """

    key: str
    value: str
    regex: bool = False
    case_sensitive: bool = False
    key_needle: str = field(init=False, repr=False, compare=False, default="")
    value_needle: str = field(init=False, repr=False, compare=False, default="")
    key_pattern: re.Pattern[str] | None = field(
        init=False, repr=False, compare=False, default=None
    )
    value_pattern: re.Pattern[str] | None = field(
        init=False, repr=False, compare=False, default=None
    )

    def __post_init__(self) -> None:
        if self.regex:
            object.__setattr__(
                self, "key_pattern", text.compile_pattern(self.key, self.case_sensitive)
            )
            object.__setattr__(
                self, "value_pattern", text.compile_pattern(self.value, self.case_sensitive)
            )
        else:
            object.__setattr__(self, "key_needle", text.fold(self.key, self.case_sensitive))
            object.__setattr__(self, "value_needle", text.fold(self.value, self.case_sensitive))

    def __str__(self) -> str:
        return f"{self.key}:{self.value}"


class ExactMode(enum.Enum):
    """How an ``key=value`` query is evaluated."""

    NONE = "none"  # *= : no tags at all
    MISSING_KEY = "missing_key"  # k= : no tag k
    ANY = "any"  # *=* : any tag
    ANY_KEY = "any_key"  # *=v : some tag has value v
    ANY_VALUE = "any_value"  # k=* : tag k present
    EXACT = "exact"  # k=v


def exact_mode(key: str, value: str) -> ExactMode:
    """Derive the evaluation mode of ``key=value``."""
    if value == "":
        return ExactMode.NONE if key == "*" else ExactMode.MISSING_KEY
    if key == "*":
        return ExactMode.ANY if value == "*" else ExactMode.ANY_KEY
    if value == "*":
        return ExactMode.ANY_VALUE
    return ExactMode.EXACT


@dataclass(frozen=True)
class ExactKeyValue(Predicate):
    """``key=value`` - exact tag comparison, full regex match in regex mode."""

    key: str
    value: str = ""
    regex: bool = False
    case_sensitive: bool = False
    mode: ExactMode = field(init=False, compare=False, default=ExactMode.EXACT)
    key_pattern: re.Pattern[str] | None = field(
        init=False, repr=False, compare=False, default=None
    )
    value_pattern: re.Pattern[str] | None = field(
        init=False, repr=False, compare=False, default=None
    )

    def __post_init__(self) -> None:
        if self.key == "":
            raise SearchParseError(
                "Key cannot be empty when tag operator is used. Sample use: key=value"
            )
        if self.value is None:
            object.__setattr__(self, "value", "")
        object.__setattr__(self, "mode", exact_mode(self.key, self.value))

        if self.regex and self.key != "*":
            object.__setattr__(
                self, "key_pattern", text.compile_pattern(self.key, self.case_sensitive)
            )
        if self.regex and self.value not in ("", "*"):
            object.__setattr__(
                self, "value_pattern", text.compile_pattern(self.value, self.case_sensitive)
            )

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass(frozen=True)
class BooleanFlag(Predicate):
    """``key?`` - the tag holds an OSM boolean true (``yes``, ``true``, ``1``, ``on``)."""

    key: str
    default: bool = False

    def __str__(self) -> str:
        return f"{self.key}?"


@dataclass(frozen=True)
class AnyTextSearch(Predicate):
    """Free text: some tag key or value contains (or the regex finds) *search*."""

    search: str
    regex: bool = False
    case_sensitive: bool = False
    needle: str = field(init=False, repr=False, compare=False, default="")
    pattern: re.Pattern[str] | None = field(init=False, repr=False, compare=False, default=None)

    def __post_init__(self) -> None:
        if self.regex:
            object.__setattr__(
                self, "pattern", text.compile_pattern(self.search, self.case_sensitive)
            )
        else:
            object.__setattr__(self, "needle", text.fold(self.search, self.case_sensitive))

    def __str__(self) -> str:
        return self.search


# ---------------------------------------------------------------------------
# Typed leaves
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeIs(Predicate):
    kind: FeatureKind

    def __str__(self) -> str:
        return f"type:{self.kind}"


@dataclass(frozen=True)
class UserIs(Predicate):
    """Last editing user; ``None`` matches anonymous edits."""

    user: str | None

    def __str__(self) -> str:
        return f"user:{'anonymous' if self.user is None else self.user}"


@dataclass(frozen=True)
class RoleIs(Predicate):
    """Member of some relation with this role (``""`` for no role)."""

    role: str

    def __str__(self) -> str:
        return f"role:{self.role}"


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------


class CountDimension(enum.Enum):
    """Measured quantity of a :class:`CountRange`; value is the query keyword."""

    NODE_COUNT = "nodes"
    TAG_COUNT = "tags"
    TIMESTAMP = "timestamp"
    AREA = "areasize"


@dataclass(frozen=True)
class CountRange(Predicate):
    """The measured quantity lies within *range* (inclusive).

    Timestamps are measured in whole seconds since the epoch, areas in
    projected square meters.
    """

    dimension: CountDimension
    range: Range

    def __str__(self) -> str:
        return f"{self.dimension.value}:{self.range}"


# ---------------------------------------------------------------------------
# Status flags
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IsNew(Predicate):
    def __str__(self) -> str:
        return "new"


@dataclass(frozen=True)
class IsModified(Predicate):
    def __str__(self) -> str:
        return "modified"


@dataclass(frozen=True)
class IsIncomplete(Predicate):
    def __str__(self) -> str:
        return "incomplete"


@dataclass(frozen=True)
class IsUntagged(Predicate):
    def __str__(self) -> str:
        return "untagged"


@dataclass(frozen=True)
class IsSelected(Predicate):
    """Reads the selection passed to ``match`` at evaluation time."""

    def __str__(self) -> str:
        return "selected"


@dataclass(frozen=True)
class IsClosedWay(Predicate):
    def __str__(self) -> str:
        return "closed"


# ---------------------------------------------------------------------------
# Structural relations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HasChildMatching(Predicate):
    """A way with a node, or a relation with a member, matching *child*."""

    child: Predicate = field(default_factory=Always)

    def __str__(self) -> str:
        return f"child({self.child})"


@dataclass(frozen=True)
class HasParentMatching(Predicate):
    """Referred to by at least one way or relation matching *parent*."""

    parent: Predicate = field(default_factory=Always)

    def __str__(self) -> str:
        return f"parent({self.parent})"


# ---------------------------------------------------------------------------
# Spatial
# ---------------------------------------------------------------------------


class AreaSource(enum.Enum):
    DOWNLOADED_AREA = "indownloadedarea"
    CURRENT_VIEW = "inview"


class Quantifier(enum.Enum):
    ANY = "any"
    ALL = "all"


@dataclass(frozen=True)
class InArea(Predicate):
    """Some (or all) points of the feature lie inside *bounds*.

    *bounds* is captured when the predicate is built, so a whole scan sees
    the same area. ``None`` bounds never match.
    """

    source: AreaSource
    quantifier: Quantifier
    bounds: Bounds | None

    @classmethod
    def capture(
        cls, source: AreaSource, quantifier: Quantifier, map_context: MapContext | None
    ) -> InArea:
        """Build the predicate with the bounds *map_context* reports right now."""
        bounds: Bounds | None = None
        if map_context is not None:
            if source is AreaSource.DOWNLOADED_AREA:
                bounds = map_context.downloaded_area()
            else:
                bounds = map_context.current_view()
        return cls(source, quantifier, bounds)

    def __str__(self) -> str:
        prefix = "all" if self.quantifier is Quantifier.ALL else ""
        return prefix + self.source.value
