"""Evaluate compiled predicates against features.

One match function per predicate class, dispatched on the exact type.
Evaluation is pure except for :class:`IsSelected`, which asks the
selection passed in by the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from osm_search.data.geometry import closed_way_area
from osm_search.data.models import FeatureKind
from osm_search.search import text
from osm_search.search.ast_nodes import (
    Always,
    And,
    AnyTextSearch,
    BooleanFlag,
    ChangesetId,
    CountDimension,
    CountRange,
    ExactKeyValue,
    ExactMode,
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
    Never,
    Not,
    Or,
    Predicate,
    Quantifier,
    RoleIs,
    TypeIs,
    UserIs,
    Version,
)
from osm_search.search.dates import format_timestamp, to_epoch

if TYPE_CHECKING:
    from osm_search.data.models import Feature, Selection

_TRUE_VALUES: frozenset[str] = frozenset({"true", "yes", "1", "on"})
_FALSE_VALUES: frozenset[str] = frozenset({"false", "no", "0", "off"})


def match(predicate: Predicate, feature: Feature, selection: Selection | None = None) -> bool:
    """Return whether *feature* satisfies *predicate*.

    Args:
        predicate: Compiled predicate tree.
        feature: Feature under test.
        selection: Current selection, read by ``selected``; without one
            nothing is selected.
    """
    try:
        matcher = _MATCHERS[type(predicate)]
    except KeyError:
        raise TypeError(f"Unsupported predicate type: {type(predicate).__name__}") from None
    return matcher(predicate, feature, selection)


def parse_osm_boolean(value: str | None) -> bool | None:
    """Interpret an OSM tag value as boolean, None when it is neither."""
    if value is None:
        return None
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


# ---------------------------------------------------------------------------
# Structural
# ---------------------------------------------------------------------------


def _match_always(p: Always, feature: Feature, selection: Selection | None) -> bool:
    return True


def _match_never(p: Never, feature: Feature, selection: Selection | None) -> bool:
    return False


def _match_not(p: Not, feature: Feature, selection: Selection | None) -> bool:
    return not match(p.operand, feature, selection)


def _match_binary(p: And | Or, feature: Feature, selection: Selection | None) -> bool:
    # Both operators nest to the right, so the rhs spine is walked iteratively
    node: Predicate = p
    while True:
        kind = type(node)
        if kind is And:
            if not match(node.lhs, feature, selection):
                return False
        elif kind is Or:
            if match(node.lhs, feature, selection):
                return True
        else:
            return match(node, feature, selection)
        node = node.rhs


# ---------------------------------------------------------------------------
# Identity and metadata
# ---------------------------------------------------------------------------


def _match_id(p: Id, feature: Feature, selection: Selection | None) -> bool:
    if p.id == 0:
        return feature.is_new
    return feature.id == p.id


def _match_changeset(p: ChangesetId, feature: Feature, selection: Selection | None) -> bool:
    return feature.changeset_id == p.changeset_id


def _match_version(p: Version, feature: Feature, selection: Selection | None) -> bool:
    return feature.version == p.version


# ---------------------------------------------------------------------------
# Tag matching
# ---------------------------------------------------------------------------


def _lookup_tag(feature: Feature, key: str, key_needle: str, case_sensitive: bool) -> str | None:
    if case_sensitive:
        return feature.get(key)
    for k in feature.keys():
        if text.fold(k, case_sensitive) == key_needle:
            return feature.get(k)
    return None


def _match_key_value(p: KeyValueSubstring, feature: Feature, selection: Selection | None) -> bool:
    if p.key_pattern is not None and p.value_pattern is not None:
        # Regex keys can match several tags, so every key is tried
        for k in feature.keys():
            if not text.search(p.key_pattern, k):
                continue
            v = feature.get(k)
            if v is not None and text.search(p.value_pattern, v):
                return True
        return False

    if p.key_needle == "timestamp":
        value = format_timestamp(feature.timestamp) if feature.timestamp is not None else None
    else:
        value = _lookup_tag(feature, p.key, p.key_needle, p.case_sensitive)
    if value is None:
        return False
    return text.contains(value, p.value_needle, p.case_sensitive)


def _match_exact(p: ExactKeyValue, feature: Feature, selection: Selection | None) -> bool:
    if not feature.has_tags():
        return p.mode is ExactMode.NONE

    mode = p.mode
    if mode is ExactMode.NONE:
        return False
    if mode is ExactMode.ANY:
        return True

    if not p.regex:
        if mode is ExactMode.MISSING_KEY:
            return feature.get(p.key) is None
        if mode is ExactMode.ANY_VALUE:
            return feature.get(p.key) is not None
        if mode is ExactMode.ANY_KEY:
            return any(feature.get(k) == p.value for k in feature.keys())
        return feature.get(p.key) == p.value

    if mode is ExactMode.MISSING_KEY:
        return not any(text.full_match(p.key_pattern, k) for k in feature.keys())
    if mode is ExactMode.ANY_KEY:
        return any(text.full_match(p.value_pattern, feature.get(k) or "") for k in feature.keys())
    for k in feature.keys():
        if not text.full_match(p.key_pattern, k):
            continue
        if mode is ExactMode.ANY_VALUE or text.full_match(p.value_pattern, feature.get(k) or ""):
            return True
    return False


def _match_boolean(p: BooleanFlag, feature: Feature, selection: Selection | None) -> bool:
    value = parse_osm_boolean(feature.get(p.key))
    if value is None:
        return p.default
    return value


def _match_any_text(p: AnyTextSearch, feature: Feature, selection: Selection | None) -> bool:
    if not feature.has_tags():
        return p.search == "" and feature.user is None

    for k in feature.keys():
        v = feature.get(k) or ""
        if p.pattern is not None:
            if text.search(p.pattern, k) or text.search(p.pattern, v):
                return True
        elif text.contains(k, p.needle, p.case_sensitive) or text.contains(
            v, p.needle, p.case_sensitive
        ):
            return True
    return False


# ---------------------------------------------------------------------------
# Typed leaves
# ---------------------------------------------------------------------------


def _match_type(p: TypeIs, feature: Feature, selection: Selection | None) -> bool:
    return feature.kind is p.kind


def _match_user(p: UserIs, feature: Feature, selection: Selection | None) -> bool:
    if feature.user is None:
        return p.user is None
    return feature.user == p.user


def _match_role(p: RoleIs, feature: Feature, selection: Selection | None) -> bool:
    for ref in feature.referrers():
        if ref.kind is not FeatureKind.RELATION or ref.is_incomplete or ref.is_deleted:
            continue
        for m in ref.members:
            if m.member is feature and (m.role or "") == p.role:
                return True
    return False


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------


def _measure(dimension: CountDimension, feature: Feature) -> int | None:
    if dimension is CountDimension.TAG_COUNT:
        return len(feature.keys())
    if dimension is CountDimension.NODE_COUNT:
        if feature.kind is not FeatureKind.WAY:
            return None
        return len(feature.nodes)
    if dimension is CountDimension.TIMESTAMP:
        if feature.timestamp is None:
            return None
        return to_epoch(feature.timestamp)
    if feature.kind is not FeatureKind.WAY or not feature.is_closed:
        return None
    area = closed_way_area(feature)
    if area is None:
        return None
    return int(area)


def _match_count(p: CountRange, feature: Feature, selection: Selection | None) -> bool:
    count = _measure(p.dimension, feature)
    if count is None:
        return False
    return count in p.range


# ---------------------------------------------------------------------------
# Status flags
# ---------------------------------------------------------------------------


def _match_new(p: IsNew, feature: Feature, selection: Selection | None) -> bool:
    return feature.is_new


def _match_modified(p: IsModified, feature: Feature, selection: Selection | None) -> bool:
    return feature.is_modified or feature.is_new


def _match_incomplete(p: IsIncomplete, feature: Feature, selection: Selection | None) -> bool:
    return feature.is_incomplete


def _match_untagged(p: IsUntagged, feature: Feature, selection: Selection | None) -> bool:
    return not feature.has_tags() and not feature.is_incomplete


def _match_selected(p: IsSelected, feature: Feature, selection: Selection | None) -> bool:
    return selection is not None and selection.is_selected(feature)


def _match_closed(p: IsClosedWay, feature: Feature, selection: Selection | None) -> bool:
    return feature.kind is FeatureKind.WAY and feature.is_closed


# ---------------------------------------------------------------------------
# Structural relations
# ---------------------------------------------------------------------------


def _children(feature: Feature) -> list[Feature]:
    if feature.kind is FeatureKind.WAY:
        return list(feature.nodes)
    if feature.kind is FeatureKind.RELATION:
        return [m.member for m in feature.members]
    return []


def _match_has_child(p: HasChildMatching, feature: Feature, selection: Selection | None) -> bool:
    return any(match(p.child, c, selection) for c in _children(feature))


def _match_has_parent(p: HasParentMatching, feature: Feature, selection: Selection | None) -> bool:
    return any(match(p.parent, r, selection) for r in feature.referrers())


# ---------------------------------------------------------------------------
# Spatial
# ---------------------------------------------------------------------------


def _in_area(p: InArea, feature: Feature, visited: frozenset[int]) -> bool:
    if p.bounds is None or not feature.is_usable:
        return False
    if feature.kind is FeatureKind.NODE:
        if feature.lat is None or feature.lon is None:
            return False
        return p.bounds.contains(feature.lat, feature.lon)

    if feature.kind is FeatureKind.WAY:
        parts = list(feature.nodes)
    elif feature.kind is FeatureKind.RELATION:
        # Relations may contain themselves, directly or not
        visited = visited | {id(feature)}
        parts = [m for m in feature.member_primitives() if id(m) not in visited]
    else:
        return False

    if p.quantifier is Quantifier.ALL:
        return all(_in_area(p, part, visited) for part in parts)
    return any(_in_area(p, part, visited) for part in parts)


def _match_in_area(p: InArea, feature: Feature, selection: Selection | None) -> bool:
    return _in_area(p, feature, frozenset())


_MATCHERS: dict[type[Predicate], Callable[..., bool]] = {
    Always: _match_always,
    Never: _match_never,
    Not: _match_not,
    And: _match_binary,
    Or: _match_binary,
    Id: _match_id,
    ChangesetId: _match_changeset,
    Version: _match_version,
    KeyValueSubstring: _match_key_value,
    ExactKeyValue: _match_exact,
    BooleanFlag: _match_boolean,
    AnyTextSearch: _match_any_text,
    TypeIs: _match_type,
    UserIs: _match_user,
    RoleIs: _match_role,
    CountRange: _match_count,
    IsNew: _match_new,
    IsModified: _match_modified,
    IsIncomplete: _match_incomplete,
    IsUntagged: _match_untagged,
    IsSelected: _match_selected,
    IsClosedWay: _match_closed,
    HasChildMatching: _match_has_child,
    HasParentMatching: _match_has_parent,
    InArea: _match_in_area,
}
