"""In-memory OpenStreetMap data model.

The search evaluator only needs the read-only capabilities described by
:class:`Feature`, :class:`Selection` and :class:`MapContext`. The concrete
classes here implement them for data loaded by
:mod:`osm_search.data.loader`, and are what the tests build fixtures from.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class FeatureKind(enum.Enum):
    """Kind of an OSM primitive."""

    NODE = "node"
    WAY = "way"
    RELATION = "relation"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Bounds:
    """Latitude/longitude bounding box."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    @classmethod
    def parse(cls, text: str) -> Bounds:
        """Parse ``"min_lon,min_lat,max_lon,max_lat"`` (the usual bbox order)."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected 4 comma separated numbers, got {text!r}")
        min_lon, min_lat, max_lon, max_lat = (float(p) for p in parts)
        return cls(
            min_lat=min(min_lat, max_lat),
            min_lon=min(min_lon, max_lon),
            max_lat=max(min_lat, max_lat),
            max_lon=max(min_lon, max_lon),
        )


class Feature(Protocol):
    """Read-only view of a primitive as seen by search predicates.

    Kind specific data is read from plain attributes: ``lat``/``lon`` on
    nodes, ``nodes`` and ``is_closed`` on ways, ``members`` (each with
    ``role`` and ``member``) and ``member_primitives()`` on relations.
    """

    id: int
    version: int
    changeset_id: int
    timestamp: datetime | None
    user: str | None

    @property
    def kind(self) -> FeatureKind: ...

    def keys(self) -> list[str]: ...

    def get(self, key: str) -> str | None: ...

    def has_tags(self) -> bool: ...

    def referrers(self) -> list[Feature]: ...

    @property
    def is_new(self) -> bool: ...

    @property
    def is_modified(self) -> bool: ...

    @property
    def is_incomplete(self) -> bool: ...

    @property
    def is_deleted(self) -> bool: ...

    @property
    def is_usable(self) -> bool: ...


class Selection(Protocol):
    """Live "current selection" lookup, read at evaluation time."""

    def is_selected(self, feature: Feature) -> bool: ...


class MapContext(Protocol):
    """Bounds providers, read once when an area predicate is compiled."""

    def downloaded_area(self) -> Bounds | None: ...

    def current_view(self) -> Bounds | None: ...


@dataclass(eq=False)
class Primitive:
    """Common state of nodes, ways and relations.

    Primitives compare by identity; two loaded copies of the same OSM
    object are different primitives.
    """

    id: int
    tags: dict[str, str] = field(default_factory=dict)
    version: int = 0
    changeset_id: int = 0
    timestamp: datetime | None = None
    user: str | None = None
    modified: bool = False
    deleted: bool = False
    incomplete: bool = False
    _referrers: list[Primitive] = field(default_factory=list, init=False, repr=False)

    kind: ClassVar[FeatureKind]

    def keys(self) -> list[str]:
        return list(self.tags)

    def get(self, key: str) -> str | None:
        return self.tags.get(key)

    def has_tags(self) -> bool:
        return bool(self.tags)

    def referrers(self) -> list[Primitive]:
        return list(self._referrers)

    def add_referrer(self, referrer: Primitive) -> None:
        if not any(r is referrer for r in self._referrers):
            self._referrers.append(referrer)

    @property
    def is_new(self) -> bool:
        """New primitives carry a non-positive id until they are uploaded."""
        return self.id <= 0

    @property
    def is_modified(self) -> bool:
        return self.modified

    @property
    def is_incomplete(self) -> bool:
        return self.incomplete

    @property
    def is_deleted(self) -> bool:
        return self.deleted

    @property
    def is_usable(self) -> bool:
        return not self.deleted and not self.incomplete

    def __str__(self) -> str:
        return f"{self.kind} {self.id}"


@dataclass(eq=False)
class Node(Primitive):
    kind = FeatureKind.NODE

    lat: float | None = None
    lon: float | None = None


@dataclass(eq=False)
class Way(Primitive):
    kind = FeatureKind.WAY

    nodes: list[Node] = field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return len(self.nodes) >= 3 and self.nodes[0] is self.nodes[-1]


@dataclass(eq=False)
class RelationMember:
    role: str | None
    member: Primitive


@dataclass(eq=False)
class Relation(Primitive):
    kind = FeatureKind.RELATION

    members: list[RelationMember] = field(default_factory=list)

    def member_primitives(self) -> list[Primitive]:
        seen: list[Primitive] = []
        for m in self.members:
            if not any(p is m.member for p in seen):
                seen.append(m.member)
        return seen


class DataSet:
    """A loaded set of primitives plus selection and bounds state.

    Implements both :class:`Selection` and :class:`MapContext`, so one
    data set can be handed to the compiler and the evaluator.
    """

    def __init__(
        self,
        primitives: Iterable[Primitive] = (),
        *,
        bounds: Bounds | None = None,
        view: Bounds | None = None,
    ) -> None:
        self._primitives: dict[tuple[FeatureKind, int], Primitive] = {}
        self._selected: set[tuple[FeatureKind, int]] = set()
        self.bounds = bounds
        self.view = view
        for p in primitives:
            self.add(p)

    def add(self, primitive: Primitive) -> None:
        """Add a primitive and register it as referrer of its children."""
        self._primitives[(primitive.kind, primitive.id)] = primitive
        if isinstance(primitive, Way):
            for node in primitive.nodes:
                node.add_referrer(primitive)
        elif isinstance(primitive, Relation):
            for m in primitive.members:
                m.member.add_referrer(primitive)

    def get(self, kind: FeatureKind, primitive_id: int) -> Primitive | None:
        return self._primitives.get((kind, primitive_id))

    def __iter__(self) -> Iterator[Primitive]:
        return iter(self._primitives.values())

    def __len__(self) -> int:
        return len(self._primitives)

    # Selection

    def set_selected(self, primitives: Iterable[Primitive]) -> None:
        self._selected = {(p.kind, p.id) for p in primitives}

    def is_selected(self, feature: Feature) -> bool:
        return (feature.kind, feature.id) in self._selected

    # MapContext

    def downloaded_area(self) -> Bounds | None:
        return self.bounds

    def current_view(self) -> Bounds | None:
        return self.view
