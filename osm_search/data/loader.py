"""Load OSM data from Overpass API style JSON.

The expected document looks like::

    {
      "bounds": {"minlat": 48.1, "minlon": 11.5, "maxlat": 48.2, "maxlon": 11.6},
      "elements": [
        {"type": "node", "id": 1, "lat": 48.15, "lon": 11.55, "tags": {...}},
        {"type": "way", "id": 2, "nodes": [1, 3, 4, 1]},
        {"type": "relation", "id": 5,
         "members": [{"type": "way", "ref": 2, "role": "outer"}]}
      ]
    }

``bounds`` is optional and becomes the downloaded area. Elements may carry
``user``, ``version``, ``changeset`` and ``timestamp`` as in Overpass
output, plus ``action`` (``modify``/``delete``) and ``visible`` as written
by editors. References to elements that are not in the document become
incomplete placeholder primitives.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from osm_search.data.models import (
    Bounds,
    DataSet,
    FeatureKind,
    Node,
    Primitive,
    Relation,
    RelationMember,
    Way,
)
from osm_search.exceptions import DataLoadError

logger = logging.getLogger(__name__)

_CLASSES: dict[FeatureKind, type[Primitive]] = {
    FeatureKind.NODE: Node,
    FeatureKind.WAY: Way,
    FeatureKind.RELATION: Relation,
}


def load_dataset(path: Path) -> DataSet:
    """Read and parse an Overpass JSON file.

    Raises:
        DataLoadError: If the file cannot be read or is not valid data.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DataLoadError(path, str(e)) from e
    except json.JSONDecodeError as e:
        raise DataLoadError(path, f"invalid JSON: {e}") from e
    return parse_dataset(data, source=str(path))


def parse_dataset(data: Any, source: str = "<data>") -> DataSet:
    """Build a :class:`DataSet` from a decoded Overpass JSON document."""
    if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
        raise DataLoadError(source, "expected an object with an 'elements' list")

    elements: list[dict[str, Any]] = []
    primitives: dict[tuple[FeatureKind, int], Primitive] = {}
    for raw in data["elements"]:
        kind = _kind(raw)
        if kind is None:
            logger.warning("Unknown element `%s` in %s. Skipping ...", raw, source)
            continue
        primitives[(kind, int(raw["id"]))] = _create(kind, raw, source)
        elements.append(raw)

    def resolve(kind: FeatureKind, ref: int) -> Primitive:
        primitive = primitives.get((kind, ref))
        if primitive is None:
            logger.debug("Missing %s %d, adding incomplete placeholder", kind, ref)
            primitive = _CLASSES[kind](id=ref, incomplete=True)
            primitives[(kind, ref)] = primitive
        return primitive

    for raw in elements:
        kind = _kind(raw)
        primitive = primitives[(kind, int(raw["id"]))]
        try:
            _link(primitive, raw, resolve, source)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DataLoadError(
                source, f"invalid references in {kind} {primitive.id}: {e!r}"
            ) from e

    dataset = DataSet(primitives.values(), bounds=_bounds(data.get("bounds"), source))
    logger.debug("Loaded %d primitives from %s", len(dataset), source)
    return dataset


def _link(
    primitive: Primitive,
    raw: dict[str, Any],
    resolve: Callable[[FeatureKind, int], Primitive],
    source: str,
) -> None:
    """Point a way at its nodes or a relation at its members."""
    if isinstance(primitive, Way):
        primitive.nodes = [resolve(FeatureKind.NODE, int(ref)) for ref in raw.get("nodes", [])]
    elif isinstance(primitive, Relation):
        members: list[RelationMember] = []
        for m in raw.get("members", []):
            member_kind = _kind(m)
            if member_kind is None:
                raise DataLoadError(source, f"invalid member of relation {primitive.id}: {m}")
            members.append(
                RelationMember(role=m.get("role"), member=resolve(member_kind, int(m["ref"])))
            )
        primitive.members = members


def _kind(raw: Any) -> FeatureKind | None:
    if not isinstance(raw, dict):
        return None
    try:
        return FeatureKind(raw.get("type"))
    except ValueError:
        return None


def _create(kind: FeatureKind, raw: dict[str, Any], source: str) -> Primitive:
    try:
        primitive_id = int(raw["id"])
        tags = {str(k): str(v) for k, v in (raw.get("tags") or {}).items()}
        common: dict[str, Any] = {
            "id": primitive_id,
            "tags": tags,
            "version": int(raw.get("version", 0)),
            "changeset_id": int(raw.get("changeset", 0)),
            "timestamp": _timestamp(raw.get("timestamp")),
            "user": raw.get("user") or None,
            "modified": raw.get("action") == "modify",
            "deleted": raw.get("action") == "delete" or raw.get("visible") is False,
        }
        if kind is FeatureKind.NODE:
            lat = raw.get("lat")
            lon = raw.get("lon")
            return Node(
                **common,
                lat=None if lat is None else float(lat),
                lon=None if lon is None else float(lon),
            )
        return _CLASSES[kind](**common)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DataLoadError(source, f"invalid {kind} element {raw!r}: {e}") from e


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(str(value))


def _bounds(raw: Any, source: str) -> Bounds | None:
    if raw is None:
        return None
    try:
        return Bounds(
            min_lat=float(raw["minlat"]),
            min_lon=float(raw["minlon"]),
            max_lat=float(raw["maxlat"]),
            max_lon=float(raw["maxlon"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DataLoadError(source, f"invalid bounds {raw!r}") from e
