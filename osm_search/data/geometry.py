"""Planar geometry helpers for OSM ways."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from osm_search.data.models import Node, Way

# WGS84 semi-major axis, radius of the spherical Mercator projection
EARTH_RADIUS = 6378137.0

# Mercator is undefined at the poles
_MAX_LAT = 85.05112878


def project(lat: float, lon: float) -> tuple[float, float]:
    """Project a coordinate to spherical Mercator (EPSG:3857) east/north."""
    lat = max(-_MAX_LAT, min(_MAX_LAT, lat))
    east = EARTH_RADIUS * math.radians(lon)
    north = EARTH_RADIUS * math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))
    return east, north


def _ring(nodes: list[Node]) -> list[tuple[float, float]] | None:
    points: list[tuple[float, float]] = []
    for node in nodes:
        if node.lat is None or node.lon is None:
            return None
        points.append(project(node.lat, node.lon))
    return points


def closed_way_signed_area(way: Way) -> float | None:
    """Shoelace area of a closed way in projected square meters.

    Positive for counter-clockwise rings. Returns None when the way is
    not closed or a node has no coordinates.
    """
    if not way.is_closed:
        return None
    points = _ring(way.nodes)
    if points is None:
        return None
    area = 0.0
    for (x1, y1), (x2, y2) in zip(points, points[1:]):
        area += x1 * y2 - x2 * y1
    return area / 2.0


def closed_way_area(way: Way) -> float | None:
    """Absolute area of a closed way, see :func:`closed_way_signed_area`."""
    area = closed_way_signed_area(way)
    if area is None:
        return None
    return abs(area)


def closest_point_on_segment(
    a: tuple[float, float], b: tuple[float, float], p: tuple[float, float]
) -> tuple[float, float]:
    """Return the point of segment *a*-*b* closest to *p* (planar coordinates).

    Part of the geometry helpers offered to editing code; the search
    compiler and evaluator do not use it.
    """
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    if dx == 0 and dy == 0:
        return a
    t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    return a[0] + t * dx, a[1] + t * dy
