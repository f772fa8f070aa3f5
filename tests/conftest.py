"""Shared pytest fixtures."""

from __future__ import annotations

import json
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from osm_search.data.models import Bounds, DataSet, Node, Relation, RelationMember, Way

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample config file."""
    config_path = temp_dir / "config.toml"
    config_path.write_text("""[search]
case_sensitive = true
regex = true

[data]
default_file = "/tmp/osm-search-test-extract.json"

[display]
colored_output = false
""")
    return config_path


@pytest.fixture
def small_map() -> DataSet:
    """A small hand-built map.

    - node 1 ``amenity=cafe name=Café`` inside the downloaded area
    - nodes 2-4 untagged corners of way 10, node 5 outside the area
    - way 10 closed ``building=yes``, way 11 open ``highway=residential``
      from node 4 to node 5
    - relation 20 ``type=multipolygon`` with way 10 as ``outer``
    """
    n1 = Node(
        1,
        tags={"amenity": "cafe", "name": "Café"},
        lat=48.15,
        lon=11.55,
        user="alice",
        version=3,
        changeset_id=100,
        timestamp=datetime(2011, 3, 1, 12, 0, tzinfo=timezone.utc),
    )
    n2 = Node(2, lat=48.100, lon=11.500, user="bob", version=1, changeset_id=101)
    n3 = Node(3, lat=48.100, lon=11.501, user="bob", version=1, changeset_id=101)
    n4 = Node(4, lat=48.101, lon=11.501, user="bob", version=1, changeset_id=101)
    n5 = Node(5, lat=50.0, lon=12.0)
    w10 = Way(10, tags={"building": "yes"}, nodes=[n2, n3, n4, n2], user="bob", version=2)
    w11 = Way(11, tags={"highway": "residential", "oneway": "yes"}, nodes=[n4, n5])
    r20 = Relation(
        20,
        tags={"type": "multipolygon"},
        members=[RelationMember("outer", w10)],
        user="carol",
    )
    return DataSet(
        [n1, n2, n3, n4, n5, w10, w11, r20],
        bounds=Bounds(min_lat=48.0, min_lon=11.0, max_lat=49.0, max_lon=12.0),
    )


def _overpass_document() -> dict[str, Any]:
    return {
        "version": 0.6,
        "generator": "Overpass API",
        "bounds": {"minlat": 48.0, "minlon": 11.0, "maxlat": 49.0, "maxlon": 12.0},
        "elements": [
            {
                "type": "node",
                "id": 1,
                "lat": 48.15,
                "lon": 11.55,
                "version": 3,
                "changeset": 100,
                "user": "alice",
                "timestamp": "2011-03-01T12:00:00Z",
                "tags": {"amenity": "cafe", "name": "Café"},
            },
            {"type": "node", "id": 2, "lat": 48.100, "lon": 11.500},
            {"type": "node", "id": 3, "lat": 48.100, "lon": 11.501},
            {"type": "node", "id": 4, "lat": 48.101, "lon": 11.501},
            {
                "type": "way",
                "id": 10,
                "nodes": [2, 3, 4, 2],
                "user": "bob",
                "tags": {"building": "yes"},
            },
            {
                "type": "way",
                "id": 11,
                "nodes": [4, 99],
                "action": "modify",
                "tags": {"highway": "residential", "name": "Main Street"},
            },
            {
                "type": "relation",
                "id": 20,
                "members": [
                    {"type": "way", "ref": 10, "role": "outer"},
                    {"type": "node", "ref": 1, "role": "label"},
                ],
                "tags": {"type": "multipolygon", "building": "yes"},
            },
        ],
    }


@pytest.fixture
def overpass_data() -> dict[str, Any]:
    """A decoded Overpass JSON document; way 11 refers to missing node 99."""
    return _overpass_document()


@pytest.fixture
def overpass_file(temp_dir: Path) -> Path:
    """The same document written to disk."""
    path = temp_dir / "extract.json"
    path.write_text(json.dumps(_overpass_document(), ensure_ascii=False), encoding="utf-8")
    return path
