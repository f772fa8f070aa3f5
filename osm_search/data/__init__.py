"""OSM data model, loading and geometry."""

from osm_search.data.loader import load_dataset, parse_dataset
from osm_search.data.models import (
    Bounds,
    DataSet,
    Feature,
    FeatureKind,
    MapContext,
    Node,
    Relation,
    RelationMember,
    Selection,
    Way,
)

__all__ = [
    "Bounds",
    "DataSet",
    "Feature",
    "FeatureKind",
    "MapContext",
    "Node",
    "Relation",
    "RelationMember",
    "Selection",
    "Way",
    "load_dataset",
    "parse_dataset",
]
