"""osm-search: compile and run feature search queries over OpenStreetMap data."""

__version__ = "0.1.0"
