"""Utility modules for osm-search."""
