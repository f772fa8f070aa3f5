"""Feature search: query compiler and predicate evaluator."""

from osm_search.exceptions import SearchParseError
from osm_search.search.ast_nodes import Predicate
from osm_search.search.evaluator import match
from osm_search.search.parser import compile_query

__all__ = [
    "Predicate",
    "SearchParseError",
    "compile_query",
    "match",
]
