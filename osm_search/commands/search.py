"""Search an OSM data file with a feature query."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from osm_search.cli import Context, pass_context
from osm_search.data.loader import load_dataset
from osm_search.data.models import Bounds, FeatureKind
from osm_search.exceptions import DataError, SearchParseError
from osm_search.search.parser import compile_query
from osm_search.utils.output import (
    console,
    create_table,
    error,
    info,
    verbose,
    warning,
)

if TYPE_CHECKING:
    from osm_search.data.models import DataSet, Primitive

EXIT_SUCCESS = 0
EXIT_NO_RESULTS = 0
EXIT_PARSE_ERROR = 1
EXIT_DATA_ERROR = 2
EXIT_NO_DATA = 3

# Max width of the tags column in table output
TAGS_CLIP = 60


def _clip_text(value: str, max_width: int | None) -> str:
    """Truncate text to max_width, appending ellipsis if clipped."""
    if max_width is None or len(value) <= max_width:
        return value
    if max_width <= 1:
        return value[:max_width]
    return value[: max_width - 1] + "…"


def _format_tags(primitive: Primitive) -> str:
    return ", ".join(f"{k}={v}" for k, v in sorted(primitive.tags.items()))


def _parse_reference(ref: str) -> tuple[FeatureKind, int]:
    """Parse ``node/123`` style references."""
    kind_name, _, id_text = ref.partition("/")
    try:
        return FeatureKind(kind_name), int(id_text)
    except ValueError:
        raise click.BadParameter(
            f"'{ref}' is not a reference like node/123", param_hint="--select"
        ) from None


def _apply_selection(dataset: DataSet, refs: tuple[str, ...]) -> None:
    selected = []
    for ref in refs:
        kind, primitive_id = _parse_reference(ref)
        primitive = dataset.get(kind, primitive_id)
        if primitive is None:
            warning(f"Selected {ref} is not in the data file")
            continue
        selected.append(primitive)
    dataset.set_selected(selected)


@click.command("search")
@click.argument("query", nargs=-1)
@click.option(
    "--data",
    "-d",
    "data_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Overpass JSON file to search (default: data.default_file from config)",
)
@click.option(
    "--case-sensitive/--ignore-case",
    default=None,
    help="Compare text case-sensitively (default: from config, else ignore case)",
)
@click.option(
    "--regex/--no-regex",
    default=None,
    help="Treat text operands as regular expressions (default: from config, else off)",
)
@click.option(
    "--select",
    "-s",
    "selected",
    multiple=True,
    help="Mark a feature as selected, e.g. way/42 (repeatable)",
)
@click.option(
    "--view",
    default=None,
    help="Current view for inview/allinview as min_lon,min_lat,max_lon,max_lat",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "ids", "json"]),
    default="table",
    help="Output format (default: table)",
)
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(min=0),
    default=None,
    help="Limit number of results",
)
@click.option(
    "--explain",
    is_flag=True,
    default=False,
    help="Print the compiled query before the results",
)
@pass_context
def cli(
    ctx: Context,
    query: tuple[str, ...],
    data_file: Path | None,
    case_sensitive: bool | None,
    regex: bool | None,
    selected: tuple[str, ...],
    view: str | None,
    output_format: str,
    limit: int | None,
    explain: bool,
) -> None:
    """Search features of an OSM data file.

    QUERY is a search string. Multiple arguments are joined with spaces;
    an empty query matches every feature.

    \b
    Syntax examples:
      osm-search search -d map.json "highway=primary"
      osm-search search -d map.json "name:main type:way"
      osm-search search -d map.json "amenity=cafe OR amenity=restaurant"
      osm-search search -d map.json "building=* !closed"
      osm-search search -d map.json "child (type:node new)"
      osm-search search -d map.json --regex "name=^St\\."

    \b
    Output formats:
      --format table   Rich table (default)
      --format ids     One type/id per line (for piping)
      --format json    JSON array of features
    """
    case_sensitive, regex = ctx.search_flags(case_sensitive, regex)
    data_file = ctx.data_file(data_file)

    if data_file is None:
        error("No data file given", hint="Use --data or set data.default_file in the config")
        raise SystemExit(EXIT_NO_DATA)

    view_bounds: Bounds | None = None
    if view is not None:
        try:
            view_bounds = Bounds.parse(view)
        except ValueError as e:
            error(f"Invalid --view: {e}")
            raise SystemExit(EXIT_PARSE_ERROR)

    try:
        dataset = load_dataset(data_file)
    except DataError as e:
        error(str(e))
        raise SystemExit(EXIT_DATA_ERROR)
    verbose(f"Loaded {len(dataset)} features from {data_file}")

    dataset.view = view_bounds
    _apply_selection(dataset, selected)

    query_string = " ".join(query)
    try:
        predicate = compile_query(
            query_string,
            case_sensitive=case_sensitive,
            regex_search=regex,
            map_context=dataset,
        )
    except SearchParseError as e:
        error(f"Invalid search query: {e}")
        raise SystemExit(EXIT_PARSE_ERROR)

    if explain:
        info(f"Compiled: {predicate}")

    results = [p for p in dataset if predicate.match(p, dataset)]
    results.sort(key=lambda p: (p.kind.value, p.id))
    if limit is not None:
        results = results[:limit]

    if not results:
        if not ctx.quiet:
            info(f"No results for: {query_string}")
        raise SystemExit(EXIT_NO_RESULTS)

    if output_format == "table":
        _print_table(results, query_string, quiet=ctx.quiet)
    elif output_format == "ids":
        _print_ids(results)
    elif output_format == "json":
        _print_json(results)

    raise SystemExit(EXIT_SUCCESS)


def _print_table(results: list[Primitive], query_string: str, *, quiet: bool = False) -> None:
    """Print results as a Rich table."""
    if not quiet:
        info(f"Search: {query_string} ({len(results)} results)")

    table = create_table(show_header=True, header_style="bold")
    table.add_column("Type", style="feature.kind", no_wrap=True)
    table.add_column("ID", style="feature.id", justify="right", no_wrap=True)
    table.add_column("Version", justify="right", no_wrap=True)
    table.add_column("User", no_wrap=True)
    table.add_column("Tags", no_wrap=True)

    for p in results:
        table.add_row(
            str(p.kind),
            str(p.id),
            str(p.version),
            escape(p.user or ""),
            escape(_clip_text(_format_tags(p), TAGS_CLIP)),
        )

    console.print(table)


def _print_ids(results: list[Primitive]) -> None:
    """Print one type/id reference per line."""
    for p in results:
        click.echo(f"{p.kind}/{p.id}")


def _print_json(results: list[Primitive]) -> None:
    """Print results as JSON array."""
    items = []
    for p in results:
        items.append(
            {
                "type": p.kind.value,
                "id": p.id,
                "version": p.version,
                "changeset": p.changeset_id,
                "user": p.user,
                "timestamp": p.timestamp.isoformat() if p.timestamp is not None else None,
                "tags": dict(p.tags),
            }
        )
    click.echo(json.dumps(items, indent=2, ensure_ascii=False))
