"""Integration tests for the search command against an Overpass JSON file."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from osm_search.cli import cli

Runner = Callable[..., Result]


@pytest.fixture
def run(temp_dir: Path, overpass_file: Path) -> Runner:
    """Invoke ``osm-search search`` on the fixture file with an empty config."""
    config_path = temp_dir / "empty.toml"
    config_path.write_text("")

    def _run(*args: str, data: Path | None = overpass_file, config: Path = config_path) -> Result:
        argv = ["--no-color", "--config", str(config), "search"]
        if data is not None:
            argv += ["--data", str(data)]
        return CliRunner().invoke(cli, argv + list(args))

    return _run


def _ids(result: Result) -> list[str]:
    return [line for line in result.output.splitlines() if line]


# ---------------------------------------------------------------------------
# Output formats
# ---------------------------------------------------------------------------


class TestFormats:
    def test_ids(self, run: Runner) -> None:
        result = run("-f", "ids", "building=yes")
        assert result.exit_code == 0
        assert _ids(result) == ["relation/20", "way/10"]

    def test_json(self, run: Runner) -> None:
        result = run("--format", "json", "amenity=cafe")
        assert result.exit_code == 0
        items = json.loads(result.output)
        assert items == [
            {
                "type": "node",
                "id": 1,
                "version": 3,
                "changeset": 100,
                "user": "alice",
                "timestamp": "2011-03-01T12:00:00+00:00",
                "tags": {"amenity": "cafe", "name": "Café"},
            }
        ]

    def test_table(self, run: Runner) -> None:
        result = run("highway=residential")
        assert result.exit_code == 0
        assert "1 results" in result.output
        assert "highway=residential" in result.output

    def test_limit(self, run: Runner) -> None:
        result = run("-f", "ids", "--limit", "2")
        assert result.exit_code == 0
        assert _ids(result) == ["node/1", "node/2"]

    def test_negative_limit_is_rejected(self, run: Runner) -> None:
        result = run("-f", "ids", "--limit", "-1", "building=yes")
        assert result.exit_code == 2
        assert "--limit" in result.output

    def test_no_results(self, run: Runner) -> None:
        result = run("highway=motorway")
        assert result.exit_code == 0
        assert "No results" in result.output

    def test_explain(self, run: Runner) -> None:
        result = run("-f", "ids", "--explain", "type:way", "closed")
        assert result.exit_code == 0
        assert "Compiled: (type:way && closed)" in result.output
        assert "way/10" in result.output


# ---------------------------------------------------------------------------
# Query options
# ---------------------------------------------------------------------------


class TestQueryOptions:
    def test_arguments_are_joined(self, run: Runner) -> None:
        result = run("-f", "ids", "type:relation", "OR", "name:main")
        assert _ids(result) == ["relation/20", "way/11"]

    def test_negation_after_double_dash(self, run: Runner) -> None:
        result = run("-f", "ids", "--", "-building=*", "type:way")
        assert _ids(result) == ["way/11"]

    def test_regex(self, run: Runner) -> None:
        result = run("-f", "ids", "--regex", "name:^main")
        assert _ids(result) == ["way/11"]

    def test_case_sensitive(self, run: Runner) -> None:
        result = run("-f", "ids", "--case-sensitive", "name:main")
        assert "No results" in result.output

    def test_select(self, run: Runner) -> None:
        result = run("-f", "ids", "--select", "way/10", "selected")
        assert _ids(result) == ["way/10"]

    def test_select_invalid_reference(self, run: Runner) -> None:
        result = run("--select", "way-10", "selected")
        assert result.exit_code == 2
        assert "not a reference" in result.output

    def test_view(self, run: Runner) -> None:
        result = run("-f", "ids", "--view", "11.54,48.14,11.56,48.16", "inview")
        assert _ids(result) == ["node/1", "relation/20"]

    def test_invalid_view(self, run: Runner) -> None:
        result = run("--view", "1,2,3", "inview")
        assert result.exit_code == 1
        assert "Invalid --view" in result.output

    def test_incomplete_placeholder(self, run: Runner) -> None:
        result = run("-f", "ids", "incomplete")
        assert _ids(result) == ["node/99"]

    def test_modified(self, run: Runner) -> None:
        result = run("-f", "ids", "modified")
        assert _ids(result) == ["way/11"]


# ---------------------------------------------------------------------------
# Errors and configuration
# ---------------------------------------------------------------------------


class TestErrors:
    def test_parse_error(self, run: Runner) -> None:
        result = run("(highway=primary")
        assert result.exit_code == 1
        assert "Invalid search query" in result.output
        assert "right parent" in result.output

    def test_regex_error(self, run: Runner) -> None:
        result = run("--regex", "name=[")
        assert result.exit_code == 1
        assert "parse error at offset" in result.output

    def test_data_error(self, run: Runner, temp_dir: Path) -> None:
        broken = temp_dir / "broken.json"
        broken.write_text("{not json")
        result = run("building=yes", data=broken)
        assert result.exit_code == 2
        assert "Cannot load map data" in result.output

    def test_dangling_member_ref(self, run: Runner, temp_dir: Path) -> None:
        broken = temp_dir / "broken.json"
        broken.write_text(
            json.dumps({"elements": [{"type": "relation", "id": 1, "members": [{"type": "node"}]}]})
        )
        result = run("building=yes", data=broken)
        assert result.exit_code == 2
        assert "Cannot load map data" in result.output

    def test_no_data_file(self, run: Runner) -> None:
        result = run("building=yes", data=None)
        assert result.exit_code == 3
        assert "No data file given" in result.output

    def test_invalid_config(self, run: Runner, temp_dir: Path) -> None:
        config_path = temp_dir / "bad.toml"
        config_path.write_text("[search]\nregex = 1\n")
        result = run("building=yes", config=config_path)
        assert result.exit_code == 1
        assert "search.regex" in result.output


class TestConfigDefaults:
    @pytest.fixture
    def config_path(self, temp_dir: Path, overpass_file: Path) -> Path:
        path = temp_dir / "config.toml"
        path.write_text(
            f'[search]\ncase_sensitive = true\n\n[data]\ndefault_file = "{overpass_file}"\n'
        )
        return path

    def test_default_file_and_case_sensitivity(self, run: Runner, config_path: Path) -> None:
        result = run("-f", "ids", "name:main", data=None, config=config_path)
        assert result.exit_code == 0
        assert "No results" in result.output

    def test_flag_overrides_config(self, run: Runner, config_path: Path) -> None:
        result = run("-f", "ids", "--ignore-case", "name:main", data=None, config=config_path)
        assert _ids(result) == ["way/11"]


class TestGlobalOptions:
    def test_quiet_hides_status_lines(self, temp_dir: Path, overpass_file: Path) -> None:
        argv = ["--quiet", "--config", str(temp_dir / "missing.toml"), "search"]
        result = CliRunner().invoke(cli, argv + ["--data", str(overpass_file), "highway=motorway"])
        assert result.exit_code == 0
        assert "No results" not in result.output
        assert "No config file found" not in result.output

    def test_missing_explicit_config_warns(self, temp_dir: Path, overpass_file: Path) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "--config",
                str(temp_dir / "missing.toml"),
                "search",
                "--data",
                str(overpass_file),
                "-f",
                "ids",
                "closed",
            ],
        )
        assert result.exit_code == 0
        assert "No config file found" in result.output

    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "osm-search" in result.output
