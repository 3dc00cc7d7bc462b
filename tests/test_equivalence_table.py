"""Tests for keystats.equivalence_table and the equivalence parsers."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from keystats.data_utils import (
    load_equivalence_csv,
    load_equivalence_file,
    parse_equivalence_data,
    parse_equivalence_payload,
    validate_data_consistency,
)
from keystats.equivalence_table import EquivalenceTable, is_url
from keystats.errors import ResourceUnavailableError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def json_table(tmp_path: Path) -> Path:
    path = tmp_path / "equivTable.json"
    path.write_text(json.dumps({
        "description": "test table",
        "data": {"as": 1.3, "AZ": 1.5, "toolong": 2.0, "qq": "x"},
    }), encoding="utf-8")
    return path


@pytest.fixture()
def csv_table(tmp_path: Path) -> Path:
    path = tmp_path / "equiv.csv"
    path.write_text("key_pair,equivalent\nas,1.3\naz,1.5\nqq,abc\n", encoding="utf-8")
    return path


def fast_table(sources, **kwargs) -> EquivalenceTable:
    kwargs.setdefault("retry_delay", 0)
    return EquivalenceTable(sources=[str(s) for s in sources], **kwargs)


# ---------------------------------------------------------------------------
# parsing
# ---------------------------------------------------------------------------

class TestParsing:
    def test_parse_skips_invalid_entries(self):
        data = parse_equivalence_data({"AS": 1, "b;": 2.5, "x": 1, "abc": 1, "zz": None, "yy": True})
        assert data == {"as": 1.0, "b;": 2.5}

    def test_parse_skips_non_finite_costs(self):
        data = parse_equivalence_data({"as": float("nan"), "sd": 1.0, "df": float("inf"), "fg": float("-inf")})
        assert data == {"sd": 1.0}

    def test_json_nan_cell_is_skipped(self, tmp_path):
        path = tmp_path / "nan.json"
        path.write_text('{"data": {"as": NaN, "sd": 1.0}}', encoding="utf-8")
        assert load_equivalence_file(str(path)) == {"sd": 1.0}

    def test_parse_rejects_non_mapping(self):
        with pytest.raises(ValueError):
            parse_equivalence_data(["as", 1.3])

    def test_parse_rejects_empty_result(self):
        with pytest.raises(ValueError, match="No valid pair costs"):
            parse_equivalence_data({"abc": 1})

    def test_payload_requires_data_field(self):
        with pytest.raises(ValueError, match="'data'"):
            parse_equivalence_payload({"as": 1.3})

    def test_load_json_file(self, json_table):
        assert load_equivalence_file(str(json_table)) == {"as": 1.3, "az": 1.5}

    def test_load_csv_file(self, csv_table):
        assert load_equivalence_csv(str(csv_table)) == {"as": 1.3, "az": 1.5}
        assert load_equivalence_file(str(csv_table)) == {"as": 1.3, "az": 1.5}

    def test_csv_missing_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("pair,cost\nas,1.3\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Missing required columns"):
            load_equivalence_csv(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_equivalence_file(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            load_equivalence_file(str(path))

    def test_consistency_checks(self):
        assert validate_data_consistency({"as": 1.0, "az": 2.0}) == []
        assert validate_data_consistency({}) == ["data is empty"]
        issues = validate_data_consistency({"as": -1.0, "az": 0.001, "qq": 10.0})
        assert any("negative" in issue for issue in issues)
        assert any("value range" in issue for issue in issues)


# ---------------------------------------------------------------------------
# EquivalenceTable construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_unloaded_by_default(self):
        table = EquivalenceTable()
        assert not table.loaded
        assert not table.failed
        assert len(table) == 0
        assert table.lookup("as") is None

    def test_from_mapping_is_loaded(self):
        table = EquivalenceTable.from_mapping({"as": 1.3})
        assert table.loaded
        assert table.source_used == "<memory>"
        assert table.lookup("as") == 1.3
        assert "as" in table

    def test_from_config(self):
        table = EquivalenceTable.from_config({
            "sources": ["a.json", "https://example.org/b.json"],
            "max_attempts": 5,
            "retry_delay": 0.1,
            "request_timeout": 2,
            "overall_timeout": 9,
        })
        assert table.sources == ["a.json", "https://example.org/b.json"]
        assert table.max_attempts == 5
        assert table.overall_timeout == 9.0

    def test_as_dict_is_a_copy(self):
        table = EquivalenceTable.from_mapping({"as": 1.3})
        table.as_dict()["as"] = 99.0
        assert table.lookup("as") == 1.3

    def test_is_url(self):
        assert is_url("https://example.org/t.json")
        assert is_url("http://localhost/t.json")
        assert not is_url("input/t.json")


# ---------------------------------------------------------------------------
# EquivalenceTable loading
# ---------------------------------------------------------------------------

class TestLoad:
    def test_load_json(self, json_table):
        table = fast_table([json_table])
        assert asyncio.run(table.load()) is True
        assert table.loaded
        assert table.source_used == str(json_table)
        assert table.lookup("az") == 1.5
        assert table.describe()["pairs"] == 2

    def test_falls_back_to_next_source(self, tmp_path, csv_table):
        table = fast_table([tmp_path / "missing.json", csv_table])
        assert asyncio.run(table.load()) is True
        assert table.source_used == str(csv_table)

    def test_all_sources_fail(self, tmp_path):
        table = fast_table([tmp_path / "a.json", tmp_path / "b.json"], max_attempts=2)
        assert asyncio.run(table.load()) is False
        assert table.failed
        assert not table.loaded
        assert len(table) == 0

    def test_no_sources(self):
        table = EquivalenceTable()
        assert asyncio.run(table.load()) is False
        assert table.failed

    def test_retries_until_success(self):
        table = fast_table(["first", "second"], max_attempts=3)
        calls = []

        async def flaky(source):
            calls.append(source)
            if len(calls) < 4:
                raise ResourceUnavailableError(f"{source}: unavailable")
            return {"as": 1.0}

        table._fetch_source = flaky
        assert asyncio.run(table.load()) is True
        assert calls == ["first", "second", "first", "second"]
        assert table.source_used == "second"

    def test_gives_up_after_max_attempts(self):
        table = fast_table(["only"], max_attempts=3)
        calls = []

        async def broken(source):
            calls.append(source)
            raise ResourceUnavailableError(f"{source}: unavailable")

        table._fetch_source = broken
        assert asyncio.run(table.load()) is False
        assert len(calls) == 3

    def test_overall_timeout(self):
        table = fast_table(["slow"], overall_timeout=0.05)

        async def slow(source):
            await asyncio.sleep(1)
            return {"as": 1.0}

        table._fetch_source = slow
        assert asyncio.run(table.load()) is False
        assert table.failed

    def test_unreachable_url(self):
        table = fast_table(["http://127.0.0.1:9/equivTable.json"], max_attempts=1,
                           request_timeout=1.0, overall_timeout=5.0)
        assert asyncio.run(table.load()) is False
        assert table.failed

    def test_retry_after_failure(self, tmp_path):
        path = tmp_path / "later.json"
        table = fast_table([path], max_attempts=1)
        assert asyncio.run(table.load()) is False

        path.write_text(json.dumps({"data": {"as": 1.0}}), encoding="utf-8")
        assert asyncio.run(table.load()) is True
        assert table.loaded
        assert not table.failed

    def test_loaded_table_does_not_reload(self, json_table):
        table = fast_table([json_table])
        asyncio.run(table.load())
        json_table.unlink()
        assert asyncio.run(table.load()) is True
        assert table.lookup("as") == 1.3


# ---------------------------------------------------------------------------
# load notifications
# ---------------------------------------------------------------------------

class TestSubscribers:
    def test_notified_once_on_success(self, json_table):
        table = fast_table([json_table])
        seen = []
        table.subscribe(seen.append)
        asyncio.run(table.load())
        asyncio.run(table.load())
        assert seen == [table]

    def test_not_notified_on_failure(self, tmp_path):
        table = fast_table([tmp_path / "missing.json"], max_attempts=1)
        seen = []
        table.subscribe(seen.append)
        asyncio.run(table.load())
        assert seen == []

    def test_unsubscribe(self, json_table):
        table = fast_table([json_table])
        seen = []
        table.subscribe(seen.append)
        table.unsubscribe(seen.append)
        asyncio.run(table.load())
        assert seen == []

    def test_failing_listener_does_not_break_load(self, json_table):
        table = fast_table([json_table])
        seen = []

        def explode(_table):
            raise RuntimeError("listener bug")

        table.subscribe(explode)
        table.subscribe(seen.append)
        assert asyncio.run(table.load()) is True
        assert seen == [table]
