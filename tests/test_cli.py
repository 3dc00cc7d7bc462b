"""Tests for keystats.cli_utils and the command-line scripts."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

import analyze_keystrokes
import merge_snapshots
from keystats.cli_utils import (
    configure_logging,
    create_standard_parser,
    handle_common_errors,
    load_tool_config,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def equiv_file(tmp_path: Path) -> Path:
    path = tmp_path / "equivTable.json"
    path.write_text(json.dumps({"data": {"as": 1.3, "az": 1.5}}), encoding="utf-8")
    return path


@pytest.fixture()
def run(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run a script's main() with arguments and a config file that does not exist."""
    def _run(module, *args):
        argv = [f"{module.__name__}.py", "--config", str(tmp_path / "no-config.yaml"), *args]
        monkeypatch.setattr(sys, "argv", argv)
        return module.main()
    return _run


# ---------------------------------------------------------------------------
# StandardCLIParser
# ---------------------------------------------------------------------------

class TestStandardCLIParser:
    def test_defaults(self):
        args = create_standard_parser("analyze_keystrokes", accepts_text=True).parse_args([])
        assert args.output_format == "detailed"
        assert args.config == "config.yaml"
        assert args.text is None

    @pytest.mark.parametrize("flag, output_format", [
        ("--csv", "csv"), ("--score-only", "score_only"), ("--detailed", "detailed"),
    ])
    def test_format_shortcuts(self, flag, output_format):
        args = create_standard_parser("analyze_keystrokes").parse_args([flag])
        assert args.output_format == output_format

    def test_text_inputs_are_exclusive(self):
        cli = create_standard_parser("analyze_keystrokes", accepts_text=True)
        with pytest.raises(SystemExit):
            cli.parse_args(["--text", "abc", "--events-file", "e.json"])

    def test_repeatable_sources(self):
        args = create_standard_parser("merge_snapshots").parse_args(
            ["--equivalence-source", "a.json", "--equivalence-source", "b.csv"])
        assert args.equivalence_sources == ["a.json", "b.csv"]

    def test_epilog_has_examples(self):
        cli = create_standard_parser("merge_snapshots")
        assert "python merge_snapshots.py" in cli.parser.epilog


# ---------------------------------------------------------------------------
# configuration helpers
# ---------------------------------------------------------------------------

class TestConfigHelpers:
    def test_overrides(self, tmp_path: Path):
        cli = create_standard_parser("analyze_keystrokes")
        args = cli.parse_args(["--config", str(tmp_path / "none.yaml"), "--state-file", "memory",
                               "--equivalence-source", "x.json", "--quiet"])
        config = load_tool_config(args)
        assert config["storage"]["state_file"] == "memory"
        assert config["equivalence_table"]["sources"] == ["x.json"]
        assert config["common"]["quiet_mode"] is True

    def test_configure_logging_rejects_unknown_level(self):
        with pytest.raises(ValueError):
            configure_logging({"logging": {"level": "LOUD"}})

    def test_configure_logging(self):
        configure_logging({"logging": {"level": "info"}})
        configure_logging({}, verbose=True)
        assert isinstance(logging.getLogger().level, int)


# ---------------------------------------------------------------------------
# handle_common_errors
# ---------------------------------------------------------------------------

class TestHandleCommonErrors:
    @pytest.mark.parametrize("error, code", [
        (FileNotFoundError("missing"), 1),
        (ValueError("bad"), 1),
        (PermissionError("denied"), 1),
        (RuntimeError("boom"), 1),
        (KeyboardInterrupt(), 130),
    ])
    def test_exit_codes(self, error, code, capsys):
        @handle_common_errors
        def main():
            raise error

        assert main() == code
        assert capsys.readouterr().err

    def test_passes_return_value(self):
        @handle_common_errors
        def main():
            return 0

        assert main() == 0


# ---------------------------------------------------------------------------
# analyze_keystrokes.py
# ---------------------------------------------------------------------------

class TestAnalyzeKeystrokes:
    def test_text_score_only(self, run, tmp_path: Path, capsys):
        state = tmp_path / "state.json"
        assert run(analyze_keystrokes, "--state-file", str(state), "--text", "aj", "--score-only",
                   "--quiet") == 0
        assert capsys.readouterr().out.strip() == "100.00 unavailable"
        assert json.loads(state.read_text(encoding="utf-8"))["stats"] == {"A": 1, "J": 1}

    def test_accumulates_across_runs(self, run, tmp_path: Path):
        state = tmp_path / "state.json"
        run(analyze_keystrokes, "--state-file", str(state), "--text", "ab", "--quiet")
        run(analyze_keystrokes, "--state-file", str(state), "--text", "ab", "--quiet")
        assert json.loads(state.read_text(encoding="utf-8"))["stats"] == {"A": 2, "B": 2}

    def test_reset(self, run, tmp_path: Path):
        state = tmp_path / "state.json"
        run(analyze_keystrokes, "--state-file", str(state), "--text", "ab", "--quiet")
        run(analyze_keystrokes, "--state-file", str(state), "--reset", "--quiet")
        assert json.loads(state.read_text(encoding="utf-8"))["stats"] == {}

    def test_equivalent_and_export(self, run, tmp_path: Path, equiv_file: Path, capsys):
        export_dir = tmp_path / "exports"
        export_dir.mkdir()
        assert run(analyze_keystrokes, "--state-file", "memory", "--equivalence-source", str(equiv_file),
                   "--text", "as az", "--score-only", "--export", str(export_dir),
                   "--scheme", "qwerty", "--quiet") == 0

        assert capsys.readouterr().out.strip().endswith("1.40")
        exports = list(export_dir.glob("keystats-qwerty-*.json"))
        assert len(exports) == 1
        bundle = json.loads(exports[0].read_text(encoding="utf-8"))
        assert bundle["equivalentStats"]["available"] is True

    def test_events_file(self, run, tmp_path: Path, capsys):
        events = tmp_path / "events.jsonl"
        events.write_text('{"key": "a"}\n{"boundary": true}\n{"key": "j"}\n', encoding="utf-8")
        assert run(analyze_keystrokes, "--state-file", "memory", "--events-file", str(events), "--csv",
                   "--quiet") == 0
        lines = capsys.readouterr().out.strip().split("\n")
        values = dict(zip(lines[0].split(","), lines[1].split(",")))
        assert values["total_keys"] == "2"
        assert values["total_key_pairs"] == "0"

    def test_invalid_import_fails(self, run, tmp_path: Path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text('{"keyPairStats": {}}', encoding="utf-8")
        assert run(analyze_keystrokes, "--state-file", "memory", "--import", str(bad), "--quiet") == 1
        assert "Cannot import" in capsys.readouterr().err

    def test_missing_text_file(self, run, tmp_path: Path):
        assert run(analyze_keystrokes, "--state-file", "memory", "--text-file",
                   str(tmp_path / "nope.txt"), "--quiet") == 1


# ---------------------------------------------------------------------------
# merge_snapshots.py
# ---------------------------------------------------------------------------

class TestMergeSnapshots:
    def write_bundle(self, path: Path, stats, pairs) -> Path:
        path.write_text(json.dumps({"stats": stats, "keyPairStats": pairs}), encoding="utf-8")
        return path

    def test_merge_and_export(self, run, tmp_path: Path):
        a = self.write_bundle(tmp_path / "a.json", {"A": 2}, {"A-A": 1})
        b = self.write_bundle(tmp_path / "b.json", {"A": 1, "J": 4}, {"A-J": 1})
        out = tmp_path / "merged.json"

        assert run(merge_snapshots, str(a), str(b), "--export", str(out), "--quiet") == 0
        merged = json.loads(out.read_text(encoding="utf-8"))
        assert merged["stats"] == {"A": 3, "J": 4}
        assert merged["keyPairStats"] == {"A-A": 1, "A-J": 1}
        assert merged["maxFrequency"] == 4

    def test_same_bundle_twice_doubles(self, run, tmp_path: Path):
        a = self.write_bundle(tmp_path / "a.json", {"A": 2}, {})
        out = tmp_path / "merged.json"
        run(merge_snapshots, str(a), str(a), "--export", str(out), "--quiet")
        assert json.loads(out.read_text(encoding="utf-8"))["stats"] == {"A": 4}

    def test_invalid_bundle_stops(self, run, tmp_path: Path):
        a = self.write_bundle(tmp_path / "a.json", {"A": 2}, {})
        bad = tmp_path / "bad.json"
        bad.write_text("[]", encoding="utf-8")
        assert run(merge_snapshots, str(a), str(bad), "--quiet") == 1

    def test_skip_invalid(self, run, tmp_path: Path, capsys):
        a = self.write_bundle(tmp_path / "a.json", {"A": 2}, {})
        bad = tmp_path / "bad.json"
        bad.write_text("[]", encoding="utf-8")
        assert run(merge_snapshots, str(a), str(bad), "--skip-invalid", "--score-only", "--quiet") == 0
        captured = capsys.readouterr()
        assert "Skipping" in captured.err
        assert captured.out.strip() == "0.00 unavailable"

    def test_no_valid_bundles(self, run, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("{}", encoding="utf-8")
        assert run(merge_snapshots, str(bad), "--skip-invalid", "--quiet") == 1
