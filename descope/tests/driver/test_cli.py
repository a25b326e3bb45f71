# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# author: Sławomir Liszniański; created: 2026-10-19
from __future__ import annotations

import json
from pathlib import Path

import pytest

from descope.cli import main as descope_main

GOOD = """
var fs = [];
for (let i = 0; i < 3; i = i + 1) {
	push(fs, function () { return i; });
}
for (const f of fs) { print(f()); }
"""

MIXED = """
function bad() { const c = 1; c = 2; return c; }
function good() { let a = 1; return a; }
print(good());
"""


def _write_file(path: Path, content: str) -> Path:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(content, encoding="utf-8")
	return path


def _run_json(argv: list[str], capsys: pytest.CaptureFixture[str]) -> tuple[int, dict]:
	rc = descope_main(argv + ["--json"])
	out = capsys.readouterr().out
	payload = json.loads(out) if out.strip() else {}
	return rc, payload


def test_prints_transformed_program(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "good.js", GOOD)
	rc = descope_main([str(src)])
	captured = capsys.readouterr()
	assert rc == 0
	assert "var $loop" in captured.out
	assert "let " not in captured.out
	assert captured.err == ""


def test_no_hoist_flag(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "good.js", GOOD)
	rc = descope_main([str(src), "--no-hoist"])
	out = capsys.readouterr().out
	assert rc == 0
	assert "$loop" not in out
	assert "(function (i) {" in out


def test_emit_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "good.js", GOOD)
	rc = descope_main([str(src), "--emit-input"])
	out = capsys.readouterr().out
	assert rc == 0
	assert "for (let i = 0; i < 3; i = i + 1) {" in out


def test_output_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "good.js", GOOD)
	dest = tmp_path / "out.js"
	rc = descope_main([str(src), "-o", str(dest)])
	assert rc == 0
	assert capsys.readouterr().out == ""
	assert "var $loop" in dest.read_text()


def test_run_compares_outputs(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "good.js", GOOD)
	rc, payload = _run_json([str(src), "--run"], capsys)
	assert rc == 0
	assert payload["exit_code"] == 0
	assert payload["diagnostics"] == []
	assert payload["run"] == {"original": ["0", "1", "2"], "transformed": ["0", "1", "2"], "match": True}
	assert "var $loop" in payload["program"]


def test_run_reports_runtime_failure(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "boom.js", "var x = 1;\nx();\n")
	rc, payload = _run_json([str(src), "--run"], capsys)
	assert rc == 1
	phases = [d["phase"] for d in payload["diagnostics"]]
	assert phases == ["run", "run"]
	assert payload["run"]["match"] is False


def test_failing_function_reported_as_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "mixed.js", MIXED)
	rc, payload = _run_json([str(src)], capsys)
	assert rc == 1
	assert payload["exit_code"] == 1
	(diag,) = payload["diagnostics"]
	assert diag["code"] == "E0201"
	assert diag["phase"] == "classify"
	assert diag["function"] == "bad"
	assert diag["line"] == 2
	assert diag["file"] is None or diag["file"].endswith("mixed.js")
	# The sibling function still made it into the output.
	assert "function good()" in payload["program"]
	assert "function bad()" not in payload["program"]


def test_failing_function_human_readable(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "mixed.js", MIXED)
	rc = descope_main([str(src)])
	captured = capsys.readouterr()
	assert rc == 1
	assert "function good()" in captured.out
	assert "error: assignment to immutable binding 'c' [E0201]" in captured.err
	assert "note: 'c' declared immutable at 2:" in captured.err


def test_strict_stops_at_first_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "mixed.js", MIXED)
	rc, payload = _run_json([str(src), "--strict"], capsys)
	assert rc == 1
	assert [d["code"] for d in payload["diagnostics"]] == ["E0201"]
	assert "program" not in payload


def test_parse_error_is_parser_phase(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "broken.js", "var x = ;\n")
	rc, payload = _run_json([str(src)], capsys)
	assert rc == 1
	(diag,) = payload["diagnostics"]
	assert diag["phase"] == "parser"
	assert diag["code"] == "E0001"
	assert diag["line"] == 1
	assert diag["file"].endswith("broken.js")


def test_missing_source_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	rc, payload = _run_json([str(tmp_path / "nope.js")], capsys)
	assert rc == 1
	assert payload["diagnostics"][0]["phase"] == "driver"


def test_extra_globals_flag(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "host.js", "host(1);\n")
	rc, _payload = _run_json([str(src)], capsys)
	assert rc == 1
	rc, payload = _run_json([str(src), "--global", "host"], capsys)
	assert rc == 0
	assert payload["program"] == "host(1);\n"


def test_unicode_escape_in_string_literal(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	src = _write_file(tmp_path / "u.js", 'print("\\u00e9", "\\u4e2d");\n')
	rc, payload = _run_json([str(src), "--run"], capsys)
	assert rc == 0
	assert payload["run"]["original"] == ["é 中"]
	assert payload["run"]["match"] is True
