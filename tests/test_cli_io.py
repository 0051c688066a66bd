from __future__ import annotations

import json
from pathlib import Path

import pytest

from apmlc.orchestrator.pipeline import CompilationResult, compile_apml
from apmlc.render.assembler import render_html
from apps.cli.io import (
    build_output_paths,
    existing_output_files,
    write_compile_output_atomic,
    write_error_json_atomic,
)

_APML = '## UI Components\nlogin_form: { type: "form_input", action: "submitLogin" }\n'


def _result() -> CompilationResult:
    return compile_apml(_APML)


def test_write_compile_output_writes_page_and_report(tmp_path: Path) -> None:
    result = _result()
    paths = build_output_paths(tmp_path / "out")

    write_compile_output_atomic(paths, result, render_html(result.artifact))

    assert paths.html.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")
    report = json.loads(paths.artifact.read_text(encoding="utf-8"))
    assert report["artifact"]["strategy_used"] == "automatic"
    assert report["metrics"]["rule_fragment_count"] == 1
    assert list((tmp_path / "out").glob("*.tmp")) == []


def test_successful_write_removes_stale_error_report(tmp_path: Path) -> None:
    result = _result()
    paths = build_output_paths(tmp_path)
    write_error_json_atomic(paths, error_type="ParseError", error_message="x", stage="compile")

    write_compile_output_atomic(paths, result, render_html(result.artifact))

    assert not paths.error.exists()
    assert existing_output_files(paths) == [paths.html, paths.artifact]


def test_html_tmp_is_cleaned_on_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    result = _result()
    paths = build_output_paths(tmp_path)

    def broken_replace(self: Path, target: Path) -> Path:
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", broken_replace)

    with pytest.raises(OSError, match="disk full"):
        write_compile_output_atomic(paths, result, render_html(result.artifact))

    assert not paths.html.exists()
    assert list(tmp_path.glob("out.html.*.tmp")) == []


def test_error_report_shape(tmp_path: Path) -> None:
    paths = build_output_paths(tmp_path)

    write_error_json_atomic(
        paths,
        error_type="ParseError",
        error_message="unterminated_block (line 3)",
        stage="compile",
        detail={"reason": "unterminated_block", "line_number": 3, "section": "ui_components"},
    )

    payload = json.loads(paths.error.read_text(encoding="utf-8"))
    assert payload == {
        "error": {
            "error_type": "ParseError",
            "error_message": "unterminated_block (line 3)",
            "stage": "compile",
            "detail": {"reason": "unterminated_block", "line_number": 3, "section": "ui_components"},
        }
    }
