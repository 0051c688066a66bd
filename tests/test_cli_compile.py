from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from apmlc.utils.errors import ParseError
from apps.cli.main import app

runner = CliRunner()

LOGIN_APML = """## App Configuration
name: "Login Demo"

## UI Components
login_form: {
  type: "form_input"
  action: "submitLogin"
}
"""


@pytest.fixture(autouse=True)
def _no_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("APMLC_FALLBACK_BACKEND", raising=False)


def _write_source(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_compile_writes_outputs(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML)
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(out_dir)])

    assert result.exit_code == 0
    assert "INFO(compile): strategy=automatic degraded=false" in result.output
    assert "INFO: success" in result.output
    page = (out_dir / "out.html").read_text(encoding="utf-8")
    assert '<form @submit.prevent="submitLogin">' in page
    report = json.loads((out_dir / "out.artifact.json").read_text(encoding="utf-8"))
    assert report["artifact"]["title"] == "Login Demo"
    assert not (out_dir / "out.error.json").exists()


def test_compile_reports_degraded_output(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", '## UI Components\nteleporter: { type: "teleporter" }\n')

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert "degraded=true" in result.output
    assert "WARNING(fallback): degraded artifact (no_backend)." in result.output
    assert "WARNING(unresolved): teleporter" in result.output


def test_compile_refuses_to_overwrite_without_force(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML)
    (tmp_path / "out.html").write_text("keep", encoding="utf-8")

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "pass --force to overwrite" in result.output
    assert (tmp_path / "out.html").read_text(encoding="utf-8") == "keep"


def test_compile_overwrites_with_force(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML)
    (tmp_path / "out.html").write_text("old", encoding="utf-8")

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(tmp_path), "--force"])

    assert result.exit_code == 0
    assert "INFO: overwriting existing outputs: out.html" in result.output
    assert (tmp_path / "out.html").read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_validation_failure_exits_3_with_error_report(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML.replace("}\n", ""))

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(tmp_path)])

    assert result.exit_code == 3
    assert "ERROR(validation)" in result.output
    assert not (tmp_path / "out.html").exists()
    payload = json.loads((tmp_path / "out.error.json").read_text(encoding="utf-8"))
    assert payload["error"]["error_type"] == "UnrepairableDocumentError"
    assert payload["error"]["stage"] == "compile"
    assert payload["error"]["detail"]["issues"][0]["code"] == "MALFORMED_COMPONENT_BLOCK"


def test_empty_input_exits_3(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", "   \n")

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(tmp_path)])

    assert result.exit_code == 3
    payload = json.loads((tmp_path / "out.error.json").read_text(encoding="utf-8"))
    assert payload["error"]["error_type"] == "DocumentValidationError"
    assert payload["error"]["detail"]["issues"][0]["code"] == "EMPTY_INPUT"


def test_parse_failure_exits_2(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML)

    def broken_compile(*args: object, **kwargs: object) -> None:
        raise ParseError("unterminated_block", line_number=5, section="ui_components")

    monkeypatch.setattr("apps.cli.main.compile_apml", broken_compile)

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(tmp_path)])

    assert result.exit_code == 2
    assert "ERROR(parse): unterminated_block (line 5)" in result.output
    payload = json.loads((tmp_path / "out.error.json").read_text(encoding="utf-8"))
    assert payload["error"]["detail"] == {"reason": "unterminated_block", "line_number": 5, "section": "ui_components"}


def test_unexpected_failure_exits_1(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML)

    def broken_compile(*args: object, **kwargs: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr("apps.cli.main.compile_apml", broken_compile)

    result = runner.invoke(app, ["compile", str(source), "--out-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "ERROR: RuntimeError: boom" in result.output
    payload = json.loads((tmp_path / "out.error.json").read_text(encoding="utf-8"))
    assert payload["error"]["error_type"] == "RuntimeError"
    assert payload["error"]["detail"] == {}


def test_analyze_prints_classification(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML)

    result = runner.invoke(app, ["analyze", str(source)])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["strategy"] == "automatic"
    assert payload["known_patterns"] == ["form_input"]


def test_analyze_parse_error_exits_2(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "app.apml", LOGIN_APML.replace("}\n", ""))

    result = runner.invoke(app, ["analyze", str(source)])

    assert result.exit_code == 2
    assert "ERROR(parse): unterminated_block" in result.output


def test_patterns_lists_registry() -> None:
    result = runner.invoke(app, ["patterns"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == 18
    assert "form_input\trequired: action" in lines
    assert "progress_bar\trequired: current_step, total_steps" in lines
