"""CLI I/O helpers for atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from apmlc.orchestrator.pipeline import CompilationResult


@dataclass(frozen=True)
class OutputPaths:
    """Fixed output artifact paths for a single compile."""

    html: Path
    artifact: Path
    error: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    """Build fixed output file paths under out_dir."""

    return OutputPaths(
        html=out_dir / "out.html",
        artifact=out_dir / "out.artifact.json",
        error=out_dir / "out.error.json",
    )


def existing_output_files(paths: OutputPaths) -> list[Path]:
    """Return existing output files among fixed artifact paths."""

    return [path for path in (paths.html, paths.artifact, paths.error) if path.exists()]


def write_compile_output_atomic(paths: OutputPaths, result: CompilationResult, page: str) -> None:
    """Write the HTML page and the JSON report, then drop any stale error report."""

    paths.html.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_text(paths.html, page)
    _atomic_write_json(paths.artifact, result.model_dump(mode="json"))
    paths.error.unlink(missing_ok=True)


def write_error_json_atomic(
    paths: OutputPaths,
    *,
    error_type: str,
    error_message: str,
    stage: str,
    detail: dict[str, Any] | None = None,
) -> None:
    """Write the error report for a failed compile."""

    payload = {
        "error": {
            "error_type": error_type,
            "error_message": error_message,
            "stage": stage,
            "detail": detail or {},
        }
    }
    paths.error.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_json(paths.error, payload)


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)


def _atomic_write_text(path: Path, text: str) -> None:
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
