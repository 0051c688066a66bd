"""Typer CLI entrypoint for the APML compiler."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from apmlc.analysis.analyzer import classify
from apmlc.document.parser import parse_document
from apmlc.fallback.ollama import backend_from_settings
from apmlc.orchestrator.pipeline import CompilationResult, compile_apml
from apmlc.patterns.registry import DEFAULT_REGISTRY
from apmlc.render.assembler import render_html
from apmlc.settings import BackendSettings, CompilerSettings
from apmlc.utils.errors import DocumentValidationError, ParseError, error_detail
from apps.cli.io import (
    OutputPaths,
    build_output_paths,
    existing_output_files,
    write_compile_output_atomic,
    write_error_json_atomic,
)

app = typer.Typer(help="APML to Vue 3 compiler", rich_markup_mode=None)

EXIT_INTERNAL = 1
EXIT_PARSE = 2
EXIT_VALIDATION = 3


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("compile")
def compile_command(
    source: Annotated[Path, typer.Argument(exists=True, dir_okay=False, file_okay=True)],
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
) -> None:
    """Compile one APML file into out.html and out.artifact.json."""

    paths = build_output_paths(out_dir)
    existing = existing_output_files(paths)
    if existing and not force:
        names = ", ".join(path.name for path in existing)
        typer.echo(f"ERROR: outputs already exist ({names}); pass --force to overwrite.")
        raise typer.Exit(code=EXIT_INTERNAL)
    if existing:
        typer.echo(f"INFO: overwriting existing outputs: {', '.join(path.name for path in existing)}")

    result: CompilationResult | None = None
    exit_code = EXIT_INTERNAL
    stage = "read_input"
    try:
        text = source.read_text(encoding="utf-8")
        stage = "compile"
        backend = backend_from_settings(BackendSettings.from_env())
        result = compile_apml(
            text,
            fallback=backend,
            repair=backend,
            settings=CompilerSettings.from_env(),
        )
        exit_code = 0
    except ParseError as exc:
        exit_code = EXIT_PARSE
        typer.echo(f"ERROR(parse): {exc}")
        _safe_write_error(paths, exc, stage)
    except DocumentValidationError as exc:
        exit_code = EXIT_VALIDATION
        typer.echo(f"ERROR(validation): {exc}")
        _safe_write_error(paths, exc, stage)
    except Exception as exc:  # noqa: BLE001
        exit_code = EXIT_INTERNAL
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        _safe_write_error(paths, exc, stage)

    if result is not None:
        try:
            write_compile_output_atomic(paths, result, render_html(result.artifact))
        except Exception as exc:  # noqa: BLE001
            exit_code = EXIT_INTERNAL
            typer.echo(f"ERROR: write output failed: {exc}")
            _safe_write_error(paths, exc, "write_output")
        else:
            _echo_summary(result)

    if exit_code == 0:
        typer.echo("INFO: success")
    raise typer.Exit(code=exit_code)


@app.command("analyze")
def analyze_command(
    source: Annotated[Path, typer.Argument(exists=True, dir_okay=False, file_okay=True)],
) -> None:
    """Print the pattern analysis of one APML file as JSON."""

    try:
        analysis = classify(parse_document(source.read_text(encoding="utf-8")))
    except ParseError as exc:
        typer.echo(f"ERROR(parse): {exc}")
        raise typer.Exit(code=EXIT_PARSE) from exc
    typer.echo(analysis.model_dump_json(indent=2))


@app.command("patterns")
def patterns_command() -> None:
    """List registered pattern ids with their required fields."""

    for pattern_id, definition in DEFAULT_REGISTRY.items():
        required = ", ".join(sorted(definition.required_fields)) or "-"
        typer.echo(f"{pattern_id}\trequired: {required}")


def _echo_summary(result: CompilationResult) -> None:
    artifact = result.artifact
    typer.echo(
        f"INFO(compile): strategy={artifact.strategy_used} degraded={str(artifact.degraded).lower()} "
        f"rule={result.metrics.rule_fragment_count} fallback={result.metrics.fallback_fragment_count} "
        f"placeholders={result.metrics.placeholder_count}"
    )
    if artifact.degraded:
        typer.echo(f"WARNING(fallback): degraded artifact ({result.metrics.fallback_failure}).")
    if artifact.unresolved:
        typer.echo(f"WARNING(unresolved): {', '.join(artifact.unresolved)}")
    for error in result.metrics.component_errors:
        typer.echo(f"WARNING(component): {error.component}: missing {', '.join(error.missing_fields)}")


def _safe_write_error(paths: OutputPaths, exc: Exception, stage: str) -> None:
    try:
        write_error_json_atomic(
            paths,
            error_type=type(exc).__name__,
            error_message=str(exc),
            stage=stage,
            detail=error_detail(exc),
        )
    except Exception:  # noqa: BLE001
        pass


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
