"""Orchestration pipeline for one APML -> Vue compilation."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from apmlc.analysis.analyzer import AnalysisResult, classify
from apmlc.consistency.enforcer import normalize
from apmlc.consistency.models import ConsistencyPolicy
from apmlc.document.models import ComponentConfig
from apmlc.document.parser import parse_document
from apmlc.fallback.base import GenerativeFallback
from apmlc.fallback.extraction import FallbackArtifact, extract_fallback_artifact
from apmlc.fallback.request import DEFAULT_STYLE_GUIDE, build_fallback_request
from apmlc.patterns.registry import DEFAULT_REGISTRY, PatternRegistry
from apmlc.render.assembler import assemble_artifact, placeholder_fragment
from apmlc.render.models import CompilationArtifact, CompilationMetrics, MarkupFragment, Strategy
from apmlc.render.rule_based import RuleBasedOutput, fragment_key, generate_fragments
from apmlc.settings import CompilerSettings
from apmlc.utils.errors import ConsistencyError, ExtractionError, GenerationError
from apmlc.utils.logs import log_event
from apmlc.validation.repair import RepairCapability, validate_and_repair

logger = logging.getLogger("apmlc.compiler")


class CompilationResult(BaseModel):
    """Artifact plus the analysis and per-call metrics that produced it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    artifact: CompilationArtifact
    analysis: AnalysisResult
    metrics: CompilationMetrics


def compile_apml(
    text: str,
    *,
    fallback: GenerativeFallback | None = None,
    repair: RepairCapability | None = None,
    settings: CompilerSettings | None = None,
    registry: PatternRegistry = DEFAULT_REGISTRY,
    policy: ConsistencyPolicy | None = None,
    style_guide: str = DEFAULT_STYLE_GUIDE,
) -> CompilationResult:
    """Execute validate -> parse -> classify -> generate -> assemble -> normalize.

    ``ParseError`` and ``DocumentValidationError`` propagate to the caller.
    Fallback failures degrade the artifact; consistency conflicts keep the
    un-normalized artifact.
    """

    started = time.perf_counter()
    settings = settings or CompilerSettings()

    usable_text, repaired = validate_and_repair(text, repair, settings)
    document = parse_document(usable_text)
    analysis = classify(document, registry)
    rule_output = generate_fragments(document, analysis, registry)
    components = list(document.iter_components())

    targets = _fallback_targets(components, analysis, rule_output)
    fallback_artifact: FallbackArtifact | None = None
    failure: str | None = None
    fallback_called = False
    if analysis.strategy != "automatic":
        if fallback is None:
            failure = "no_backend"
        else:
            fallback_called = True
            request = build_fallback_request(
                usable_text,
                _rule_markup(rule_output),
                targets,
                style_guide,
                settings,
            )
            try:
                reply = fallback.generate(request, timeout=settings.fallback_timeout_seconds)
                fallback_artifact = extract_fallback_artifact(reply)
            except (GenerationError, ExtractionError) as exc:
                failure = exc.reason
        if failure is not None:
            log_event(logger, logging.WARNING, "fallback_degraded", strategy=analysis.strategy, reason=failure)

    fragments, unresolved = _merge_fragments(components, analysis.strategy, rule_output, fallback_artifact, targets)
    assembled = assemble_artifact(
        document,
        fragments,
        strategy=analysis.strategy,
        degraded=failure is not None,
        unresolved=unresolved,
        registry=registry,
        extra_methods=fallback_artifact.methods if fallback_artifact else "",
        extra_style=fallback_artifact.style if fallback_artifact else "",
    )

    try:
        artifact = normalize(assembled, policy)
        normalized = True
    except ConsistencyError as exc:
        log_event(logger, logging.WARNING, "consistency_conflict", conflicts=exc.conflicts, message=str(exc))
        artifact = assembled
        normalized = False

    metrics = CompilationMetrics(
        duration_ms=int((time.perf_counter() - started) * 1000),
        strategy=analysis.strategy,
        rule_fragment_count=sum(1 for fragment in fragments if fragment.source == "rule"),
        fallback_fragment_count=sum(1 for fragment in fragments if fragment.source == "fallback"),
        placeholder_count=sum(1 for fragment in fragments if fragment.source == "placeholder"),
        fallback_called=fallback_called,
        fallback_failure=failure,
        repair_attempted=bool(repaired),
        repaired_issue_codes=[issue.code for issue in repaired],
        normalized=normalized,
        component_errors=rule_output.errors,
    )
    log_event(
        logger,
        logging.INFO,
        "compile_done",
        strategy=metrics.strategy,
        degraded=artifact.degraded,
        duration_ms=metrics.duration_ms,
        rule_fragments=metrics.rule_fragment_count,
        fallback_fragments=metrics.fallback_fragment_count,
        placeholders=metrics.placeholder_count,
        unresolved=artifact.unresolved,
    )
    return CompilationResult(artifact=artifact, analysis=analysis, metrics=metrics)


def _rule_markup(rule_output: RuleBasedOutput) -> dict[str, str]:
    markup: dict[str, str] = {}
    for fragment in rule_output.fragments.values():
        markup.setdefault(fragment.component, fragment.markup)
    return markup


def _fallback_targets(
    components: Sequence[ComponentConfig],
    analysis: AnalysisResult,
    rule_output: RuleBasedOutput,
) -> list[str]:
    wanted = set(analysis.unresolved_components) | set(analysis.complex_components) | set(rule_output.failed_components)
    targets: list[str] = []
    for component in components:
        if component.name in wanted and component.name not in targets:
            targets.append(component.name)
    return targets


def _merge_fragments(
    components: Sequence[ComponentConfig],
    strategy: Strategy,
    rule_output: RuleBasedOutput,
    fallback_artifact: FallbackArtifact | None,
    targets: Sequence[str],
) -> tuple[list[MarkupFragment], list[str]]:
    """Order fragments for assembly and list the components left unrendered.

    Fallback fragments only fill ``targets``; every other declared component
    keeps its rule fragment.
    """

    if fallback_artifact is not None and strategy == "manual_only":
        covered = {fragment.component for fragment in fallback_artifact.fragments}
        missing = [component.name for component in components if component.name not in covered]
        return list(fallback_artifact.fragments), _unique(missing)

    by_name = fallback_artifact.by_component() if fallback_artifact is not None else {}
    wanted = set(targets)
    consumed: set[str] = set()
    fragments: list[MarkupFragment] = []
    unresolved: list[str] = []
    for component in components:
        fallback_fragment = by_name.get(component.name) if component.name in wanted else None
        rule_fragment = rule_output.fragments.get(fragment_key(component.section, component.name))
        if fallback_fragment is not None and component.name not in consumed:
            consumed.add(component.name)
            fragments.append(fallback_fragment)
        elif rule_fragment is not None:
            fragments.append(rule_fragment)
        else:
            fragments.append(placeholder_fragment(component))
            unresolved.append(component.name)

    declared = {component.name for component in components}
    if fallback_artifact is not None:
        fragments.extend(fragment for fragment in fallback_artifact.fragments if fragment.component not in declared)
    return fragments, _unique(unresolved)


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))
