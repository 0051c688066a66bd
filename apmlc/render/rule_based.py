"""Deterministic rule-based generation for resolved components."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from apmlc.analysis.analyzer import AnalysisResult
from apmlc.document.models import Document
from apmlc.patterns.registry import DEFAULT_REGISTRY, PatternRegistry
from apmlc.render.models import ComponentErrorReport, MarkupFragment
from apmlc.utils.errors import ComponentGenerationError
from apmlc.utils.logs import log_event

logger = logging.getLogger("apmlc.compiler")


@dataclass
class RuleBasedOutput:
    """Fragments keyed by component, in declaration order, plus isolated failures."""

    fragments: dict[str, MarkupFragment] = field(default_factory=dict)
    errors: list[ComponentErrorReport] = field(default_factory=list)

    @property
    def failed_components(self) -> list[str]:
        return [error.component for error in self.errors]


def generate_fragments(
    document: Document,
    analysis: AnalysisResult,
    registry: PatternRegistry = DEFAULT_REGISTRY,
) -> RuleBasedOutput:
    """Apply registry rules section by section, component by component.

    A component missing required fields is reported in ``errors`` and skipped;
    the remaining components are still generated.
    """

    resolved_ids = set(analysis.known_patterns)
    output = RuleBasedOutput()

    for component in document.iter_components():
        pattern_id = analysis.pattern_for(component.name, component.section)
        if pattern_id is None or pattern_id not in resolved_ids:
            continue
        definition = registry[pattern_id]
        try:
            fragment = definition.generate(component)
        except ComponentGenerationError as exc:
            log_event(
                logger,
                logging.WARNING,
                "component_error",
                component=exc.component,
                pattern_id=exc.pattern_id,
                missing_fields=exc.missing_fields,
            )
            output.errors.append(
                ComponentErrorReport(
                    component=exc.component,
                    pattern_id=exc.pattern_id,
                    missing_fields=exc.missing_fields,
                    message=str(exc),
                )
            )
            continue
        output.fragments[fragment_key(component.section, component.name)] = fragment

    return output


def fragment_key(section: str, component: str) -> str:
    return f"{section}.{component}"
