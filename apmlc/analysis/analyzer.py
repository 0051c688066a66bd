"""Pattern classification and compilation strategy selection."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from apmlc.document.models import ComponentConfig, Document
from apmlc.patterns.registry import DEFAULT_REGISTRY, PatternRegistry
from apmlc.render.models import Strategy
from apmlc.utils.errors import AnalysisError

COMPLEXITY_KEYWORDS: tuple[str, ...] = ("custom", "advanced", "interactive", "dynamic", "api", "websocket")

MatchKind = Literal["exact", "semantic"]


class ComponentClassification(BaseModel):
    """How one component was resolved."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    component: str
    section: str
    declared_type: str | None = None
    pattern_id: str | None = None
    match: MatchKind | None = None
    complexity_hits: list[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Classification of a whole document.

    Rules:
    - strategy == "manual_only" when known_patterns is empty
    - strategy == "hybrid" when known_patterns is non-empty and complexity_hits is non-empty
    - strategy == "automatic" otherwise
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    known_patterns: list[str] = Field(default_factory=list)
    unknown_patterns: list[str] = Field(default_factory=list)
    strategy: Strategy
    complexity_hits: list[str] = Field(default_factory=list)
    classifications: list[ComponentClassification] = Field(default_factory=list)

    @property
    def unresolved_components(self) -> list[str]:
        return [item.component for item in self.classifications if item.pattern_id is None]

    @property
    def complex_components(self) -> list[str]:
        return [item.component for item in self.classifications if item.complexity_hits]

    def pattern_for(self, component: str, section: str) -> str | None:
        for item in self.classifications:
            if item.component == component and item.section == section:
                return item.pattern_id
        return None


def classify(document: Document, registry: PatternRegistry = DEFAULT_REGISTRY) -> AnalysisResult:
    """Classify every renderable component; deterministic and side-effect free."""

    classifications: list[ComponentClassification] = []
    known: list[str] = []
    unknown: list[str] = []
    document_hits: list[str] = []

    for component in document.iter_components():
        if not component.raw_text:
            raise AnalysisError(f"Component '{component.name}' has no raw text")

        pattern_id, match = _resolve(component, registry)
        hits = [keyword for keyword in COMPLEXITY_KEYWORDS if contains_keyword(component.raw_text, keyword)]
        classifications.append(
            ComponentClassification(
                component=component.name,
                section=component.section,
                declared_type=component.pattern_name,
                pattern_id=pattern_id,
                match=match,
                complexity_hits=hits,
            )
        )

        if pattern_id is not None:
            _append_unique(known, pattern_id)
        else:
            _append_unique(unknown, component.pattern_name or component.name)
        for keyword in hits:
            _append_unique(document_hits, keyword)

    return AnalysisResult(
        known_patterns=known,
        unknown_patterns=unknown,
        strategy=_decide_strategy(known, document_hits),
        complexity_hits=document_hits,
        classifications=classifications,
    )


def contains_keyword(text: str, keyword: str) -> bool:
    """Case-insensitive match on alphanumeric token boundaries."""

    return _keyword_regex(keyword).search(text) is not None


def _resolve(component: ComponentConfig, registry: PatternRegistry) -> tuple[str | None, MatchKind | None]:
    if component.pattern_name is not None and component.pattern_name in registry:
        return component.pattern_name, "exact"

    for pattern_id, definition in registry.items():
        if any(contains_keyword(component.raw_text, keyword) for keyword in sorted(definition.semantic_keywords)):
            return pattern_id, "semantic"
    return None, None


def _decide_strategy(known: list[str], complexity_hits: list[str]) -> Strategy:
    if not known:
        return "manual_only"
    if complexity_hits:
        return "hybrid"
    return "automatic"


def _append_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


@lru_cache(maxsize=256)
def _keyword_regex(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", re.IGNORECASE)
