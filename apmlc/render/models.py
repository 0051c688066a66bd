"""Compilation report models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from apmlc.document.models import Value

Strategy = Literal["automatic", "hybrid", "manual_only"]
FragmentSource = Literal["rule", "fallback", "placeholder"]


@dataclass(frozen=True)
class MarkupFragment:
    """Markup for one component plus the state it expects to exist."""

    component: str
    markup: str
    source: FragmentSource
    pattern_id: str | None = None
    state: tuple[tuple[str, Value], ...] = ()


class ComponentErrorReport(BaseModel):
    """A component the rule-based stage could not render."""

    model_config = ConfigDict(extra="forbid")

    component: str
    pattern_id: str
    missing_fields: list[str] = Field(default_factory=list)
    message: str


class CompilationArtifact(BaseModel):
    """Compiled output bundle for one input document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    markup: str
    script: str
    style: str
    degraded: bool
    strategy_used: Strategy
    unresolved: list[str] = Field(default_factory=list)


class CompilationMetrics(BaseModel):
    """Per-call metrics; aggregation happens outside the core."""

    model_config = ConfigDict(extra="forbid")

    duration_ms: int
    strategy: Strategy
    rule_fragment_count: int
    fallback_fragment_count: int
    placeholder_count: int
    fallback_called: bool
    fallback_failure: str | None = None
    repair_attempted: bool
    repaired_issue_codes: list[str] = Field(default_factory=list)
    normalized: bool
    component_errors: list[ComponentErrorReport] = Field(default_factory=list)
