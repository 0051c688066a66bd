"""Pattern registry built once at import time and never mutated."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from apmlc.patterns.base import PatternDefinition
from apmlc.patterns.cards import (
    BREAKTHROUGH_CARD,
    FOLLOWUP_CARD,
    RESULTS_CARD,
    SCENARIO_CARD,
    THRIVE_CARD,
    WELCOME_CARD,
)
from apmlc.patterns.forms import EMAIL_FORM, FORM_INPUT, TEXT_AREA
from apmlc.patterns.layout import (
    CARD_CONTAINER,
    CONDITIONAL_CONTENT,
    MODAL_DIALOG,
    PROGRESS_BAR,
    SCROLLABLE_PANEL,
    TABBED_PANEL,
    WIZARD_COMPONENT,
)
from apmlc.patterns.listings import ACTION_LIST, DATA_TABLE

# Semantic matching walks patterns in this order and takes the first hit.
_STANDARD_PATTERNS: tuple[PatternDefinition, ...] = (
    FORM_INPUT,
    MODAL_DIALOG,
    DATA_TABLE,
    WIZARD_COMPONENT,
    ACTION_LIST,
    TEXT_AREA,
    EMAIL_FORM,
    CONDITIONAL_CONTENT,
    PROGRESS_BAR,
    CARD_CONTAINER,
    SCROLLABLE_PANEL,
    TABBED_PANEL,
    WELCOME_CARD,
    SCENARIO_CARD,
    FOLLOWUP_CARD,
    BREAKTHROUGH_CARD,
    RESULTS_CARD,
    THRIVE_CARD,
)


class PatternRegistry(Mapping[str, PatternDefinition]):
    """Read-only mapping from pattern id to definition, in registration order."""

    def __init__(self, definitions: Iterable[PatternDefinition]) -> None:
        patterns: dict[str, PatternDefinition] = {}
        for definition in definitions:
            if not definition.id:
                raise ValueError("Pattern id must be a non-empty string")
            if definition.id in patterns:
                raise ValueError(f"Duplicate pattern id: {definition.id}")
            patterns[definition.id] = definition
        self._patterns = MappingProxyType(patterns)

    def __getitem__(self, pattern_id: str) -> PatternDefinition:
        return self._patterns[pattern_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def ids(self) -> list[str]:
        """Return pattern ids in registration order."""

        return list(self._patterns)


def build_registry(extra: Iterable[PatternDefinition] = ()) -> PatternRegistry:
    """Create a registry with the standard patterns plus ``extra``."""

    return PatternRegistry((*_STANDARD_PATTERNS, *extra))


DEFAULT_REGISTRY = build_registry()
