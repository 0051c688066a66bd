"""Data models for parsed APML documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

Value = Union[str, int, float, bool, list["Value"], dict[str, "Value"]]

# Sections that declare state, handlers or settings instead of renderable components.
DECLARATION_SECTIONS = frozenset({"app_configuration", "data_model", "user_interactions", "styling"})
COMPONENT_SECTION = "ui_components"


@dataclass
class ComponentConfig:
    """One ``name: { ... }`` block."""

    name: str
    pattern_name: str | None
    properties: dict[str, Value]
    raw_text: str
    section: str = ""
    line_number: int = 0


@dataclass
class Section:
    """A ``## Heading`` section with its blocks and scalar assignments."""

    name: str
    components: dict[str, ComponentConfig] = field(default_factory=dict)
    properties: dict[str, Value] = field(default_factory=dict)

    @property
    def renders_components(self) -> bool:
        return self.name not in DECLARATION_SECTIONS


@dataclass
class Document:
    """Parsed APML document; dict insertion order is declaration order."""

    metadata: dict[str, Value] = field(default_factory=dict)
    sections: dict[str, Section] = field(default_factory=dict)

    def iter_components(self):
        """Yield renderable components section by section in declaration order."""

        for section in self.sections.values():
            if not section.renders_components:
                continue
            yield from section.components.values()

    def app_title(self) -> str:
        config = self.sections.get("app_configuration")
        candidates = [self.metadata.get("name"), self.metadata.get("title")]
        if config is not None:
            candidates = [config.properties.get("name"), config.properties.get("title"), *candidates]
        for candidate in candidates:
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        return "Generated App"


def normalize_section_name(heading: str) -> str:
    """``## UI Components`` -> ``ui_components``."""

    return "_".join(heading.strip().lower().split())
