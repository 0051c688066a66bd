"""Pattern definition contract.

Every registered pattern is:
- Pure: rendering reads the component and returns text, nothing else.
- Total: any component carrying the required fields renders without raising.
- Explicit: it is reachable only through registry registration.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from apmlc.document.models import ComponentConfig, Value
from apmlc.render.models import MarkupFragment
from apmlc.utils.errors import ComponentGenerationError


class CodeGenerator(Protocol):
    """Renders one component block into target markup."""

    def __call__(self, component: ComponentConfig) -> str: ...


StateBuilder = Callable[[ComponentConfig], dict[str, Value]]


def _no_state(component: ComponentConfig) -> dict[str, Value]:
    return {}


@dataclass(frozen=True)
class PatternDefinition:
    """Named, reusable UI construct with a deterministic generation rule."""

    id: str
    required_fields: frozenset[str]
    semantic_keywords: frozenset[str]
    render: CodeGenerator
    style: str = ""
    state: StateBuilder = field(default=_no_state)

    def missing_fields(self, component: ComponentConfig) -> list[str]:
        return sorted(
            name for name in self.required_fields if not _has_value(component.properties.get(name))
        )

    def generate(self, component: ComponentConfig) -> MarkupFragment:
        """Render ``component`` or raise ``ComponentGenerationError``."""

        missing = self.missing_fields(component)
        if missing:
            raise ComponentGenerationError(
                f"Component '{component.name}' is missing required fields for "
                f"pattern '{self.id}': {', '.join(missing)}",
                component=component.name,
                pattern_id=self.id,
                missing_fields=missing,
            )
        return MarkupFragment(
            component=component.name,
            markup=self.render(component),
            source="rule",
            pattern_id=self.id,
            state=tuple(self.state(component).items()),
        )


def _has_value(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True
