"""Contract between the compiler and a generative fallback backend."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class FallbackRequest(BaseModel):
    """Everything a backend needs to produce fragments for unresolved components."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    prompt: str
    max_tokens: int
    system_directives: str
    document_text: str
    rule_fragments: dict[str, str] = Field(default_factory=dict)
    unresolved_components: list[str] = Field(default_factory=list)
    style_guide: str = ""


class GenerativeFallback(Protocol):
    """Opaque text generator used for components the rules cannot render."""

    def generate(self, request: FallbackRequest, *, timeout: float | None = None) -> str:
        """Return raw response text or raise ``GenerationError``."""
