"""Schema of the consistency rename table."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ConsistencyPolicy(BaseModel):
    """Canonical runtime marker plus identifier and CSS class aliases."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    runtime_marker: str = Field(default="vue@3", pattern=r"^vue@[\w.\-]+$")
    identifier_aliases: dict[str, str] = Field(default_factory=dict)
    class_aliases: dict[str, str] = Field(default_factory=dict)
