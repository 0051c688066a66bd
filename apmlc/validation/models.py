"""Data models for pre-parse validation issues."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

IssueCode = Literal[
    "EMPTY_INPUT",
    "MISSING_REQUIRED_SECTION",
    "MALFORMED_COMPONENT_BLOCK",
    "INCONSISTENT_INDENTATION",
]


class ValidationIssue(BaseModel):
    """Single structural defect found in raw APML text."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: IssueCode
    message: str
    line_number: int | None = None
    section: str | None = None
    repairable: bool = True


class RepairRequest(BaseModel):
    """Request handed to a text-repair capability."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    prompt: str
    max_tokens: int
    system_directives: str
    issues: tuple[ValidationIssue, ...] = ()
