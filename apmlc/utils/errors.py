"""Custom exceptions for the APML compiler core."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from apmlc.validation.models import ValidationIssue


class ParseError(Exception):
    """Raised when APML text has malformed or unterminated structural blocks."""

    def __init__(self, reason: str, *, line_number: int | None = None, section: str | None = None) -> None:
        location = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"{reason}{location}")
        self.reason = reason
        self.line_number = line_number
        self.section = section


class DocumentValidationError(Exception):
    """Raised when pre-pass validation finds an issue that cannot be repaired."""

    def __init__(self, message: str, *, issues: Sequence[ValidationIssue] = ()) -> None:
        super().__init__(message)
        self.issues = list(issues)


class UnrepairableDocumentError(DocumentValidationError):
    """Raised when repair was unavailable or left issues behind."""

    def __init__(
        self,
        message: str,
        *,
        issues: Sequence[ValidationIssue] = (),
        remaining_issues: Sequence[ValidationIssue] = (),
    ) -> None:
        super().__init__(message, issues=issues)
        self.remaining_issues = list(remaining_issues)


class AnalysisError(Exception):
    """Raised on internal invariant violations during classification."""


class GenerationError(Exception):
    """Raised when the generative backend times out or is invoked incorrectly."""

    def __init__(self, reason: str, *, detail: str | None = None) -> None:
        super().__init__(f"{reason}: {detail}" if detail else reason)
        self.reason = reason
        self.detail = detail


class ExtractionError(Exception):
    """Raised when no well-formed artifact can be pulled out of a backend response."""

    def __init__(self, reason: str, *, component: str | None = None) -> None:
        super().__init__(reason if component is None else f"{reason}: {component}")
        self.reason = reason
        self.component = component


class ComponentGenerationError(Exception):
    """Raised for one component whose block is missing required pattern fields."""

    def __init__(self, message: str, *, component: str, pattern_id: str, missing_fields: Sequence[str]) -> None:
        super().__init__(message)
        self.component = component
        self.pattern_id = pattern_id
        self.missing_fields = list(missing_fields)


class ConsistencyError(Exception):
    """Raised when normalization would merge conflicting identifiers."""

    def __init__(self, message: str, *, conflicts: Sequence[tuple[str, str]] = ()) -> None:
        super().__init__(message)
        self.conflicts = list(conflicts)


def error_detail(exc: Exception) -> dict[str, object]:
    """Structured context of a terminal compile error, for error reports."""

    if isinstance(exc, ParseError):
        return {"reason": exc.reason, "line_number": exc.line_number, "section": exc.section}
    if isinstance(exc, DocumentValidationError):
        detail: dict[str, object] = {"issues": [issue.model_dump(mode="json") for issue in exc.issues]}
        if isinstance(exc, UnrepairableDocumentError):
            detail["remaining_issues"] = [issue.model_dump(mode="json") for issue in exc.remaining_issues]
        return detail
    return {}
