"""Validation gate with one bounded repair attempt."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Protocol

from apmlc.settings import CompilerSettings
from apmlc.utils.errors import DocumentValidationError, GenerationError, UnrepairableDocumentError
from apmlc.utils.logs import log_event
from apmlc.validation.detector import detect_issues
from apmlc.validation.models import RepairRequest, ValidationIssue

logger = logging.getLogger("apmlc.compiler")

REPAIR_SYSTEM_DIRECTIVES = (
    "You are an APML syntax expert. Fix the provided APML content to resolve the listed "
    "issues. Keep every section, component name and property you can. Return only the "
    "corrected APML, no explanations."
)

_FENCE_RE = re.compile(r"^```[\w-]*\s*\n(.*?)\n```\s*$", re.DOTALL)


class RepairCapability(Protocol):
    """External text-repair capability (a generative call)."""

    def repair(self, request: RepairRequest, *, timeout: float | None = None) -> str:
        """Return corrected APML text or raise ``GenerationError``."""


def build_repair_request(
    text: str, issues: Sequence[ValidationIssue], settings: CompilerSettings
) -> RepairRequest:
    listed = "\n".join(f"- {_describe(issue)}" for issue in issues)
    prompt = f"Fix these APML issues:\n{listed}\n\nAPML Content:\n{text}"
    return RepairRequest(
        prompt=prompt,
        max_tokens=settings.repair_max_tokens,
        system_directives=REPAIR_SYSTEM_DIRECTIVES,
        issues=tuple(issues),
    )


def validate_and_repair(
    text: str,
    capability: RepairCapability | None,
    settings: CompilerSettings,
) -> tuple[str, list[ValidationIssue]]:
    """Return usable APML text and the issues that were repaired.

    Raises:
        DocumentValidationError: the input is empty.
        UnrepairableDocumentError: issues exist and the single repair attempt
            was unavailable, failed, or left issues behind.
    """

    issues = detect_issues(text)
    if not issues:
        return text, []

    if any(not issue.repairable for issue in issues):
        raise DocumentValidationError(_summary("APML input rejected", issues), issues=issues)

    if capability is None:
        raise UnrepairableDocumentError(
            _summary("APML has issues and no repair capability is configured", issues),
            issues=issues,
        )

    log_event(
        logger,
        logging.WARNING,
        "repair_start",
        issue_codes=[issue.code for issue in issues],
    )
    request = build_repair_request(text, issues, settings)
    try:
        reply = capability.repair(request, timeout=settings.repair_timeout_seconds)
    except GenerationError as exc:
        log_event(logger, logging.WARNING, "repair_failed", reason=exc.reason)
        raise UnrepairableDocumentError(
            _summary(f"APML repair failed ({exc.reason})", issues), issues=issues
        ) from exc

    repaired = strip_code_fences(reply)
    remaining = detect_issues(repaired)
    if remaining:
        log_event(
            logger,
            logging.WARNING,
            "repair_incomplete",
            remaining_codes=[issue.code for issue in remaining],
        )
        raise UnrepairableDocumentError(
            _summary("APML issues persist after repair", issues),
            issues=issues,
            remaining_issues=remaining,
        )

    log_event(logger, logging.INFO, "repair_done", repaired_count=len(issues))
    return repaired, issues


def strip_code_fences(reply: str) -> str:
    text = reply.strip()
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def _describe(issue: ValidationIssue) -> str:
    location = f" (line {issue.line_number})" if issue.line_number is not None else ""
    return f"{issue.code}: {issue.message}{location}"


def _summary(prefix: str, issues: Sequence[ValidationIssue]) -> str:
    return f"{prefix}: " + "; ".join(_describe(issue) for issue in issues)
