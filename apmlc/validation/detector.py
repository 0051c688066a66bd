"""Structural issue detection for raw APML text."""

from __future__ import annotations

import re

from apmlc.document.models import COMPONENT_SECTION, DECLARATION_SECTIONS, normalize_section_name
from apmlc.document.parser import brace_delta, parse_document
from apmlc.utils.errors import ParseError
from apmlc.validation.models import ValidationIssue

REQUIRED_SECTIONS: tuple[str, ...] = (COMPONENT_SECTION,)

_TYPE_LINE_RE = re.compile(r"^type\s*:")


def detect_issues(text: str) -> list[ValidationIssue]:
    """Detect structural defects.

    ``EMPTY_INPUT`` is returned alone because nothing else can be checked.
    """

    if not text or not text.strip():
        return [
            ValidationIssue(
                code="EMPTY_INPUT",
                message="APML input is empty.",
                repairable=False,
            )
        ]

    lines = text.splitlines()
    issues: list[ValidationIssue] = []
    issues.extend(_missing_sections(lines))
    issues.extend(_malformed_blocks(text, lines))
    issues.extend(_inconsistent_indentation(lines))
    return issues


def _missing_sections(lines: list[str]) -> list[ValidationIssue]:
    present = {
        normalize_section_name(line.strip().lstrip("#"))
        for line in lines
        if line.strip().startswith("##")
    }
    return [
        ValidationIssue(
            code="MISSING_REQUIRED_SECTION",
            message=f"Missing required section '{name}'.",
            section=name,
        )
        for name in REQUIRED_SECTIONS
        if name not in present
    ]


def _malformed_blocks(text: str, lines: list[str]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    try:
        parse_document(text)
    except ParseError as exc:
        issues.append(
            ValidationIssue(
                code="MALFORMED_COMPONENT_BLOCK",
                message=f"Component block cannot be parsed: {exc.reason}.",
                line_number=exc.line_number,
                section=exc.section,
            )
        )

    reported = {issue.line_number for issue in issues}
    section: str | None = None
    depth = 0
    for line_number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if depth == 0 and stripped.startswith("##"):
            section = normalize_section_name(stripped.lstrip("#"))
            continue
        if depth == 0 and _TYPE_LINE_RE.match(stripped) and section not in DECLARATION_SECTIONS:
            if line_number not in reported:
                issues.append(
                    ValidationIssue(
                        code="MALFORMED_COMPONENT_BLOCK",
                        message="Component 'type' declared outside of a braced block.",
                        line_number=line_number,
                        section=section,
                    )
                )
            continue
        depth = max(depth + brace_delta(stripped), 0)

    return issues


def _inconsistent_indentation(lines: list[str]) -> list[ValidationIssue]:
    tab_lines: list[int] = []
    space_lines: list[int] = []

    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        leading = line[: len(line) - len(line.lstrip(" \t"))]
        if " " in leading and "\t" in leading:
            return [_indentation_issue(line_number, "mixes tabs and spaces")]
        if "\t" in leading:
            tab_lines.append(line_number)
        elif leading:
            space_lines.append(line_number)

    if tab_lines and space_lines:
        minority = tab_lines if len(tab_lines) <= len(space_lines) else space_lines
        return [_indentation_issue(minority[0], "differs from the rest of the document")]
    return []


def _indentation_issue(line_number: int, detail: str) -> ValidationIssue:
    return ValidationIssue(
        code="INCONSISTENT_INDENTATION",
        message=f"Indentation {detail}.",
        line_number=line_number,
    )
