from __future__ import annotations

import pytest

from apmlc.settings import CompilerSettings
from apmlc.utils.errors import DocumentValidationError, GenerationError, UnrepairableDocumentError
from apmlc.validation.detector import detect_issues
from apmlc.validation.models import RepairRequest
from apmlc.validation.repair import strip_code_fences, validate_and_repair

_VALID = '## UI Components\nlogin_form: {\n  type: "form_input"\n  action: "submitLogin"\n}\n'
_UNTERMINATED = '## UI Components\nlogin_form: {\n  type: "form_input"\n  action: "submitLogin"\n'


class StubRepair:
    def __init__(self, reply: str = "", *, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.requests: list[RepairRequest] = []
        self.timeouts: list[float | None] = []

    def repair(self, request: RepairRequest, *, timeout: float | None = None) -> str:
        self.requests.append(request)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return self.reply


def test_valid_document_has_no_issues() -> None:
    assert detect_issues(_VALID) == []


def test_empty_input_is_reported_alone_and_not_repairable() -> None:
    issues = detect_issues("   \n\t\n")

    assert [issue.code for issue in issues] == ["EMPTY_INPUT"]
    assert issues[0].repairable is False


def test_missing_ui_components_section() -> None:
    issues = detect_issues("## Data Model\nuser_name: \"\"\n")

    assert [issue.code for issue in issues] == ["MISSING_REQUIRED_SECTION"]
    assert issues[0].section == "ui_components"


def test_unterminated_block_is_malformed_with_line_number() -> None:
    issues = detect_issues(_UNTERMINATED)

    assert [issue.code for issue in issues] == ["MALFORMED_COMPONENT_BLOCK"]
    assert issues[0].line_number == 2


def test_type_outside_braced_block_is_malformed() -> None:
    issues = detect_issues("## UI Components\nlogin_form:\n  type: form_input\n")

    assert [issue.code for issue in issues] == ["MALFORMED_COMPONENT_BLOCK"]
    assert issues[0].line_number == 3


def test_type_line_in_declaration_section_is_allowed() -> None:
    text = "## Data Model\ntype: session\n\n" + _VALID

    assert detect_issues(text) == []


def test_tabs_mixed_with_space_indentation_across_lines() -> None:
    text = '## UI Components\nlogin_form: {\n  type: "form_input"\n\taction: "go"\n}\n'

    issues = detect_issues(text)

    assert [issue.code for issue in issues] == ["INCONSISTENT_INDENTATION"]
    assert issues[0].line_number == 4


def test_tabs_mixed_with_spaces_within_one_line() -> None:
    text = '## UI Components\nlogin_form: {\n \t type: "form_input"\n}\n'

    issues = detect_issues(text)

    assert [issue.code for issue in issues] == ["INCONSISTENT_INDENTATION"]
    assert issues[0].line_number == 3


def test_validate_passes_clean_text_through_without_repair() -> None:
    repair = StubRepair("unused")

    text, repaired = validate_and_repair(_VALID, repair, CompilerSettings())

    assert text == _VALID
    assert repaired == []
    assert repair.requests == []


def test_empty_input_raises_validation_error_without_repair() -> None:
    repair = StubRepair(_VALID)

    with pytest.raises(DocumentValidationError) as exc_info:
        validate_and_repair("", repair, CompilerSettings())

    assert not isinstance(exc_info.value, UnrepairableDocumentError)
    assert repair.requests == []


def test_missing_capability_is_unrepairable() -> None:
    with pytest.raises(UnrepairableDocumentError) as exc_info:
        validate_and_repair(_UNTERMINATED, None, CompilerSettings())

    assert [issue.code for issue in exc_info.value.issues] == ["MALFORMED_COMPONENT_BLOCK"]


def test_single_repair_attempt_succeeds_and_strips_fences() -> None:
    settings = CompilerSettings(repair_timeout_seconds=7.5, repair_max_tokens=123)
    repair = StubRepair(f"```apml\n{_VALID}```")

    text, repaired = validate_and_repair(_UNTERMINATED, repair, settings)

    assert text == _VALID.strip()
    assert [issue.code for issue in repaired] == ["MALFORMED_COMPONENT_BLOCK"]
    assert len(repair.requests) == 1
    assert repair.timeouts == [7.5]
    request = repair.requests[0]
    assert request.max_tokens == 123
    assert "MALFORMED_COMPONENT_BLOCK" in request.prompt
    assert _UNTERMINATED in request.prompt
    assert "APML" in request.system_directives


def test_repair_that_leaves_issues_is_unrepairable() -> None:
    repair = StubRepair(_UNTERMINATED)

    with pytest.raises(UnrepairableDocumentError) as exc_info:
        validate_and_repair(_UNTERMINATED, repair, CompilerSettings())

    assert len(repair.requests) == 1
    assert [issue.code for issue in exc_info.value.remaining_issues] == ["MALFORMED_COMPONENT_BLOCK"]


def test_repair_failure_is_unrepairable_and_chained() -> None:
    repair = StubRepair(error=GenerationError("timeout"))

    with pytest.raises(UnrepairableDocumentError) as exc_info:
        validate_and_repair(_UNTERMINATED, repair, CompilerSettings())

    assert isinstance(exc_info.value.__cause__, GenerationError)
    assert "timeout" in str(exc_info.value)


def test_strip_code_fences() -> None:
    assert strip_code_fences("```\nbody\n```") == "body"
    assert strip_code_fences("  plain text  ") == "plain text"
