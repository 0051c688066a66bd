"""Line-oriented APML parser.

Rules:
- ``## Heading`` opens a section; other ``#`` lines are comments.
- ``name: {`` opens a block that runs until its brace depth returns to zero.
  Braces inside quoted strings do not count.
- ``key: value`` outside a block is a scalar on the current section, or on
  the document metadata before the first section.
- Lines matching none of the above are ignored.
"""

from __future__ import annotations

import logging
import re
from typing import NoReturn

from apmlc.document.models import ComponentConfig, Document, Section, Value, normalize_section_name
from apmlc.utils.errors import ParseError

logger = logging.getLogger("apmlc.parser")

PREAMBLE_SECTION = "preamble"

_SECTION_PREFIX = "##"
_BLOCK_OPEN_RE = re.compile(r"^([A-Za-z_][\w\-]*)\s*:\s*\{")
_ASSIGN_RE = re.compile(r"^([A-Za-z_][\w\-]*)\s*:\s*(.*)$")
_INT_RE = re.compile(r"[-+]?\d+")
_FLOAT_RE = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+(?=[eE]))(?:[eE][-+]?\d+)?")
_KEY_RE = re.compile(r"[A-Za-z_][\w\-]*")
_QUOTES = "\"'"
_TOKEN_START_CHARS = " \t:,[{("


def parse_document(text: str) -> Document:
    """Parse APML text into a ``Document``.

    Raises:
        ParseError: unterminated block, stray closing brace, unparsable block
            body or duplicate component name within a section.
    """

    document = Document()
    section: Section | None = None
    block_lines: list[str] = []
    block_name = ""
    block_start = 0
    depth = 0

    for line_number, line in enumerate(text.splitlines(), start=1):
        if block_lines:
            block_lines.append(line)
            depth += brace_delta(line)
            if depth < 0:
                raise ParseError("unexpected_close", line_number=line_number, section=_name_of(section))
            if depth == 0:
                section = _ensure_section(document, section)
                _add_component(section, block_name, block_lines, block_start)
                block_lines = []
            continue

        stripped = line.strip()
        if not stripped:
            continue

        if stripped.startswith(_SECTION_PREFIX):
            name = normalize_section_name(stripped.lstrip("#"))
            section = document.sections.setdefault(name, Section(name=name))
            continue

        if stripped.startswith("#"):
            continue

        open_match = _BLOCK_OPEN_RE.match(stripped)
        if open_match:
            block_name = open_match.group(1)
            block_start = line_number
            depth = brace_delta(stripped)
            if depth < 0:
                raise ParseError("unexpected_close", line_number=line_number, section=_name_of(section))
            if depth == 0:
                section = _ensure_section(document, section)
                _add_component(section, block_name, [line], block_start)
            else:
                block_lines = [line]
            continue

        if stripped.startswith("}"):
            raise ParseError("unexpected_close", line_number=line_number, section=_name_of(section))

        assign_match = _ASSIGN_RE.match(stripped)
        if assign_match:
            key, raw_value = assign_match.groups()
            target = document.metadata if section is None else section.properties
            target[key] = parse_inline_value(raw_value)
            continue

        logger.debug("ignoring free text at line %d", line_number)

    if block_lines:
        raise ParseError("unterminated_block", line_number=block_start, section=_name_of(section))

    return document


def brace_delta(line: str) -> int:
    """Return ``{`` count minus ``}`` count outside quoted strings.

    Whole-line ``#`` and ``//`` comments count as zero.
    """

    if is_comment_line(line):
        return 0
    delta = 0
    for char, quoted in _iter_unquoted(line):
        if quoted:
            continue
        if char == "{":
            delta += 1
        elif char == "}":
            delta -= 1
    return delta


def is_comment_line(line: str) -> bool:
    stripped = line.strip()
    if stripped.startswith("//"):
        return True
    return stripped[:1] == "#" and stripped[1:2] in ("", " ", "\t")


def parse_inline_value(raw: str) -> Value:
    """Coerce the right-hand side of a ``key: value`` line."""

    text = raw.strip().rstrip(",").strip()
    if text and text[0] in "[{":
        try:
            reader = _BlockReader(text, first_line=0)
            value = reader.read_value()
            reader.expect_end()
            return value
        except ParseError:
            return text
    return coerce_scalar(text)


def coerce_scalar(token: str) -> Value:
    """Regex-driven scalar coercion: quoted text, bools, numbers, raw text."""

    text = token.strip()
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] == text[0]:
        return _unescape(text[1:-1], text[0])
    if text == "true":
        return True
    if text == "false":
        return False
    if _INT_RE.fullmatch(text):
        return int(text)
    if _FLOAT_RE.fullmatch(text):
        return float(text)
    return text


def _iter_unquoted(line: str):
    quote: str | None = None
    escaped = False
    previous = " "
    for char in line:
        if quote is not None:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            yield char, True
        elif char in _QUOTES and previous in _TOKEN_START_CHARS:
            quote = char
            yield char, True
        else:
            yield char, False
        previous = char


def _unescape(text: str, quote: str) -> str:
    return text.replace("\\" + quote, quote).replace("\\\\", "\\")


def _ensure_section(document: Document, section: Section | None) -> Section:
    if section is not None:
        return section
    return document.sections.setdefault(PREAMBLE_SECTION, Section(name=PREAMBLE_SECTION))


def _name_of(section: Section | None) -> str | None:
    return section.name if section is not None else None


def _add_component(section: Section, name: str, lines: list[str], start_line: int) -> None:
    if name in section.components:
        raise ParseError("duplicate_component", line_number=start_line, section=section.name)

    raw_text = "\n".join(lines)
    brace_at = raw_text.index("{", raw_text.index(":"))
    reader = _BlockReader(raw_text, first_line=start_line, offset=brace_at, section=section.name)
    properties = reader.read_object()
    reader.expect_end()

    pattern = properties.get("type")
    section.components[name] = ComponentConfig(
        name=name,
        pattern_name=pattern.strip() if isinstance(pattern, str) and pattern.strip() else None,
        properties=properties,
        raw_text=raw_text,
        section=section.name,
        line_number=start_line,
    )


class _BlockReader:
    """Recursive reader for ``{ key: value ... }`` block bodies.

    Members and list items are separated by commas and/or newlines. Bare
    scalars end at a comma, newline, ``}`` or ``]``.
    """

    def __init__(self, text: str, *, first_line: int, offset: int = 0, section: str | None = None) -> None:
        self._text = text
        self._pos = offset
        self._first_line = first_line
        self._section = section

    def read_value(self) -> Value:
        self._skip_blank()
        char = self._peek()
        if char == "{":
            return self.read_object()
        if char == "[":
            return self._read_list()
        if char and char in _QUOTES:
            return self._read_quoted()
        return self._read_bare()

    def read_object(self) -> dict[str, Value]:
        self._consume("{")
        members: dict[str, Value] = {}
        while True:
            self._skip_separators()
            char = self._peek()
            if char == "}":
                self._pos += 1
                return members
            if not char:
                self._fail("unterminated_block")
            key = self._read_key()
            self._skip_inline_space()
            self._consume(":")
            self._skip_inline_space()
            members[key] = self.read_value()

    def expect_end(self) -> None:
        rest = self._text[self._pos :].strip().lstrip(",;").strip()
        if rest and not rest.startswith("#"):
            self._fail("unexpected_content")

    def _read_list(self) -> list[Value]:
        self._consume("[")
        items: list[Value] = []
        while True:
            self._skip_separators()
            char = self._peek()
            if char == "]":
                self._pos += 1
                return items
            if not char:
                self._fail("unterminated_list")
            items.append(self.read_value())

    def _read_key(self) -> str:
        char = self._peek()
        if char and char in _QUOTES:
            return self._read_quoted()
        match = _KEY_RE.match(self._text, self._pos)
        if match is None:
            self._fail("expected_key")
        self._pos = match.end()
        return match.group(0)

    def _read_quoted(self) -> str:
        quote = self._text[self._pos]
        start = self._pos
        self._pos += 1
        escaped = False
        while self._pos < len(self._text):
            char = self._text[self._pos]
            self._pos += 1
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                return _unescape(self._text[start + 1 : self._pos - 1], quote)
            elif char == "\n":
                break
        self._pos = start
        self._fail("unterminated_string")

    def _read_bare(self) -> Value:
        start = self._pos
        while self._pos < len(self._text) and self._text[self._pos] not in ",\n}]":
            self._pos += 1
        token = self._text[start : self._pos].strip()
        if not token:
            self._fail("expected_value")
        return coerce_scalar(token)

    def _skip_blank(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos] in " \t\r\n":
            self._pos += 1

    def _skip_inline_space(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos] in " \t":
            self._pos += 1

    def _skip_separators(self) -> None:
        while self._pos < len(self._text):
            char = self._text[self._pos]
            if char in " \t\r\n,":
                self._pos += 1
            elif self._at_comment():
                newline = self._text.find("\n", self._pos)
                self._pos = len(self._text) if newline == -1 else newline
            else:
                return

    def _at_comment(self) -> bool:
        if self._text.startswith("//", self._pos):
            return True
        following = self._text[self._pos + 1 : self._pos + 2]
        return self._peek() == "#" and following in ("", " ", "\t", "\n")

    def _peek(self) -> str:
        return self._text[self._pos] if self._pos < len(self._text) else ""

    def _consume(self, expected: str) -> None:
        if self._peek() != expected:
            self._fail(f"expected_{_TOKEN_NAMES[expected]}")
        self._pos += 1

    def _fail(self, reason: str) -> NoReturn:
        line = self._first_line + self._text.count("\n", 0, self._pos)
        raise ParseError(reason, line_number=line, section=self._section)


_TOKEN_NAMES = {"{": "open_brace", "[": "open_bracket", ":": "colon"}
