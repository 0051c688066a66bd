"""Pull a well-formed fragment bundle out of a free-form backend response."""

from __future__ import annotations

import re
from dataclasses import dataclass

from apmlc.fallback.request import ARTIFACT_CLOSE, ARTIFACT_OPEN
from apmlc.render.models import MarkupFragment
from apmlc.utils.errors import ExtractionError

_FRAGMENT_RE = re.compile(r'<fragment\s+component\s*=\s*"([^"]*)"\s*>(.*?)</fragment\s*>', re.DOTALL)
_METHODS_RE = re.compile(r"<methods\s*>(.*?)</methods\s*>", re.DOTALL)
_STYLE_RE = re.compile(r"<style\s*>(.*?)</style\s*>", re.DOTALL)
_COMPONENT_NAME_RE = re.compile(r"^[A-Za-z_][\w-]*$")
_FORBIDDEN_RE = re.compile(r"<\s*(script|html|body)\b", re.IGNORECASE)


@dataclass(frozen=True)
class FallbackArtifact:
    """Fragments in response order plus optional methods and CSS."""

    fragments: tuple[MarkupFragment, ...]
    methods: str = ""
    style: str = ""

    def by_component(self) -> dict[str, MarkupFragment]:
        return {fragment.component: fragment for fragment in self.fragments}


def extract_fallback_artifact(response: str) -> FallbackArtifact:
    """Parse the marked block of a backend response.

    Raises:
        ExtractionError: markers or fragments are missing, a component name is
            invalid or repeated, or a fragment embeds a document-level element.
    """

    start = response.find(ARTIFACT_OPEN)
    end = response.rfind(ARTIFACT_CLOSE)
    if start < 0 or end < start:
        raise ExtractionError("missing_markers")
    body = response[start + len(ARTIFACT_OPEN) : end]

    fragments: list[MarkupFragment] = []
    seen: set[str] = set()
    for match in _FRAGMENT_RE.finditer(body):
        name = match.group(1).strip()
        markup = match.group(2).strip("\n")
        if not _COMPONENT_NAME_RE.match(name):
            raise ExtractionError("invalid_component_name", component=name)
        if name in seen:
            raise ExtractionError("duplicate_component", component=name)
        if _FORBIDDEN_RE.search(markup):
            raise ExtractionError("forbidden_element", component=name)
        if not markup.strip():
            raise ExtractionError("empty_fragment", component=name)
        seen.add(name)
        fragments.append(MarkupFragment(component=name, markup=_dedent(markup), source="fallback"))

    if not fragments:
        raise ExtractionError("no_fragments")

    remainder = _FRAGMENT_RE.sub("", body)
    return FallbackArtifact(
        fragments=tuple(fragments),
        methods=_first_block(_METHODS_RE, remainder),
        style=_first_block(_STYLE_RE, remainder),
    )


def _first_block(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return _dedent(match.group(1)) if match else ""


def _dedent(markup: str) -> str:
    lines = markup.splitlines()
    indents = [len(line) - len(line.lstrip()) for line in lines if line.strip()]
    cut = min(indents, default=0)
    return "\n".join(line[cut:].rstrip() for line in lines).strip("\n")
