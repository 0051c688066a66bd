"""Prompt construction for the generative fallback, with bounded context."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from apmlc.fallback.base import FallbackRequest
from apmlc.settings import CompilerSettings

ARTIFACT_OPEN = "<apml-artifact>"
ARTIFACT_CLOSE = "</apml-artifact>"
TRUNCATION_MARK = "\n... [truncated]"

DEFAULT_STYLE_GUIDE = """\
- Data: appTitle, user_name, user_description, current_view
- Methods: submitForm, handleClick, nextStep, previousStep
- Classes: app-container, component, btn, btn-primary, btn-secondary, modal-overlay
- Colors: #0a0a0a (background), #00ff88 (primary), #ffffff (text)"""

FALLBACK_SYSTEM_DIRECTIVES = f"""\
You compile APML components into Vue 3 template markup.

Rules:
1. Never change the existing rule-generated fragments; only add what is missing.
2. Reuse the variable, method and class names from the style guide.
3. Add accessibility attributes (aria-*, role) where they apply.
4. Do not emit <html>, <body> or <script> elements.

Answer with exactly one block:
{ARTIFACT_OPEN}
<fragment component="component_name">...template markup...</fragment>
<methods>optional Vue method definitions, one per line group</methods>
<style>optional CSS</style>
{ARTIFACT_CLOSE}"""


def build_fallback_request(
    document_text: str,
    rule_fragments: Mapping[str, str],
    unresolved_components: Sequence[str],
    style_guide: str,
    settings: CompilerSettings,
) -> FallbackRequest:
    """Build a request whose context stays inside the configured character budgets."""

    document_context = truncate(document_text, settings.max_document_context_chars)
    fragment_context = truncate(_join_fragments(rule_fragments), settings.max_fragment_context_chars)

    parts = [f"Compile this APML to Vue 3 fragments:\n\n{document_context}"]
    if fragment_context:
        parts.append(f"EXISTING FRAGMENTS (keep, do not regenerate):\n{fragment_context}")
    if unresolved_components:
        parts.append("FOCUS ON THESE COMPONENTS:\n" + ", ".join(unresolved_components))
    if style_guide:
        parts.append(f"STYLE GUIDE:\n{style_guide}")

    return FallbackRequest(
        prompt="\n\n".join(parts),
        max_tokens=settings.fallback_max_tokens,
        system_directives=FALLBACK_SYSTEM_DIRECTIVES,
        document_text=document_context,
        rule_fragments=dict(rule_fragments),
        unresolved_components=list(unresolved_components),
        style_guide=style_guide,
    )


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit <= len(TRUNCATION_MARK):
        return text[:limit]
    return text[: limit - len(TRUNCATION_MARK)] + TRUNCATION_MARK


def _join_fragments(rule_fragments: Mapping[str, str]) -> str:
    return "\n".join(
        f'<fragment component="{name}">\n{markup}\n</fragment>' for name, markup in rule_fragments.items()
    )
