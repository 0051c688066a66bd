"""Assemble markup fragments into a Vue 3 artifact (markup + script + style)."""

from __future__ import annotations

import html
import json
import re
from collections.abc import Sequence

from apmlc.document.models import ComponentConfig, Document, Value
from apmlc.patterns.registry import DEFAULT_REGISTRY, PatternRegistry
from apmlc.render.models import CompilationArtifact, MarkupFragment, Strategy

RUNTIME = "vue@3"
RUNTIME_HEADER = f"/* runtime: {RUNTIME} */"

BASE_STYLE = """\
body {
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  background: #0a0a0a;
  color: #ffffff;
  margin: 0;
  padding: 20px;
}
.app-container {
  max-width: 800px;
  margin: 0 auto;
}
.component {
  background: #1a1a1a;
  border: 1px solid #333;
  border-radius: 8px;
  padding: 20px;
  margin: 20px 0;
}
.btn, button {
  background: #00ff88;
  color: #000;
  border: none;
  padding: 12px 24px;
  border-radius: 4px;
  cursor: pointer;
  font-weight: 500;
  font-size: 16px;
}
button:disabled {
  opacity: 0.5;
  cursor: not-allowed;
}
.btn-secondary {
  background: #333;
  color: #fff;
}
.component-pending {
  opacity: 0.6;
  font-style: italic;
}
h1 {
  color: #00ff88;
  text-align: center;
  margin-bottom: 30px;
}
h2, h3 {
  color: #00ff88;
  margin-bottom: 15px;
}"""

_IDENT = r"[A-Za-z_$][\w$]*"
_HANDLER_RE = re.compile(rf'@[\w.:-]+="\s*({_IDENT})\s*(?:\(|")')
_MODEL_RE = re.compile(rf'v-model(?:\.\w+)*="\s*({_IDENT})\s*"')
_FOR_RE = re.compile(rf'v-for="\s*(?:\([^)]*\)|{_IDENT})\s+(?:in|of)\s+({_IDENT})\s*"')
_METHOD_NAME_RE = re.compile(rf"^\s*(?:async\s+)?({_IDENT})\s*\(", re.MULTILINE)
_STATE_CONTAINER = "app_state"


def placeholder_fragment(component: ComponentConfig) -> MarkupFragment:
    """Visible stand-in for a component nothing could render."""

    kind = html.escape(component.pattern_name or component.name, quote=True)
    return MarkupFragment(
        component=component.name,
        markup=f"<p class=\"component-pending\">Component type '{kind}' not yet implemented</p>",
        source="placeholder",
    )


def assemble_artifact(
    document: Document,
    fragments: Sequence[MarkupFragment],
    *,
    strategy: Strategy,
    degraded: bool,
    unresolved: Sequence[str],
    registry: PatternRegistry = DEFAULT_REGISTRY,
    extra_methods: str = "",
    extra_style: str = "",
) -> CompilationArtifact:
    """Build the artifact; output depends only on the arguments."""

    title = document.app_title()
    markup = _build_markup(fragments)
    return CompilationArtifact(
        title=title,
        markup=markup,
        script=_build_script(document, title, fragments, markup, extra_methods),
        style=_build_style(fragments, registry, extra_style),
        degraded=degraded,
        strategy_used=strategy,
        unresolved=list(unresolved),
    )


def render_html(artifact: CompilationArtifact) -> str:
    """Standalone HTML page for an artifact."""

    return "\n".join(
        [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '  <meta charset="utf-8">',
            f"  <title>{html.escape(artifact.title)}</title>",
            f'  <script src="https://unpkg.com/{RUNTIME}/dist/vue.global.js"></script>',
            "  <style>",
            artifact.style,
            "  </style>",
            "</head>",
            "<body>",
            artifact.markup,
            "  <script>",
            artifact.script,
            "  </script>",
            "</body>",
            "</html>",
            "",
        ]
    )


def _build_markup(fragments: Sequence[MarkupFragment]) -> str:
    lines = ['<div id="app">', '  <div class="app-container">', "    <h1>{{ appTitle }}</h1>"]
    for fragment in fragments:
        name = html.escape(fragment.component, quote=True)
        source = ' data-source="fallback"' if fragment.source == "fallback" else ""
        lines.append(f'    <div class="component {name}" data-component="{name}"{source}>')
        lines.extend(f"      {line}" if line.strip() else "" for line in fragment.markup.strip("\n").splitlines())
        lines.append("    </div>")
    lines.extend(["  </div>", "</div>"])
    return "\n".join(lines)


def _build_script(
    document: Document,
    title: str,
    fragments: Sequence[MarkupFragment],
    markup: str,
    extra_methods: str,
) -> str:
    state: dict[str, Value] = {"appTitle": title}
    for key, value in _declared_state(document).items():
        state.setdefault(key, value)
    for fragment in fragments:
        for key, value in fragment.state:
            state.setdefault(key, value)
    for name in _MODEL_RE.findall(markup):
        state.setdefault(name, "")
    for name in _FOR_RE.findall(markup):
        state.setdefault(name, [])

    provided = set(_METHOD_NAME_RE.findall(extra_methods))
    descriptions = _handler_descriptions(document)
    method_lines: list[str] = []
    for handler in _unique(_HANDLER_RE.findall(markup)):
        if handler in provided or handler in state:
            continue
        if handler in descriptions:
            method_lines.append(f"    // {descriptions[handler]}")
        method_lines.extend(
            [
                f"    {handler}(...args) {{",
                f"      console.debug({json.dumps('[apml] ' + handler)}, ...args);",
                "    },",
            ]
        )
    if extra_methods.strip():
        method_lines.extend(f"    {line}" if line.strip() else "" for line in extra_methods.strip("\n").splitlines())

    data_lines = [f"      {key}: {_js_literal(value)}," for key, value in state.items()]
    return "\n".join(
        [
            RUNTIME_HEADER,
            "const { createApp } = Vue;",
            "",
            "createApp({",
            "  data() {",
            "    return {",
            *data_lines,
            "    };",
            "  },",
            "  methods: {",
            *method_lines,
            "  },",
            "}).mount('#app');",
        ]
    )


def _build_style(fragments: Sequence[MarkupFragment], registry: PatternRegistry, extra_style: str) -> str:
    blocks = [BASE_STYLE]
    for fragment in fragments:
        if fragment.pattern_id is None or fragment.pattern_id not in registry:
            continue
        style = registry[fragment.pattern_id].style
        if style and style not in blocks:
            blocks.append(style)
    if extra_style.strip() and extra_style.strip() not in blocks:
        blocks.append(extra_style.strip())
    return "\n\n".join(blocks)


def _declared_state(document: Document) -> dict[str, Value]:
    section = document.sections.get("data_model")
    if section is None:
        return {}

    declared: dict[str, Value] = {}
    for key, value in section.properties.items():
        declared[key] = _state_default(value)
    for component in section.components.values():
        if component.name == _STATE_CONTAINER:
            for key, value in component.properties.items():
                declared.setdefault(key, _state_default(value))
        else:
            declared.setdefault(component.name, _state_default(component.properties))
    return declared


def _state_default(declaration: Value) -> Value:
    if not isinstance(declaration, dict):
        return declaration
    if "default" in declaration:
        return declaration["default"]
    kind = declaration.get("type")
    if kind in {"array", "list"}:
        return []
    if kind in {"object", "map"}:
        return {}
    if kind in {"number", "integer", "int", "float"}:
        return 0
    if kind in {"boolean", "bool"}:
        return False
    if "type" in declaration:
        return ""
    return declaration


def _handler_descriptions(document: Document) -> dict[str, str]:
    section = document.sections.get("user_interactions")
    if section is None:
        return {}
    descriptions: dict[str, str] = {}
    for component in section.components.values():
        description = component.properties.get("description")
        if isinstance(description, str) and description.strip():
            descriptions[component.name] = " ".join(description.split())
    return descriptions


def _js_literal(value: Value) -> str:
    return json.dumps(value, ensure_ascii=False)


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))
