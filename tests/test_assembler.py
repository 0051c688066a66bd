from __future__ import annotations

from apmlc.document.parser import parse_document
from apmlc.patterns.layout import PANEL_STYLE
from apmlc.render.assembler import BASE_STYLE, RUNTIME_HEADER, assemble_artifact, placeholder_fragment, render_html
from apmlc.render.models import MarkupFragment

_DOCUMENT = """## App Configuration
name: "Login <Demo>"

## Data Model
app_state: {
  user_email: { type: "string", default: "a@b.c" }
  attempts: { type: "number" }
  sessions: { type: "array" }
  filters: { type: "object" }
}
theme: "dark"

## UI Components
login_form: {
  type: "form_input"
  action: "submit_login"
}

## User Interactions
submit_login: {
  description: "Validate  credentials"
}
"""


def _document():
    return parse_document(_DOCUMENT)


def _fragments() -> list[MarkupFragment]:
    return [
        MarkupFragment(
            component="login_form",
            markup='<form @submit.prevent="submit_login">\n  <input v-model="user_password">\n</form>',
            source="rule",
            pattern_id="form_input",
        ),
        MarkupFragment(
            component="panel_a",
            markup='<div v-for="row in rows" @click="openRow(row)">{{ row }}</div>',
            source="rule",
            pattern_id="card_container",
            state=(("feedback_message", ""),),
        ),
        MarkupFragment(component="panel_b", markup="<p>b</p>", source="rule", pattern_id="card_container"),
        MarkupFragment(component="live_feed", markup='<ul @click="startStream"></ul>', source="fallback"),
    ]


def _assemble(**overrides):
    arguments = {
        "strategy": "hybrid",
        "degraded": False,
        "unresolved": [],
        **overrides,
    }
    return assemble_artifact(_document(), _fragments(), **arguments)


def test_markup_wraps_fragments_in_order() -> None:
    artifact = _assemble()

    assert artifact.markup.startswith('<div id="app">\n  <div class="app-container">\n    <h1>{{ appTitle }}</h1>')
    positions = [artifact.markup.index(f'data-component="{name}"') for name in ("login_form", "panel_a", "panel_b", "live_feed")]
    assert positions == sorted(positions)
    assert '<div class="component live_feed" data-component="live_feed" data-source="fallback">' in artifact.markup
    assert '<div class="component login_form" data-component="login_form">' in artifact.markup
    assert '      <form @submit.prevent="submit_login">' in artifact.markup


def test_script_declares_title_model_state_and_scanned_bindings() -> None:
    artifact = _assemble()
    script = artifact.script

    assert script.startswith(RUNTIME_HEADER)
    assert "createApp({" in script
    assert script.rstrip().endswith("}).mount('#app');")
    assert '      appTitle: "Login <Demo>",' in script
    assert '      user_email: "a@b.c",' in script
    assert "      attempts: 0," in script
    assert "      sessions: []," in script
    assert "      filters: {}," in script
    assert '      theme: "dark",' in script
    assert '      feedback_message: "",' in script
    assert '      user_password: "",' in script
    assert "      rows: []," in script
    assert script.index("appTitle:") < script.index("user_email:") < script.index("feedback_message:")


def test_script_stubs_every_referenced_handler_once() -> None:
    artifact = _assemble()
    script = artifact.script

    assert "    // Validate credentials" in script
    for handler in ("submit_login", "openRow", "startStream"):
        assert script.count(f"    {handler}(...args) {{") == 1
    assert 'console.debug("[apml] openRow", ...args);' in script


def test_fallback_methods_replace_stubs_and_fallback_style_is_appended() -> None:
    artifact = _assemble(
        extra_methods="startStream() {\n  this.connected = true;\n},",
        extra_style=".live-feed { color: red; }",
    )

    assert "    startStream() {" in artifact.script
    assert "startStream(...args)" not in artifact.script
    assert artifact.style.endswith(".live-feed { color: red; }")


def test_style_includes_each_pattern_style_once() -> None:
    artifact = _assemble()

    assert artifact.style.startswith(BASE_STYLE)
    assert artifact.style.count(PANEL_STYLE) == 1


def test_metadata_fields_are_passed_through() -> None:
    artifact = _assemble(strategy="manual_only", degraded=True, unresolved=["panel_b"])

    assert artifact.title == "Login <Demo>"
    assert artifact.strategy_used == "manual_only"
    assert artifact.degraded is True
    assert artifact.unresolved == ["panel_b"]


def test_assembly_is_deterministic() -> None:
    assert _assemble() == _assemble()


def test_placeholder_names_the_declared_type() -> None:
    component = parse_document('## UI Components\nteleporter: { type: "quantum_teleport_widget" }\n').sections[
        "ui_components"
    ].components["teleporter"]

    fragment = placeholder_fragment(component)

    assert fragment.source == "placeholder"
    assert fragment.markup == (
        "<p class=\"component-pending\">Component type 'quantum_teleport_widget' not yet implemented</p>"
    )


def test_render_html_builds_standalone_page() -> None:
    artifact = _assemble()

    page = render_html(artifact)

    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Login &lt;Demo&gt;</title>" in page
    assert '<script src="https://unpkg.com/vue@3/dist/vue.global.js"></script>' in page
    assert artifact.markup in page
    assert artifact.script in page
