"""Layout patterns: conditional blocks, modals, wizards and panels."""

from __future__ import annotations

from apmlc.document.models import ComponentConfig, Value
from apmlc.patterns.base import PatternDefinition
from apmlc.patterns.markup import as_text, esc, items, mapping, nested, prop, render_elements, slug

MODAL_STYLE = """\
.modal-overlay {
  position: fixed;
  top: 0;
  left: 0;
  right: 0;
  bottom: 0;
  background: rgba(0, 0, 0, 0.8);
  display: flex;
  justify-content: center;
  align-items: center;
  z-index: 1000;
}
.modal-content {
  background: #1a1a1a;
  border: 1px solid #333;
  border-radius: 8px;
  padding: 30px;
  max-width: 500px;
  width: 90%;
}
.modal-actions {
  margin-top: 20px;
  display: flex;
  gap: 10px;
  justify-content: flex-end;
}"""

WIZARD_STYLE = """\
.wizard .steps {
  display: flex;
  gap: 10px;
  margin-bottom: 20px;
}
.wizard .steps .active {
  color: #00ff88;
  font-weight: 600;
}
.step-actions {
  display: flex;
  justify-content: space-between;
  margin-top: 20px;
}"""

PROGRESS_STYLE = """\
.progress-bar {
  height: 8px;
  background: #333;
  border-radius: 4px;
  overflow: hidden;
}
.progress-fill {
  height: 100%;
  background: #00ff88;
  transition: width 0.3s ease;
}
.progress-text {
  margin-top: 8px;
  font-size: 14px;
  opacity: 0.8;
}"""

PANEL_STYLE = """\
.card-buttons, .tab-buttons {
  display: flex;
  gap: 10px;
  flex-wrap: wrap;
}
.feedback-area {
  margin-top: 15px;
  opacity: 0.8;
}
.scrollable-content {
  max-height: 400px;
  overflow-y: auto;
}
.conversation-message {
  padding: 8px 0;
  border-bottom: 1px solid #333;
}
.tab-button.active {
  background: #00ff88;
  color: #000;
}
.tab-content {
  margin-top: 15px;
}"""


def render_conditional_content(component: ComponentConfig) -> str:
    condition = prop(component, "condition")
    if_true = items(mapping(component.properties.get("if_true")).get("elements"))
    if_false = items(mapping(component.properties.get("if_false")).get("elements"))
    return "\n".join(
        [
            f'<div v-if="{condition}">',
            *nested(render_elements(if_true)),
            "</div>",
            "<div v-else>",
            *nested(render_elements(if_false)),
            "</div>",
        ]
    )


def render_modal_dialog(component: ComponentConfig) -> str:
    visible = prop(component, "visible_when")
    overlay_click = prop(component, "overlay_click")
    overlay_attr = f' @click="{overlay_click}"' if overlay_click else ""

    title = _text_or_binding(component, "title")
    content = _text_or_binding(component, "content")

    buttons = []
    for action in items(component.properties.get("actions")):
        handler = esc(action.get("action"))
        click = f' @click="{handler}"' if handler else ""
        style = esc(action.get("style"), "secondary")
        buttons.append(f'<button type="button"{click} class="btn btn-{style}">{esc(action.get("text"), "OK")}</button>')

    return "\n".join(
        [
            f'<div v-if="{visible}" class="modal-overlay"{overlay_attr}>',
            '  <div class="modal-content" @click.stop>',
            f"    <h3>{title}</h3>",
            f'    <div class="modal-body">{content}</div>',
            '    <div class="modal-actions">',
            *nested(buttons, 6),
            "    </div>",
            "  </div>",
            "</div>",
        ]
    )


def render_wizard_component(component: ComponentConfig) -> str:
    current = prop(component, "current_step")
    steps = prop(component, "steps_bind", "steps")
    navigation = mapping(component.properties.get("navigation"))
    previous = mapping(navigation.get("previous"))
    following = mapping(navigation.get("next"))

    return "\n".join(
        [
            '<div class="wizard">',
            '  <div class="steps">',
            f'    <div v-for="(step, index) in {steps}" :key="index" :class="{{ active: {current} === index }}">',
            "      {{ step.title }}",
            "    </div>",
            "  </div>",
            '  <div class="step-content">',
            f'    <component v-if="{steps}[{current}]" :is="{steps}[{current}].component" />',
            "  </div>",
            '  <div class="step-actions">',
            *nested(_nav_button(previous, "previousStep", "Previous"), 4),
            *nested(_nav_button(following, "nextStep", "Next"), 4),
            "  </div>",
            "</div>",
        ]
    )


def render_progress_bar(component: ComponentConfig) -> str:
    current = prop(component, "current_step")
    total = prop(component, "total_steps")
    percent = prop(component, "percent_bind")
    width = percent or f"Math.round(({current}) / ({total}) * 100)"
    return "\n".join(
        [
            '<div class="progress-container">',
            '  <div class="progress-bar">',
            f"    <div class=\"progress-fill\" :style=\"{{ width: ({width}) + '%' }}\"></div>",
            "  </div>",
            f'  <div class="progress-text">{{{{ {current} }}}} of {total}</div>',
            "</div>",
        ]
    )


def render_card_container(component: ComponentConfig) -> str:
    feedback = prop(component, "feedback_bind", "feedback_message")

    buttons = []
    for button in items(component.properties.get("buttons")):
        handler = esc(button.get("action"))
        attrs = f' @click="{handler}"' if handler else ""
        condition = esc(button.get("visible_when") or button.get("conditional"))
        if condition:
            attrs += f' v-if="{condition}"'
        tooltip = esc(button.get("tooltip"))
        if tooltip:
            attrs += f' title="{tooltip}"'
        style = esc(button.get("style"), "primary")
        buttons.append(f'<button type="button" class="btn btn-{style}"{attrs}>{esc(button.get("text"), "Go")}</button>')

    lines = ['<div class="card-container">', f'  <h2>{prop(component, "title")}</h2>']
    if as_text(component.properties.get("description")):
        lines.append(f'  <p class="card-description">{prop(component, "description")}</p>')
    lines.extend(
        [
            '  <div class="card-buttons">',
            *nested(buttons, 4),
            "  </div>",
            f'  <div class="feedback-area" v-if="{feedback}">{{{{ {feedback} }}}}</div>',
            "</div>",
        ]
    )
    return "\n".join(lines)


def render_scrollable_panel(component: ComponentConfig) -> str:
    source = prop(component, "data_source", "conversation_messages")
    key = prop(component, "key_field", "timestamp")
    content = prop(component, "content_field", "content")
    kind = prop(component, "type_field", "type")
    return "\n".join(
        [
            '<div class="scrollable-panel">',
            f'  <h2>{prop(component, "title")}</h2>',
            '  <div class="scrollable-content">',
            f"    <div v-for=\"message in {source}\" :key=\"message.{key}\" :class=\"'conversation-message ' + message.{kind}\">",
            f'      <div class="timestamp">{{{{ message.{key} }}}}</div>',
            f'      <div class="message-content">{{{{ message.{content} }}}}</div>',
            "    </div>",
            "  </div>",
            "</div>",
        ]
    )


def render_tabbed_panel(component: ComponentConfig) -> str:
    active = prop(component, "bind", "active_tab")
    tabs = items(component.properties.get("tabs"))

    buttons: list[str] = []
    panes: list[str] = []
    for index, tab in enumerate(tabs):
        name = tab.get("name") or tab.get("text")
        key = slug(name, f"tab_{index + 1}")
        icon = esc(tab.get("icon"))
        label = f"{icon} {esc(name)}".strip()
        buttons.append(
            f"<button type=\"button\" class=\"tab-button\" :class=\"{{ active: {active} === '{key}' }}\" "
            f"@click=\"{active} = '{key}'\">{label}</button>"
        )
        binding = esc(tab.get("content_bind"))
        body = f"{{{{ {binding} }}}}" if binding else esc(tab.get("content"))
        panes.append(f"<div v-if=\"{active} === '{key}'\" class=\"tab-content\">{body}</div>")

    lines = ['<div class="tabbed-panel">']
    if as_text(component.properties.get("title")):
        lines.append(f'  <h2>{prop(component, "title")}</h2>')
    lines.extend(
        [
            '  <div class="tab-buttons">',
            *nested(buttons, 4),
            "  </div>",
            '  <div class="tab-content-area">',
            *nested(panes, 4),
            "  </div>",
            "</div>",
        ]
    )
    return "\n".join(lines)


def _tabbed_state(component: ComponentConfig) -> dict[str, Value]:
    tabs = items(component.properties.get("tabs"))
    first = slug(tabs[0].get("name") or tabs[0].get("text"), "tab_1") if tabs else ""
    return {as_text(component.properties.get("bind"), "active_tab"): first}


def _text_or_binding(component: ComponentConfig, key: str) -> str:
    binding = prop(component, f"{key}_bind")
    if binding:
        return f"{{{{ {binding} }}}}"
    return prop(component, key)


def _nav_button(config: dict[str, Value], default_action: str, default_text: str) -> list[str]:
    action = esc(config.get("action"), default_action)
    disabled = esc(config.get("disabled_when"), "false")
    return [
        f'<button type="button" class="btn btn-secondary" @click="{action}" :disabled="{disabled}">',
        f"  {esc(config.get('text'), default_text)}",
        "</button>",
    ]


CONDITIONAL_CONTENT = PatternDefinition(
    id="conditional_content",
    required_fields=frozenset({"condition"}),
    semantic_keywords=frozenset(),
    render=render_conditional_content,
)

MODAL_DIALOG = PatternDefinition(
    id="modal_dialog",
    required_fields=frozenset({"visible_when"}),
    semantic_keywords=frozenset({"modal", "popup", "dialog", "overlay"}),
    render=render_modal_dialog,
    style=MODAL_STYLE,
)

WIZARD_COMPONENT = PatternDefinition(
    id="wizard_component",
    required_fields=frozenset({"current_step"}),
    semantic_keywords=frozenset({"wizard", "step", "multi-step", "progress"}),
    render=render_wizard_component,
    style=WIZARD_STYLE,
)

PROGRESS_BAR = PatternDefinition(
    id="progress_bar",
    required_fields=frozenset({"current_step", "total_steps"}),
    semantic_keywords=frozenset(),
    render=render_progress_bar,
    style=PROGRESS_STYLE,
)

CARD_CONTAINER = PatternDefinition(
    id="card_container",
    required_fields=frozenset({"title"}),
    semantic_keywords=frozenset(),
    render=render_card_container,
    style=PANEL_STYLE,
)

SCROLLABLE_PANEL = PatternDefinition(
    id="scrollable_panel",
    required_fields=frozenset({"title"}),
    semantic_keywords=frozenset(),
    render=render_scrollable_panel,
    style=PANEL_STYLE,
)

TABBED_PANEL = PatternDefinition(
    id="tabbed_panel",
    required_fields=frozenset({"tabs"}),
    semantic_keywords=frozenset(),
    render=render_tabbed_panel,
    style=PANEL_STYLE,
    state=_tabbed_state,
)
