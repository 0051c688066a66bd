"""Form patterns: generic forms, text areas and email capture."""

from __future__ import annotations

from apmlc.document.models import ComponentConfig, Value
from apmlc.patterns.base import PatternDefinition
from apmlc.patterns.markup import as_text, esc, items, nested, prop

FORM_STYLE = """\
form {
  display: flex;
  flex-direction: column;
  gap: 15px;
}
textarea, input, select {
  padding: 12px;
  border: 1px solid #333;
  border-radius: 4px;
  background: #0a0a0a;
  color: #ffffff;
  font-family: inherit;
  font-size: 16px;
}
textarea {
  resize: vertical;
  min-height: 100px;
}"""

EMAIL_STYLE = """\
.email-form-container {
  display: flex;
  gap: 10px;
}
.email-input {
  flex: 1;
}
.email-privacy {
  display: block;
  margin-top: 10px;
  opacity: 0.7;
}"""


def render_form_input(component: ComponentConfig) -> str:
    return _render_form(component, default_control="input")


def render_text_area(component: ComponentConfig) -> str:
    return _render_form(component, default_control="textarea")


def render_email_form(component: ComponentConfig) -> str:
    bind = prop(component, "bind", "user_email")
    action = prop(component, "action", "submit_email")
    lines = ['<div class="email-form">', f'  <h3 class="email-title">{prop(component, "title")}</h3>']
    if as_text(component.properties.get("description")):
        lines.append(f'  <p class="email-description">{prop(component, "description")}</p>')
    lines.extend(
        [
            f'  <form @submit.prevent="{action}" class="email-form-container">',
            f'    <input v-model="{bind}" type="email" placeholder="{prop(component, "placeholder", "you@example.com")}" class="email-input" required>',
            f'    <button type="submit" class="btn btn-primary">{prop(component, "button_text", "Submit")}</button>',
            "  </form>",
        ]
    )
    if as_text(component.properties.get("privacy_note")):
        lines.append(f'  <small class="email-privacy">{prop(component, "privacy_note")}</small>')
    lines.append("</div>")
    return "\n".join(lines)


def _render_form(component: ComponentConfig, *, default_control: str) -> str:
    action = prop(component, "action", "submitForm")
    elements = items(component.properties.get("elements")) or items(component.properties.get("fields"))

    controls: list[str] = []
    if elements:
        for element in elements:
            controls.extend(_render_control(element, default_control))
    elif as_text(component.properties.get("bind")):
        controls.extend(
            _render_control(
                {
                    "type": default_control,
                    "bind": component.properties["bind"],
                    "placeholder": component.properties.get("placeholder", ""),
                    "rows": component.properties.get("rows", 3),
                },
                default_control,
            )
        )

    if not any("<button" in control and 'type="submit"' in control for control in controls):
        controls.append(f'<button type="submit" class="btn btn-primary">{prop(component, "submit_text", "Submit")}</button>')

    return "\n".join([f'<form @submit.prevent="{action}">', *nested(controls), "</form>"])


def _render_control(element: dict[str, Value], default_control: str) -> list[str]:
    kind = as_text(element.get("type"), default_control)
    bind = esc(element.get("bind") or element.get("name"))
    model = f' v-model="{bind}"' if bind else ""
    placeholder = esc(element.get("placeholder") or element.get("label"))
    required = " required" if element.get("required") is True else ""

    if kind in {"text_area", "textarea"}:
        rows = element.get("rows")
        row_count = rows if isinstance(rows, int) and rows > 0 else 3
        return [f'<textarea{model} placeholder="{placeholder}" rows="{row_count}"{required}></textarea>']
    if kind == "button":
        action = esc(element.get("action"))
        disabled = esc(element.get("disabled_when"))
        attrs = f' type="button" @click="{action}"' if action else ' type="submit"'
        if disabled:
            attrs += f' :disabled="{disabled}"'
        return [f"<button{attrs}>{esc(element.get('text'), 'Submit')}</button>"]
    if kind == "select":
        options = [
            f'  <option value="{esc(option.get("value") or option.get("text"))}">{esc(option.get("text") or option.get("value"))}</option>'
            for option in items(element.get("options"))
        ]
        return [f"<select{model}{required}>", *options, "</select>"]

    input_type = esc(element.get("input_type"), "email" if kind == "email" else "password" if kind == "password" else "text")
    return [f'<input{model} type="{input_type}" placeholder="{placeholder}"{required}>']


def _email_state(component: ComponentConfig) -> dict[str, Value]:
    return {as_text(component.properties.get("bind"), "user_email"): ""}


FORM_INPUT = PatternDefinition(
    id="form_input",
    required_fields=frozenset({"action"}),
    semantic_keywords=frozenset({"form", "input", "field", "submit", "login", "register"}),
    render=render_form_input,
    style=FORM_STYLE,
)

TEXT_AREA = PatternDefinition(
    id="text_area",
    required_fields=frozenset({"bind"}),
    semantic_keywords=frozenset(),
    render=render_text_area,
    style=FORM_STYLE,
)

EMAIL_FORM = PatternDefinition(
    id="email_form",
    required_fields=frozenset({"title"}),
    semantic_keywords=frozenset(),
    render=render_email_form,
    style=EMAIL_STYLE,
    state=_email_state,
)
