"""Narrative card patterns used by guided, quiz-style flows."""

from __future__ import annotations

from apmlc.document.models import ComponentConfig
from apmlc.patterns.base import PatternDefinition
from apmlc.patterns.markup import as_text, prop

CARD_STYLE = """\
.welcome-card, .scenario-card, .followup-card, .breakthrough-card, .results-card, .thrive-card {
  display: flex;
  flex-direction: column;
  gap: 12px;
}
.option-button, .domain-item {
  padding: 12px;
  border: 1px solid #333;
  border-radius: 6px;
  cursor: pointer;
}
.option-button:hover, .domain-item:hover {
  border-color: #00ff88;
}
.domain-letter {
  font-size: 24px;
  color: #00ff88;
}"""


def render_welcome_card(component: ComponentConfig) -> str:
    action = prop(component, "action", "start")
    lines = ['<div class="welcome-card">', f'  <h1 class="welcome-title">{prop(component, "title")}</h1>']
    lines.extend(_optional(component, "subtitle", '  <h2 class="welcome-subtitle">{}</h2>'))
    lines.extend(_optional(component, "description", '  <p class="welcome-description">{}</p>'))
    lines.extend(_optional(component, "meta_info", '  <div class="welcome-meta">{}</div>'))
    lines.append(
        f'  <button type="button" @click="{action}" class="btn btn-primary">{prop(component, "action_text", "Start")}</button>'
    )
    lines.append("</div>")
    return "\n".join(lines)


def render_scenario_card(component: ComponentConfig) -> str:
    action = prop(component, "action", "answer_question")
    lines = ['<div class="scenario-card">', f'  <h3 class="scenario-title">{{{{ {prop(component, "title_bind")} }}}}</h3>']
    lines.extend(_optional_binding(component, "situation_bind", '  <p class="scenario-situation">{}</p>'))
    lines.extend(_optional_binding(component, "question_bind", '  <p class="scenario-question">{}</p>'))
    lines.extend(_options(prop(component, "options_bind"), action, "scenario-options"))
    lines.append("</div>")
    return "\n".join(lines)


def render_followup_card(component: ComponentConfig) -> str:
    action = prop(component, "action", "answer_followup_question")
    lines = ['<div class="followup-card">']
    previous = prop(component, "previous_answer_bind")
    if previous:
        lines.append(f'  <div class="previous-answer"><small>You chose: {{{{ {previous} }}}}</small></div>')
    lines.append(f'  <p class="followup-question">{{{{ {prop(component, "question_bind")} }}}}</p>')
    lines.extend(_options(prop(component, "options_bind"), action, "followup-options"))
    lines.append("</div>")
    return "\n".join(lines)


def render_breakthrough_card(component: ComponentConfig) -> str:
    action = prop(component, "action", "show_results")
    lines = ['<div class="breakthrough-card">', f'  <h2 class="breakthrough-title">{prop(component, "title")}</h2>']
    lines.extend(_optional_binding(component, "pattern_analysis_bind", '  <div class="breakthrough-analysis"><p>{}</p></div>'))
    examples = prop(component, "gap_examples_bind")
    if examples:
        lines.extend(
            [
                '  <div class="breakthrough-examples">',
                f'    <div v-for="gap in {examples}" :key="gap.id" class="gap-example">',
                "      <strong>{{ gap.scenario }}</strong>: {{ gap.description }}",
                "    </div>",
                "  </div>",
            ]
        )
    lines.extend(_optional(component, "revelation_text", '  <p class="breakthrough-revelation">{}</p>'))
    lines.append(
        f'  <button type="button" @click="{action}" class="btn btn-primary">{prop(component, "continue_text", "Continue")}</button>'
    )
    lines.append("</div>")
    return "\n".join(lines)


def render_results_card(component: ComponentConfig) -> str:
    action = prop(component, "action", "show_email_capture")
    lines = ['<div class="results-card">', f'  <h2 class="results-title">{prop(component, "title")}</h2>']
    lines.extend(_optional_binding(component, "summary_bind", '  <div class="results-summary"><p>{}</p></div>'))
    insights = prop(component, "insights_bind") or prop(component, "pattern_insights_bind")
    if insights:
        lines.extend(
            [
                '  <div class="results-insights">',
                f'    <div v-for="insight in {insights}" :key="insight.id" class="insight-item">',
                "      <h4>{{ insight.title }}</h4>",
                "      <p>{{ insight.description }}</p>",
                "    </div>",
                "  </div>",
            ]
        )
    lines.extend(_optional(component, "next_steps_text", '  <p class="results-next-steps">{}</p>'))
    lines.append(
        f'  <button type="button" @click="{action}" class="btn btn-primary">{prop(component, "button_text", "Get Full Analysis")}</button>'
    )
    lines.append("</div>")
    return "\n".join(lines)


def render_thrive_card(component: ComponentConfig) -> str:
    action = prop(component, "action", "select_domain")
    domains = prop(component, "domains_bind", "thrive_domains")
    lines = ['<div class="thrive-card">', f'  <h2 class="thrive-title">{prop(component, "title")}</h2>']
    lines.extend(_optional(component, "description", '  <p class="thrive-description">{}</p>'))
    lines.extend(
        [
            '  <div class="thrive-domains">',
            f'    <div v-for="domain in {domains}" :key="domain.letter" class="domain-item" @click="{action}(domain.letter)">',
            '      <div class="domain-letter">{{ domain.letter }}</div>',
            '      <div class="domain-info">',
            "        <h4>{{ domain.name }}</h4>",
            "        <p>{{ domain.description }}</p>",
            "      </div>",
            "    </div>",
            "  </div>",
        ]
    )
    lines.extend(_optional(component, "question", '  <p class="thrive-question">{}</p>'))
    lines.append("</div>")
    return "\n".join(lines)


def _optional(component: ComponentConfig, key: str, template: str) -> list[str]:
    if not as_text(component.properties.get(key)):
        return []
    return [template.format(prop(component, key))]


def _optional_binding(component: ComponentConfig, key: str, template: str) -> list[str]:
    binding = prop(component, key)
    if not binding:
        return []
    return [template.format(f"{{{{ {binding} }}}}")]


def _options(binding: str, action: str, css_class: str) -> list[str]:
    if not binding:
        return []
    return [
        f'  <div class="{css_class}">',
        f'    <div v-for="option in {binding}" :key="option.id" class="option-button" @click="{action}(option.id)">',
        "      {{ option.text }}",
        "    </div>",
        "  </div>",
    ]


def _card(pattern_id: str, render, required: set[str]) -> PatternDefinition:
    return PatternDefinition(
        id=pattern_id,
        required_fields=frozenset(required),
        semantic_keywords=frozenset(),
        render=render,
        style=CARD_STYLE,
    )


WELCOME_CARD = _card("welcome_card", render_welcome_card, {"title"})
SCENARIO_CARD = _card("scenario_card", render_scenario_card, {"title_bind", "options_bind"})
FOLLOWUP_CARD = _card("followup_card", render_followup_card, {"question_bind", "options_bind"})
BREAKTHROUGH_CARD = _card("breakthrough_card", render_breakthrough_card, {"title"})
RESULTS_CARD = _card("results_card", render_results_card, {"title"})
THRIVE_CARD = _card("thrive_card", render_thrive_card, {"title"})
