"""List and table patterns bound to array data sources."""

from __future__ import annotations

from apmlc.document.models import ComponentConfig
from apmlc.patterns.base import PatternDefinition
from apmlc.patterns.markup import as_text, esc, items, nested, prop

LIST_STYLE = """\
.list-item {
  display: flex;
  justify-content: space-between;
  align-items: center;
  padding: 10px;
  border-bottom: 1px solid #333;
}
.list-item:last-child {
  border-bottom: none;
}"""

TABLE_STYLE = """\
table {
  width: 100%;
  border-collapse: collapse;
}
th, td {
  padding: 12px;
  text-align: left;
  border-bottom: 1px solid #333;
}
th {
  background: #333;
  font-weight: 600;
}"""


def render_action_list(component: ComponentConfig) -> str:
    source = prop(component, "data_source")
    key = prop(component, "key_field")
    display = prop(component, "display_field", "text")

    buttons = []
    for action in items(component.properties.get("actions")):
        handler = esc(action.get("action"))
        label = esc(action.get("text"), "Select")
        click = f' @click="{handler}(item.{key})"' if handler else ""
        buttons.append(f'<button type="button" class="btn btn-secondary"{click}>{label}</button>')

    lines = [
        f'<div v-for="item in {source}" :key="item.{key}" class="list-item">',
        f"  <span>{{{{ item.{display} }}}}</span>",
        *nested(buttons),
        "</div>",
    ]
    if as_text(component.properties.get("empty_text")):
        lines.append(f'<p v-if="!{source}.length" class="list-empty">{prop(component, "empty_text")}</p>')
    return "\n".join(lines)


def render_data_table(component: ComponentConfig) -> str:
    source = prop(component, "data_source")
    key = prop(component, "key_field", "id")

    columns = []
    for column in items(component.properties.get("columns")):
        column_key = esc(column.get("key") or column.get("text"))
        if not column_key:
            continue
        columns.append((column_key, esc(column.get("label") or column.get("text") or column.get("key"))))

    header = [f"<th>{label}</th>" for _, label in columns]
    cells = [f"<td>{{{{ row.{column_key} }}}}</td>" for column_key, _ in columns]
    return "\n".join(
        [
            "<table>",
            "  <thead>",
            "    <tr>",
            *nested(header, 6),
            "    </tr>",
            "  </thead>",
            "  <tbody>",
            f'    <tr v-for="row in {source}" :key="row.{key}">',
            *nested(cells, 6),
            "    </tr>",
            "  </tbody>",
            "</table>",
        ]
    )


ACTION_LIST = PatternDefinition(
    id="action_list",
    required_fields=frozenset({"data_source", "key_field"}),
    semantic_keywords=frozenset({"menu", "navigation", "actions", "buttons"}),
    render=render_action_list,
    style=LIST_STYLE,
)

DATA_TABLE = PatternDefinition(
    id="data_table",
    required_fields=frozenset({"data_source", "columns"}),
    semantic_keywords=frozenset({"table", "grid", "data", "rows", "columns"}),
    render=render_data_table,
    style=TABLE_STYLE,
)
