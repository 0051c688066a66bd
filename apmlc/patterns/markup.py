"""Shared helpers for turning component values into markup text."""

from __future__ import annotations

import html
import re

from apmlc.document.models import ComponentConfig, Value

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def as_text(value: Value | None, default: str = "") -> str:
    """Render any value as display text without raising."""

    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value if value.strip() else default
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        joined = ", ".join(as_text(item) for item in value)
        return joined or default
    if isinstance(value, dict):
        joined = ", ".join(f"{key}: {as_text(item)}" for key, item in value.items())
        return joined or default
    return default


def esc(value: Value | None, default: str = "") -> str:
    """HTML-escape a value for element text or attribute use."""

    return html.escape(as_text(value, default), quote=True)


def prop(component: ComponentConfig, key: str, default: str = "") -> str:
    """Escaped string form of a component property."""

    return esc(component.properties.get(key), default)


def items(value: Value | None) -> list[dict[str, Value]]:
    """Normalize a list-ish property into a list of maps.

    Scalars become ``{"text": scalar}``; a single map becomes a one-item list.
    """

    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, list):
        return [{"text": value}] if as_text(value) else []
    normalized: list[dict[str, Value]] = []
    for item in value:
        if isinstance(item, dict):
            normalized.append(item)
        elif as_text(item):
            normalized.append({"text": item})
    return normalized


def mapping(value: Value | None) -> dict[str, Value]:
    return value if isinstance(value, dict) else {}


def slug(value: Value | None, default: str = "item") -> str:
    text = _SLUG_RE.sub("_", as_text(value).lower()).strip("_")
    return text or default


def nested(lines: list[str], indent: int = 2) -> list[str]:
    pad = " " * indent
    return [f"{pad}{line}" for line in lines]


def render_elements(elements: list[dict[str, Value]]) -> list[str]:
    """Render generic ``elements`` lists (headings, buttons, text)."""

    rendered: list[str] = []
    for element in elements:
        kind = as_text(element.get("type"), "text")
        if kind == "heading":
            level = element.get("level")
            level_number = level if isinstance(level, int) and 1 <= level <= 6 else 2
            rendered.append(f"<h{level_number}>{esc(element.get('text'))}</h{level_number}>")
        elif kind == "button":
            action = esc(element.get("action"))
            click = f' @click="{action}"' if action else ""
            rendered.append(f"<button type=\"button\"{click}>{esc(element.get('text'), 'Continue')}</button>")
        elif kind == "text":
            rendered.append(f"<p>{esc(element.get('content') or element.get('text'))}</p>")
        else:
            rendered.append(f"<div>{esc(element.get('text') or element.get('content'))}</div>")
    return rendered
