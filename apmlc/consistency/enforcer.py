"""Final normalization pass over an assembled artifact."""

from __future__ import annotations

import re

from apmlc.consistency.models import ConsistencyPolicy
from apmlc.consistency.policy_loader import default_policy
from apmlc.render.models import CompilationArtifact
from apmlc.utils.errors import ConsistencyError

_RUNTIME_RE = re.compile(r"vue@[\w.\-]+")
_RUNTIME_HEADER_RE = re.compile(r"^[ \t]*/\*\s*runtime:[^*]*\*/[ \t]*\n?", re.MULTILINE)
_SCRIPT_KEY_RE = re.compile(r"^\s*(?:async\s+)?([A-Za-z_$][\w$]*)\s*[:(]", re.MULTILINE)
_CLASS_ATTR_RE = re.compile(r'(?<![\w:.-])(class\s*=\s*")([^"]*)(")')
_BINDING_ATTR_RE = re.compile(r'(?<![\w:.-])((?:@|:|v-)[\w.:\-\[\]]*\s*=\s*")([^"]*)(")')
_INTERPOLATION_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_JS_LITERAL = r"'(?:\\.|[^'\\\n])*'|\"(?:\\.|[^\"\\\n])*\"|`(?:\\.|[^`\\])*`"
_JS_COMMENT = r"//[^\n]*|/\*.*?\*/"


def normalize(artifact: CompilationArtifact, policy: ConsistencyPolicy | None = None) -> CompilationArtifact:
    """Return ``artifact`` with canonical names; applying it twice changes nothing.

    Raises:
        ConsistencyError: an alias and its canonical name are both declared as
            script keys, so renaming would merge two distinct members.
    """

    policy = policy or default_policy()
    _check_conflicts(artifact.script, policy)

    rename = _identifier_renamer(policy)
    markup = _rewrite_class_attributes(_rename_markup_bindings(artifact.markup, rename), policy)
    script = _with_runtime_header(rename(artifact.script), policy.runtime_marker)
    style = _rewrite_selectors(artifact.style, policy)

    return artifact.model_copy(
        update={
            "markup": _RUNTIME_RE.sub(policy.runtime_marker, markup),
            "script": script,
            "style": _RUNTIME_RE.sub(policy.runtime_marker, style),
        }
    )


def declared_script_keys(script: str) -> set[str]:
    return set(_SCRIPT_KEY_RE.findall(script))


def _check_conflicts(script: str, policy: ConsistencyPolicy) -> None:
    keys = declared_script_keys(script)
    conflicts = [
        (alias, target)
        for alias, target in policy.identifier_aliases.items()
        if alias in keys and target in keys
    ]
    if conflicts:
        listed = ", ".join(f"{alias}/{target}" for alias, target in conflicts)
        raise ConsistencyError(f"Aliased names declared next to their canonical names: {listed}", conflicts=conflicts)


def _identifier_renamer(policy: ConsistencyPolicy):
    aliases = policy.identifier_aliases
    if not aliases:
        return lambda text: text
    alternation = "|".join(re.escape(alias) for alias in sorted(aliases, key=len, reverse=True))
    pattern = re.compile(rf"(?P<skip>{_JS_LITERAL}|{_JS_COMMENT})|(?<![\w$])(?P<name>{alternation})(?![\w$])", re.DOTALL)

    def _replace(match: re.Match[str]) -> str:
        name = match.group("name")
        return aliases[name] if name is not None else match.group(0)

    return lambda code: pattern.sub(_replace, code)


def _rename_markup_bindings(markup: str, rename) -> str:
    """Rename inside directive values and ``{{ }}`` only; plain attributes and text stay."""

    markup = _BINDING_ATTR_RE.sub(lambda match: f"{match.group(1)}{rename(match.group(2))}{match.group(3)}", markup)
    return _INTERPOLATION_RE.sub(lambda match: "{{" + rename(match.group(1)) + "}}", markup)


def _rewrite_class_attributes(markup: str, policy: ConsistencyPolicy) -> str:
    if not policy.class_aliases:
        return markup

    def _replace(match: re.Match[str]) -> str:
        tokens: list[str] = []
        for token in match.group(2).split():
            for canonical in policy.class_aliases.get(token, token).split():
                if canonical not in tokens:
                    tokens.append(canonical)
        return f"{match.group(1)}{' '.join(tokens)}{match.group(3)}"

    return _CLASS_ATTR_RE.sub(_replace, markup)


def _rewrite_selectors(style: str, policy: ConsistencyPolicy) -> str:
    for alias, target in policy.class_aliases.items():
        selector = "." + ".".join(target.split())
        style = re.sub(rf"\.{re.escape(alias)}(?![\w-])", selector, style)
    return style


def _with_runtime_header(script: str, runtime_marker: str) -> str:
    body = _RUNTIME_HEADER_RE.sub("", _RUNTIME_RE.sub(runtime_marker, script)).lstrip("\n")
    return f"/* runtime: {runtime_marker} */\n{body}"
