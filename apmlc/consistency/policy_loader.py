"""Load the consistency rename table from YAML."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from apmlc.consistency.models import ConsistencyPolicy


def load_policy(path: Path | None = None) -> ConsistencyPolicy:
    """Load and validate the rename table."""

    policy_path = path or Path(__file__).with_name("policy.yaml")

    try:
        raw = yaml.safe_load(policy_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Policy file not found: {policy_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in policy file: {policy_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Policy file must contain a mapping: {policy_path}")

    try:
        policy = ConsistencyPolicy.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid policy schema: {policy_path}") from exc

    _check_targets(policy, policy_path)
    return policy


@lru_cache(maxsize=1)
def default_policy() -> ConsistencyPolicy:
    return load_policy()


def _check_targets(policy: ConsistencyPolicy, policy_path: Path) -> None:
    # A target that is itself an alias would be rewritten again on a second pass.
    for alias, target in policy.identifier_aliases.items():
        if not target or target in policy.identifier_aliases:
            raise ValueError(f"Invalid identifier alias '{alias}' -> '{target}' in {policy_path}")
    for alias, target in policy.class_aliases.items():
        tokens = target.split()
        if not tokens or any(token in policy.class_aliases for token in tokens):
            raise ValueError(f"Invalid class alias '{alias}' -> '{target}' in {policy_path}")
