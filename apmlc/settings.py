"""Environment-driven settings for the compiler and its generative backends."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

BackendName = Literal["none", "ollama"]

_DEFAULT_FALLBACK_TIMEOUT_SECONDS = 60.0
_DEFAULT_REPAIR_TIMEOUT_SECONDS = 30.0
_DEFAULT_FALLBACK_MAX_TOKENS = 4000
_DEFAULT_REPAIR_MAX_TOKENS = 2000
_DEFAULT_MAX_DOCUMENT_CONTEXT_CHARS = 12000
_DEFAULT_MAX_FRAGMENT_CONTEXT_CHARS = 4000
_DEFAULT_OLLAMA_URL = "http://127.0.0.1:11434"
_DEFAULT_OLLAMA_MODEL = "qwen3:8b"


@dataclass(frozen=True)
class CompilerSettings:
    """Per-compiler limits; read once and passed down explicitly."""

    fallback_timeout_seconds: float = _DEFAULT_FALLBACK_TIMEOUT_SECONDS
    repair_timeout_seconds: float = _DEFAULT_REPAIR_TIMEOUT_SECONDS
    fallback_max_tokens: int = _DEFAULT_FALLBACK_MAX_TOKENS
    repair_max_tokens: int = _DEFAULT_REPAIR_MAX_TOKENS
    max_document_context_chars: int = _DEFAULT_MAX_DOCUMENT_CONTEXT_CHARS
    max_fragment_context_chars: int = _DEFAULT_MAX_FRAGMENT_CONTEXT_CHARS

    @classmethod
    def from_env(cls) -> CompilerSettings:
        return cls(
            fallback_timeout_seconds=_env_float(
                "APMLC_FALLBACK_TIMEOUT_SECONDS", _DEFAULT_FALLBACK_TIMEOUT_SECONDS
            ),
            repair_timeout_seconds=_env_float(
                "APMLC_REPAIR_TIMEOUT_SECONDS", _DEFAULT_REPAIR_TIMEOUT_SECONDS
            ),
            fallback_max_tokens=_env_int("APMLC_FALLBACK_MAX_TOKENS", _DEFAULT_FALLBACK_MAX_TOKENS),
            repair_max_tokens=_env_int("APMLC_REPAIR_MAX_TOKENS", _DEFAULT_REPAIR_MAX_TOKENS),
            max_document_context_chars=_env_int(
                "APMLC_MAX_DOCUMENT_CONTEXT_CHARS", _DEFAULT_MAX_DOCUMENT_CONTEXT_CHARS
            ),
            max_fragment_context_chars=_env_int(
                "APMLC_MAX_FRAGMENT_CONTEXT_CHARS", _DEFAULT_MAX_FRAGMENT_CONTEXT_CHARS
            ),
        )


@dataclass(frozen=True)
class BackendSettings:
    """Selection and endpoint of the generative backend."""

    backend: BackendName = "none"
    ollama_url: str = _DEFAULT_OLLAMA_URL
    ollama_model: str = _DEFAULT_OLLAMA_MODEL

    @classmethod
    def from_env(cls) -> BackendSettings:
        raw_backend = os.getenv("APMLC_FALLBACK_BACKEND", "none").strip().lower()
        backend: BackendName = "ollama" if raw_backend == "ollama" else "none"
        return cls(
            backend=backend,
            ollama_url=os.getenv("APMLC_OLLAMA_URL", _DEFAULT_OLLAMA_URL).strip() or _DEFAULT_OLLAMA_URL,
            ollama_model=os.getenv("APMLC_OLLAMA_MODEL", _DEFAULT_OLLAMA_MODEL).strip()
            or _DEFAULT_OLLAMA_MODEL,
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default
