"""HTTP client for an Ollama ``/api/generate`` endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from apmlc.fallback.base import FallbackRequest
from apmlc.settings import BackendSettings
from apmlc.utils.errors import GenerationError
from apmlc.utils.logs import log_event
from apmlc.validation.models import RepairRequest

logger = logging.getLogger("apmlc.compiler")

_DEFAULT_TIMEOUT_SECONDS = 60.0


class OllamaBackend:
    """Serves both the generative fallback and the repair capability."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> OllamaBackend:
        return cls(base_url=settings.ollama_url, model=settings.ollama_model)

    def generate(self, request: FallbackRequest, *, timeout: float | None = None) -> str:
        return self._call_generate(
            prompt=request.prompt,
            system=request.system_directives,
            max_tokens=request.max_tokens,
            timeout=timeout,
        )

    def repair(self, request: RepairRequest, *, timeout: float | None = None) -> str:
        return self._call_generate(
            prompt=request.prompt,
            system=request.system_directives,
            max_tokens=request.max_tokens,
            timeout=timeout,
        )

    def _call_generate(self, *, prompt: str, system: str, max_tokens: int, timeout: float | None) -> str:
        body = {
            "model": self.model,
            "prompt": prompt,
            "system": system,
            "stream": False,
            "options": {"num_predict": max_tokens},
        }
        effective_timeout = timeout if timeout is not None else _DEFAULT_TIMEOUT_SECONDS
        try:
            with httpx.Client(timeout=effective_timeout, transport=self._transport) as client:
                response = client.post(f"{self.base_url}/api/generate", json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as exc:
            raise GenerationError("timeout", detail=f"no reply within {effective_timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise GenerationError("http_status", detail=str(exc.response.status_code)) from exc
        except httpx.HTTPError as exc:
            raise GenerationError("transport_error", detail=str(exc)) from exc
        except ValueError as exc:
            raise GenerationError("malformed_response", detail="body is not JSON") from exc

        text = _response_text(payload)
        log_event(
            logger,
            logging.INFO,
            "backend_reply",
            model=self.model,
            eval_count=payload.get("eval_count"),
            prompt_eval_count=payload.get("prompt_eval_count"),
        )
        return text


def _response_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise GenerationError("malformed_response", detail="body is not an object")
    text = payload.get("response")
    if not isinstance(text, str):
        raise GenerationError("malformed_response", detail="missing 'response' text")
    return text


def backend_from_settings(settings: BackendSettings) -> OllamaBackend | None:
    """Return the configured backend, or ``None`` when generation is disabled."""

    if settings.backend == "ollama":
        return OllamaBackend.from_settings(settings)
    return None
