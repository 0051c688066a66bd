from __future__ import annotations

import json

import httpx
import pytest

from apmlc.fallback.base import FallbackRequest
from apmlc.fallback.ollama import OllamaBackend, backend_from_settings
from apmlc.settings import BackendSettings
from apmlc.utils.errors import GenerationError
from apmlc.validation.models import RepairRequest


def _request() -> FallbackRequest:
    return FallbackRequest(
        prompt="Compile this APML",
        max_tokens=512,
        system_directives="be terse",
        document_text="## UI Components",
    )


def _backend(handler) -> OllamaBackend:
    return OllamaBackend(
        base_url="http://ollama.test/",
        model="qwen3:8b",
        transport=httpx.MockTransport(handler),
    )


def test_generate_posts_prompt_and_returns_response_text() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"model": "qwen3:8b", "response": "<apml-artifact>", "eval_count": 12})

    text = _backend(handler).generate(_request(), timeout=5.0)

    assert text == "<apml-artifact>"
    assert len(seen) == 1
    assert str(seen[0].url) == "http://ollama.test/api/generate"
    body = json.loads(seen[0].content)
    assert body == {
        "model": "qwen3:8b",
        "prompt": "Compile this APML",
        "system": "be terse",
        "stream": False,
        "options": {"num_predict": 512},
    }


def test_repair_uses_the_same_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["options"] == {"num_predict": 64}
        return httpx.Response(200, json={"response": "## UI Components\n"})

    text = _backend(handler).repair(
        RepairRequest(prompt="Fix these APML issues", max_tokens=64, system_directives="fix"),
        timeout=1.0,
    )

    assert text == "## UI Components\n"


def test_timeout_maps_to_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GenerationError) as exc_info:
        _backend(handler).generate(_request(), timeout=0.5)

    assert exc_info.value.reason == "timeout"


def test_http_status_maps_to_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    with pytest.raises(GenerationError) as exc_info:
        _backend(handler).generate(_request())

    assert exc_info.value.reason == "http_status"
    assert exc_info.value.detail == "500"


def test_connection_failure_maps_to_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GenerationError) as exc_info:
        _backend(handler).generate(_request())

    assert exc_info.value.reason == "transport_error"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=["response"]),
        httpx.Response(200, json={"done": True}),
        httpx.Response(200, json={"response": 42}),
    ],
)
def test_malformed_replies_map_to_generation_error(response: httpx.Response) -> None:
    with pytest.raises(GenerationError) as exc_info:
        _backend(lambda request: response).generate(_request())

    assert exc_info.value.reason == "malformed_response"


def test_backend_from_settings() -> None:
    assert backend_from_settings(BackendSettings()) is None

    backend = backend_from_settings(
        BackendSettings(backend="ollama", ollama_url="http://localhost:11434/", ollama_model="llama3")
    )

    assert isinstance(backend, OllamaBackend)
    assert backend.base_url == "http://localhost:11434"
    assert backend.model == "llama3"
