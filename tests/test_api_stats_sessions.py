from __future__ import annotations

import httpx
import pytest

from apmlc.render.models import CompilationArtifact, CompilationMetrics
from apps.api.main import app
from apps.api.sessions import SessionArtifactCache
from apps.api.stats import CompileStats

LOGIN_APML = '## UI Components\nlogin_form: { type: "form_input", action: "submitLogin" }\n'


def _artifact(title: str) -> CompilationArtifact:
    return CompilationArtifact(
        title=title,
        markup="<div></div>",
        script="",
        style="",
        degraded=False,
        strategy_used="automatic",
    )


def _metrics(**overrides: object) -> CompilationMetrics:
    values: dict[str, object] = {
        "duration_ms": 10,
        "strategy": "automatic",
        "rule_fragment_count": 1,
        "fallback_fragment_count": 0,
        "placeholder_count": 0,
        "fallback_called": False,
        "repair_attempted": False,
        "normalized": True,
    }
    values.update(overrides)
    return CompilationMetrics.model_validate(values)


def test_stats_aggregate_per_call_metrics() -> None:
    stats = CompileStats()

    stats.record(_metrics(), degraded=False)
    stats.record(
        _metrics(duration_ms=30, strategy="hybrid", fallback_called=True, repair_attempted=True, normalized=False),
        degraded=True,
    )
    stats.record_failure("PARSE_ERROR")

    assert stats.snapshot() == {
        "compiles": 2,
        "degraded": 1,
        "fallback_calls": 1,
        "repair_attempts": 1,
        "normalization_skipped": 1,
        "average_duration_ms": 20.0,
        "strategies": {"automatic": 1, "hybrid": 1},
        "failures": {"PARSE_ERROR": 1},
    }


def test_empty_stats_snapshot() -> None:
    snapshot = CompileStats().snapshot()

    assert snapshot["compiles"] == 0
    assert snapshot["average_duration_ms"] == 0.0


def test_session_cache_evicts_oldest_session() -> None:
    cache = SessionArtifactCache(max_sessions=2)

    cache.put("a", _artifact("a1"))
    cache.put("b", _artifact("b1"))
    cache.put("a", _artifact("a2"))
    cache.put("c", _artifact("c1"))

    assert len(cache) == 2
    assert cache.get("b") is None
    assert cache.get("a") == _artifact("a2")
    assert cache.get("c") == _artifact("c1")


def test_session_cache_requires_positive_size() -> None:
    with pytest.raises(ValueError, match="max_sessions"):
        SessionArtifactCache(max_sessions=0)


@pytest.mark.anyio
async def test_compile_with_session_is_retrievable_and_counted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("apps.api.main._stats", CompileStats())
    monkeypatch.setattr("apps.api.main._sessions", SessionArtifactCache(max_sessions=4))
    monkeypatch.setattr("apps.api.main._build_backend", lambda: None)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        compiled = await client.post("/v1/compile", json={"apml": LOGIN_APML, "session_id": "user-1"})
        cached = await client.get("/v1/sessions/user-1/artifact")
        missing = await client.get("/v1/sessions/nobody/artifact")
        await client.post("/v1/compile", json={"apml": "   "})
        stats = await client.get("/v1/stats")

    assert compiled.status_code == 200
    assert cached.status_code == 200
    assert cached.json() == {"session_id": "user-1", "artifact": compiled.json()["artifact"]}
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "SESSION_NOT_FOUND"
    payload = stats.json()
    assert payload["compiles"] == 1
    assert payload["strategies"] == {"automatic": 1}
    assert payload["failures"] == {"INVALID_ARGUMENT": 1}
    assert payload["sessions"] == 1
