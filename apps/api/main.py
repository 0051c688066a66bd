"""FastAPI wrapper for the APML compiler pipeline."""

from __future__ import annotations

import asyncio
import importlib.metadata
import json
import logging
import os
import re
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from apmlc.fallback.ollama import OllamaBackend, backend_from_settings
from apmlc.orchestrator.pipeline import CompilationResult, compile_apml
from apmlc.patterns.registry import DEFAULT_REGISTRY
from apmlc.render.assembler import render_html
from apmlc.settings import BackendSettings, CompilerSettings
from apmlc.utils.errors import (
    DocumentValidationError,
    ParseError,
    UnrepairableDocumentError,
    error_detail,
)
from apmlc.utils.logs import dump_json
from apps.api.sessions import SessionArtifactCache
from apps.api.stats import CompileStats

app = FastAPI(title="apml-compiler API", version="0.1.0")
logger = logging.getLogger("apmlc.api")

REQUEST_ID_HEADER = "X-Apmlc-Request-Id"

_DEFAULT_MAX_DOCUMENT_BYTES = 1024 * 1024
_DEFAULT_MAX_CONCURRENCY = 4
_DEFAULT_QUEUE_TIMEOUT_SECONDS = 10.0
_DEFAULT_SESSION_CACHE_SIZE = 128
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


class CompileRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    apml: str
    session_id: str | None = None
    include_html: bool = False


@dataclass
class _ConcurrencyLimiter:
    max_concurrency: int
    queue_timeout_seconds: float
    semaphore: threading.BoundedSemaphore


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


_limiter_lock = threading.Lock()
_limiter_cache: _ConcurrencyLimiter | None = None
_stats = CompileStats()
_sessions = SessionArtifactCache(max_sessions=_DEFAULT_SESSION_CACHE_SIZE)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/patterns")
async def patterns_v1(request: Request) -> JSONResponse:
    """Registered patterns in semantic-matching order."""

    request_id = _request_id_from_request(request)
    patterns = [
        {
            "id": pattern_id,
            "required_fields": sorted(definition.required_fields),
            "semantic_keywords": sorted(definition.semantic_keywords),
        }
        for pattern_id, definition in DEFAULT_REGISTRY.items()
    ]
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={"patterns": patterns, "version": _package_version()},
    )


@app.get("/v1/stats")
async def stats_v1(request: Request) -> JSONResponse:
    """Aggregated compile statistics for this process."""

    request_id = _request_id_from_request(request)
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={**_stats.snapshot(), "sessions": len(_sessions)},
    )


@app.get("/v1/sessions/{session_id}/artifact")
async def session_artifact_v1(request: Request, session_id: str) -> JSONResponse:
    """Last artifact compiled for a session."""

    request_id = _request_id_from_request(request)
    artifact = _sessions.get(session_id)
    if artifact is None:
        return _error_response(
            status_code=404,
            error_code="SESSION_NOT_FOUND",
            message="no artifact cached for session",
            request_id=request_id,
            detail={"session_id": session_id},
        )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={"session_id": session_id, "artifact": artifact.model_dump(mode="json")},
    )


@app.post("/v1/compile", response_model=None)
async def compile_v1(request: Request) -> JSONResponse:
    """Compile one APML document and return artifact, analysis and metrics."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "validate_inputs"
    slot_acquired = False
    limiter = _get_concurrency_limiter()

    try:
        compile_request = await _read_compile_request(request)

        failure_stage = "queue"
        slot_acquired, queue_wait_ms = await _try_acquire_concurrency_slot(limiter)
        if not slot_acquired:
            raise ApiRequestError(
                status_code=429,
                error_code="TOO_MANY_REQUESTS",
                message="server busy",
                detail={
                    "max_concurrency": limiter.max_concurrency,
                    "queue_timeout_seconds": limiter.queue_timeout_seconds,
                    "queue_wait_ms": queue_wait_ms,
                },
            )

        failure_stage = "compile"
        backend = _build_backend()
        result = await asyncio.to_thread(
            compile_apml,
            compile_request.apml,
            fallback=backend,
            repair=backend,
            settings=CompilerSettings.from_env(),
        )
    except ApiRequestError as exc:
        return _failure(exc.status_code, exc.error_code, exc.message, request_id, failure_stage, exc.detail)
    except ParseError as exc:
        return _failure(422, "PARSE_ERROR", str(exc), request_id, failure_stage, error_detail(exc))
    except UnrepairableDocumentError as exc:
        return _failure(422, "UNREPAIRABLE_DOCUMENT", str(exc), request_id, failure_stage, error_detail(exc))
    except DocumentValidationError as exc:
        return _failure(422, "VALIDATION_ERROR", str(exc), request_id, failure_stage, error_detail(exc))
    finally:
        if slot_acquired:
            limiter.semaphore.release()

    _stats.record(result.metrics, degraded=result.artifact.degraded)
    if compile_request.session_id is not None:
        _sessions.put(compile_request.session_id, result.artifact)

    _log_event(
        logging.INFO,
        "compile",
        request_id,
        status_code=200,
        strategy=result.artifact.strategy_used,
        degraded=result.artifact.degraded,
        session_id=compile_request.session_id,
        compile_ms=result.metrics.duration_ms,
        total_ms=_elapsed_ms(request_started),
    )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content=_build_api_result(result, request_id=request_id, include_html=compile_request.include_html),
    )


async def _read_compile_request(request: Request) -> CompileRequest:
    body = await request.body()
    max_bytes = _max_document_bytes()
    if len(body) > max_bytes:
        raise ApiRequestError(
            status_code=413,
            error_code="PAYLOAD_TOO_LARGE",
            message="request body too large",
            detail={"max_bytes": max_bytes},
        )
    try:
        raw = json.loads(body or b"null")
    except ValueError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request body must be JSON",
            detail={"field": "body"},
        ) from exc
    if not isinstance(raw, dict):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request body must be a JSON object",
            detail={"field": "body"},
        )
    try:
        parsed = CompileRequest.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="invalid compile request",
            detail={"field": field, "reason": first.get("msg", "")},
        ) from exc

    if not parsed.apml.strip():
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="apml must not be empty",
            detail={"field": "apml"},
        )
    if parsed.session_id is not None and not _SESSION_ID_RE.match(parsed.session_id):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="session_id must be 1-128 characters of [A-Za-z0-9_.-]",
            detail={"field": "session_id"},
        )
    return parsed


def _build_backend() -> OllamaBackend | None:
    return backend_from_settings(BackendSettings.from_env())


def _build_api_result(result: CompilationResult, *, request_id: str, include_html: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": True,
        "request_id": request_id,
        **result.model_dump(mode="json"),
    }
    if include_html:
        payload["html"] = render_html(result.artifact)
    return payload


def _failure(
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    failure_stage: str,
    detail: dict[str, Any],
) -> JSONResponse:
    _stats.record_failure(error_code)
    _log_event(
        logging.ERROR if status_code >= 500 else logging.WARNING,
        "error",
        request_id,
        error_code=error_code,
        status_code=status_code,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=status_code,
        error_code=error_code,
        message=message,
        request_id=request_id,
        detail=detail,
    )


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _max_document_bytes() -> int:
    raw = os.getenv("APMLC_MAX_DOCUMENT_BYTES")
    if raw is None:
        return _DEFAULT_MAX_DOCUMENT_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_DOCUMENT_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_DOCUMENT_BYTES


def _max_concurrency() -> int:
    raw = os.getenv("APMLC_MAX_CONCURRENCY")
    if raw is None:
        return _DEFAULT_MAX_CONCURRENCY
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_CONCURRENCY
    return parsed if parsed > 0 else _DEFAULT_MAX_CONCURRENCY


def _queue_timeout_seconds() -> float:
    raw = os.getenv("APMLC_QUEUE_TIMEOUT_SECONDS")
    if raw is None:
        return _DEFAULT_QUEUE_TIMEOUT_SECONDS
    try:
        parsed = float(raw)
    except ValueError:
        return _DEFAULT_QUEUE_TIMEOUT_SECONDS
    return parsed if parsed >= 0 else _DEFAULT_QUEUE_TIMEOUT_SECONDS


def _get_concurrency_limiter() -> _ConcurrencyLimiter:
    global _limiter_cache

    max_concurrency = _max_concurrency()
    queue_timeout = _queue_timeout_seconds()

    with _limiter_lock:
        if (
            _limiter_cache is None
            or _limiter_cache.max_concurrency != max_concurrency
            or _limiter_cache.queue_timeout_seconds != queue_timeout
        ):
            _limiter_cache = _ConcurrencyLimiter(
                max_concurrency=max_concurrency,
                queue_timeout_seconds=queue_timeout,
                semaphore=threading.BoundedSemaphore(value=max_concurrency),
            )
        return _limiter_cache


async def _try_acquire_concurrency_slot(limiter: _ConcurrencyLimiter) -> tuple[bool, int]:
    waited_started = time.perf_counter()
    timeout_seconds = limiter.queue_timeout_seconds

    if timeout_seconds == 0:
        acquired_now = limiter.semaphore.acquire(blocking=False)
        return acquired_now, _elapsed_ms(waited_started)

    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        if limiter.semaphore.acquire(blocking=False):
            return True, _elapsed_ms(waited_started)
        await asyncio.sleep(0.01)

    return False, _elapsed_ms(waited_started)


def _package_version() -> str:
    try:
        return importlib.metadata.version("apml-compiler")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, dump_json(payload))
