"""Process-wide compile statistics aggregated from per-call metrics."""

from __future__ import annotations

import threading
from collections import Counter

from apmlc.render.models import CompilationMetrics


class CompileStats:
    """Thread-safe counters; the compiler core itself keeps no counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._compiles = 0
        self._degraded = 0
        self._fallback_calls = 0
        self._repair_attempts = 0
        self._normalization_skipped = 0
        self._total_duration_ms = 0
        self._strategies: Counter[str] = Counter()
        self._failures: Counter[str] = Counter()

    def record(self, metrics: CompilationMetrics, *, degraded: bool) -> None:
        with self._lock:
            self._compiles += 1
            self._strategies[metrics.strategy] += 1
            self._total_duration_ms += metrics.duration_ms
            if degraded:
                self._degraded += 1
            if metrics.fallback_called:
                self._fallback_calls += 1
            if metrics.repair_attempted:
                self._repair_attempts += 1
            if not metrics.normalized:
                self._normalization_skipped += 1

    def record_failure(self, error_code: str) -> None:
        with self._lock:
            self._failures[error_code] += 1

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            average = self._total_duration_ms / self._compiles if self._compiles else 0.0
            return {
                "compiles": self._compiles,
                "degraded": self._degraded,
                "fallback_calls": self._fallback_calls,
                "repair_attempts": self._repair_attempts,
                "normalization_skipped": self._normalization_skipped,
                "average_duration_ms": round(average, 2),
                "strategies": dict(sorted(self._strategies.items())),
                "failures": dict(sorted(self._failures.items())),
            }
