# ─────────────────────────────────────────────────────────────────────────────
# Generation Metrics — thread-safe request/outcome tracking
# ─────────────────────────────────────────────────────────────────────────────
# Renders run in the Starlette thread pool, so all mutations use a
# threading.Lock. Exposed via GET /api/metrics and /api/metrics/prometheus.
#
# Bounded: render latency history uses deque(maxlen=1000).
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any


@dataclass
class GenerationMetrics:
    """Thread-safe generation counters and render latency history."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    generations_total: int = 0
    colorized_total: int = 0
    render_failures: int = 0
    errors_by_type: Counter[str] = field(default_factory=Counter)

    _latency_history: deque[float] = field(default_factory=lambda: deque(maxlen=1000), repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)

    def record_generation(self, duration_ms: float, colorized: bool) -> None:
        """Record a successful generate call."""
        with self._lock:
            self.generations_total += 1
            if colorized:
                self.colorized_total += 1
            self._latency_history.append(duration_ms)

    def record_render_failure(self) -> None:
        with self._lock:
            self.render_failures += 1

    def record_error(self, error_type: str) -> None:
        """Count a request-terminating error by exception class name."""
        with self._lock:
            self.errors_by_type[error_type] += 1

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            latencies = sorted(self._latency_history)
            n = len(latencies)
            return {
                "generations_total": self.generations_total,
                "colorized_total": self.colorized_total,
                "render_failures": self.render_failures,
                "errors_by_type": dict(self.errors_by_type),
                "latency_p50_ms": round(latencies[n // 2], 1) if n else 0,
                "latency_p95_ms": round(latencies[int(n * 0.95)], 1) if n else 0,
                "latency_mean_ms": round(sum(latencies) / n, 1) if n else 0,
                "uptime_seconds": int(time.time() - self._start_time),
            }
