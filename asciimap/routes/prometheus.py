# ─────────────────────────────────────────────────────────────────────────────
# Prometheus Metrics Endpoint — text exposition format
# ─────────────────────────────────────────────────────────────────────────────
# GET /api/metrics/prometheus → text/plain Prometheus format
# Bridges GenerationMetrics → prometheus-client gauges.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CollectorRegistry, Gauge, generate_latest

from asciimap.dependencies import get_metrics, get_rate_limiter
from asciimap.rate_limit import FixedWindowLimiter
from asciimap.services.metrics import GenerationMetrics

router = APIRouter(prefix="/api")

# ── Prometheus metrics (custom registry to avoid default process metrics) ─────

_registry = CollectorRegistry()

_generations_total = Gauge(
    "asciimap_generations_total",
    "Successful generate calls",
    ["colorized"],
    registry=_registry,
)

_render_failures_total = Gauge(
    "asciimap_render_failures_total",
    "Renderer invocations that raised",
    registry=_registry,
)

_errors_total = Gauge(
    "asciimap_errors_total",
    "Request-terminating errors by type",
    ["error_type"],
    registry=_registry,
)

_render_latency_ms = Gauge(
    "asciimap_render_latency_ms",
    "Render latency percentiles over the recent window",
    ["quantile"],
    registry=_registry,
)

_rate_limit_buckets = Gauge(
    "asciimap_rate_limit_buckets",
    "Client keys currently tracked by the fixed-window limiter",
    registry=_registry,
)


def _sync_metrics(metrics: GenerationMetrics, rate_limiter: FixedWindowLimiter) -> None:
    """Sync GenerationMetrics data into Prometheus gauges."""
    data = metrics.to_dict()

    _generations_total.labels(colorized="true").set(data["colorized_total"])
    _generations_total.labels(colorized="false").set(
        data["generations_total"] - data["colorized_total"]
    )
    _render_failures_total.set(data["render_failures"])
    for error_type, count in data["errors_by_type"].items():
        _errors_total.labels(error_type=error_type).set(count)
    _render_latency_ms.labels(quantile="0.5").set(data["latency_p50_ms"])
    _render_latency_ms.labels(quantile="0.95").set(data["latency_p95_ms"])
    _rate_limit_buckets.set(len(rate_limiter))


@router.get("/metrics/prometheus")
async def prometheus_metrics(
    metrics: GenerationMetrics = Depends(get_metrics),
    rate_limiter: FixedWindowLimiter = Depends(get_rate_limiter),
) -> Response:
    """Prometheus text exposition format metrics endpoint."""
    _sync_metrics(metrics, rate_limiter)
    return Response(
        content=generate_latest(_registry),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
