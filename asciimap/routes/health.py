# ─────────────────────────────────────────────────────────────────────────────
# Health + Metrics Routes
# ─────────────────────────────────────────────────────────────────────────────
#   /api/healthz  → Liveness probe. GET only, near-zero cost, always 200.
#   /api/metrics  → Generation counters and render latency percentiles.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

from fastapi import APIRouter, Depends

from asciimap.dependencies import get_metrics, get_rate_limiter
from asciimap.rate_limit import FixedWindowLimiter
from asciimap.schemas import HealthResponse
from asciimap.services.metrics import GenerationMetrics

router = APIRouter(prefix="/api")


@router.get("/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    """Liveness probe — no deps, no I/O."""
    return HealthResponse(status="ok")


@router.get("/metrics")
async def metrics_endpoint(
    metrics: GenerationMetrics = Depends(get_metrics),
    rate_limiter: FixedWindowLimiter = Depends(get_rate_limiter),
) -> dict[str, Any]:
    return {**metrics.to_dict(), "rate_limit_buckets": len(rate_limiter)}
