# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# No global variables. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from asciimap.config import Settings
from asciimap.rate_limit import FixedWindowLimiter
from asciimap.services.generator import GenerationOrchestrator
from asciimap.services.metrics import GenerationMetrics
from asciimap.services.validator import RequestValidator


def get_settings_dep(request: Request) -> Settings:
    """Inject Settings into endpoints via Depends()."""
    return request.app.state.settings  # type: ignore[no-any-return]


def get_rate_limiter(request: Request) -> FixedWindowLimiter:
    """Inject the process-wide FixedWindowLimiter."""
    return request.app.state.rate_limiter  # type: ignore[no-any-return]


def get_validator(request: Request) -> RequestValidator:
    return request.app.state.validator  # type: ignore[no-any-return]


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """Inject GenerationOrchestrator into endpoints via Depends()."""
    return request.app.state.orchestrator  # type: ignore[no-any-return]


def get_metrics(request: Request) -> GenerationMetrics:
    return request.app.state.metrics  # type: ignore[no-any-return]
