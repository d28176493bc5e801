# FastAPI application factory with lifespan management.
# Entrypoint: asciimap-server  (or: uvicorn asciimap.main:create_app --factory)

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from asciimap.config import get_settings, parse_listen_addr
from asciimap.exceptions import register_exception_handlers
from asciimap.logging_config import configure_logging
from asciimap.middleware import RequestContextMiddleware
from asciimap.rate_limit import FixedWindowLimiter, limiter
from asciimap.render.landmask import LandMaskRenderer, load_land_mask
from asciimap.routes import generate, health
from asciimap.routes import prometheus as prometheus_routes
from asciimap.services.generator import GenerationOrchestrator
from asciimap.services.metrics import GenerationMetrics
from asciimap.services.validator import RequestValidator, ValidationLimits

logger = structlog.get_logger(__name__)


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Outer slowapi gate tripped. Same body shape as every other error."""
    logger.warning(
        "http_rate_limit_exceeded",
        path=request.url.path,
        method=request.method,
        detail=str(exc.detail),
    )
    return JSONResponse(status_code=429, content={"error": "rate limit exceeded"})


if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider


def _configure_otel(exporter_type: str) -> "TracerProvider | None":
    """Configure OpenTelemetry tracing (console exporter only)."""
    if exporter_type != "console":
        logger.warning("unknown_otel_exporter", exporter=exporter_type)
        return None

    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter_type)
    return provider


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build process-wide state. A land mask that fails to load aborts startup."""
    settings = get_settings()

    otel_provider = None
    otel_exporter = os.environ.get("OTEL_EXPORTER", "")
    if otel_exporter:
        otel_provider = _configure_otel(otel_exporter)

    try:
        mask = load_land_mask(settings)
    except Exception:
        logger.critical(
            "land_mask_load_failed", path=settings.land_mask_path or None, exc_info=True
        )
        raise

    metrics = GenerationMetrics()
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.rate_limiter = FixedWindowLimiter(
        settings.rate_limit, settings.rate_window.total_seconds()
    )
    app.state.validator = RequestValidator(ValidationLimits.from_settings(settings))
    app.state.orchestrator = GenerationOrchestrator(LandMaskRenderer(mask), metrics=metrics)

    logger.info(
        "limits_configured",
        width=f"{settings.min_width}..{settings.max_width}",
        supersample=f"{settings.min_supersample}..{settings.max_supersample}",
        char_aspect=f"{settings.min_char_aspect}..{settings.max_char_aspect}",
        max_margin=settings.max_margin,
        rate=f"{app.state.rate_limiter.limit}/{app.state.rate_limiter.window:g}s",
        max_body_bytes=settings.max_body_bytes,
    )

    yield

    if otel_provider is not None:
        otel_provider.shutdown()


def _parse_origins(allowed_origins: str) -> list[str]:
    """Parse comma-separated CORS origins. Empty string → deny all."""
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app() -> FastAPI:
    """Application factory. Invoked by: uvicorn asciimap.main:create_app --factory"""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="ASCII Map Generator API",
        description="Rate-limited ASCII world map rendering",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Middleware order (Starlette applies in reverse): CORS → RequestContext
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.allowed_origins),
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router, tags=["generate"])
    app.include_router(prometheus_routes.router, tags=["prometheus"])

    return app


def run() -> None:
    """Console entrypoint: serve on API_LISTEN_ADDR."""
    settings = get_settings()
    host, port = parse_listen_addr(settings.listen_addr)
    uvicorn.run(
        "asciimap.main:create_app",
        factory=True,
        host=host,
        port=port,
        timeout_keep_alive=settings.idle_timeout_seconds,
        proxy_headers=False,
        log_config=None,
    )


if __name__ == "__main__":
    run()
