# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────
# Every failure is terminal for its request and renders as {"error": "..."}.
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class AsciiMapError(Exception):
    """Base exception for all request-terminating service errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MalformedPayloadError(AsciiMapError):
    """Body is not a single JSON object matching the request shape."""

    def __init__(self, reason: str):
        super().__init__(f"invalid JSON payload: {reason}", status_code=400)


class ValidationFailedError(AsciiMapError):
    """A field is out of bounds or unsupported. Carries the first violation only."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, status_code=400)


class RateLimitedError(AsciiMapError):
    """Client exhausted its fixed-window budget.

    The exception handler adds retry_after_seconds as a Retry-After header.
    """

    def __init__(self, retry_after_seconds: float = 1.0):
        self.retry_after_seconds = retry_after_seconds
        super().__init__("rate limit exceeded", status_code=429)


class RenderFailedError(AsciiMapError):
    """The rendering engine rejected otherwise-valid parameters."""

    def __init__(self, variant: str, reason: str):
        self.variant = variant
        self.reason = reason
        super().__init__(f"render {variant} output failed: {reason}", status_code=400)


# ── Handler registration ────────────────────────────────────────────────────


def _record_error(request: Request, exc: AsciiMapError) -> None:
    metrics = getattr(request.app.state, "metrics", None)
    if metrics is not None:
        metrics.record_error(type(exc).__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise AsciiMapError subclasses; these handlers catch them
    and return structured JSON -- no inline try/except in endpoints.
    """

    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
        """429 with Retry-After header."""
        _record_error(request, exc)
        retry_after = max(1, int(exc.retry_after_seconds))
        logger.warning("rate_limited", path=request.url.path, retry_after=retry_after)
        return JSONResponse(
            status_code=429,
            content={"error": exc.message},
            headers={"Retry-After": str(retry_after)},
        )

    @app.exception_handler(AsciiMapError)
    async def asciimap_error_handler(request: Request, exc: AsciiMapError) -> JSONResponse:
        _record_error(request, exc)
        logger.info(
            "request_rejected",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else "request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": detail.lower()},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error=str(exc), exc_info=True)
        return JSONResponse(status_code=500, content={"error": "internal server error"})
