# ─────────────────────────────────────────────────────────────────────────────
# POST /api/generate — map generation endpoint (THIN)
# ─────────────────────────────────────────────────────────────────────────────
# rate limit → capped body read → validate → render (thread pool) → respond.
# Rejections happen before any decoding or rendering work.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from asciimap.config import Settings, get_settings
from asciimap.dependencies import (
    get_orchestrator,
    get_rate_limiter,
    get_settings_dep,
    get_validator,
)
from asciimap.exceptions import MalformedPayloadError, RateLimitedError
from asciimap.rate_limit import FixedWindowLimiter, client_key, limiter
from asciimap.schemas import ErrorResponse, GenerateResponse
from asciimap.services.generator import GenerationOrchestrator
from asciimap.services.validator import RequestValidator

router = APIRouter(prefix="/api")


def _http_rate_limit() -> str:
    return get_settings().http_rate_limit


async def read_capped_body(request: Request, max_bytes: int) -> bytes:
    """Read the request body, rejecting it once it exceeds max_bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise MalformedPayloadError("request body too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise MalformedPayloadError("request body too large")
    return bytes(body)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
# Coarse per-IP DoS gate; the fixed-window limiter below is the real budget.
@limiter.limit(_http_rate_limit)
async def generate(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
    rate_limiter: FixedWindowLimiter = Depends(get_rate_limiter),
    validator: RequestValidator = Depends(get_validator),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerateResponse:
    """Render an ASCII world map in plain and ANSI-colored form.

    Errors are exceptions, mapped to {"error": ...} by the registered
    handlers. Rendering is blocking and runs in the thread pool.
    """
    key = client_key(request)
    if not rate_limiter.allow(key):
        raise RateLimitedError(retry_after_seconds=rate_limiter.retry_after(key))

    raw = await read_capped_body(request, settings.max_body_bytes)
    config = validator.validate(raw)
    result = await run_in_threadpool(orchestrator.generate, config)
    return GenerateResponse.from_result(result)
