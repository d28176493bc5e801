# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────
# The request models only describe SHAPE: strict JSON types, no unknown
# fields, and the documented defaults for every absent field. Bounds depend
# on runtime settings and are checked by RequestValidator.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr

if TYPE_CHECKING:
    from asciimap.services.generator import GenerateResult

_REQUEST_CONFIG = ConfigDict(extra="forbid")


class MarkerRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    enabled: StrictBool = False
    lon: StrictFloat = 0.0
    lat: StrictFloat = 0.0
    center: StrictStr = "O"
    horizontal: StrictStr = "-"
    vertical: StrictStr = "|"
    arm_x: StrictInt = -1
    arm_y: StrictInt = -1


class ColorRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    mode: StrictStr = "always"
    map_color: StrictStr = "green"
    frame_color: StrictStr = "bright-white"
    marker_color: StrictStr = "bright-red"


class GenerateRequest(BaseModel):
    """Incoming map-generation request. Partial payloads decode over defaults."""

    model_config = _REQUEST_CONFIG

    width: StrictInt = 120
    supersample: StrictInt = 3
    char_aspect: StrictFloat = 2.0
    margin: StrictInt = 2
    frame: StrictBool = True
    marker: MarkerRequest = Field(default_factory=MarkerRequest)
    color: ColorRequest = Field(default_factory=ColorRequest)


class GenerateMeta(BaseModel):
    width: int
    height: int
    supersample: int
    char_aspect: float
    duration_ms: int = Field(..., ge=0)
    bytes: int = Field(..., ge=0)


class GenerateResponse(BaseModel):
    """Rendered map in plain and ANSI-colored form plus derived metadata."""

    plain: str
    ansi: str = Field(..., description="Equal to plain when color.mode is never")
    meta: GenerateMeta

    @classmethod
    def from_result(cls, result: GenerateResult) -> GenerateResponse:
        meta = result.meta
        return cls(
            plain=result.plain,
            ansi=result.ansi,
            meta=GenerateMeta(
                width=meta.width,
                height=meta.height,
                supersample=meta.supersample,
                char_aspect=meta.char_aspect,
                duration_ms=meta.duration_ms,
                bytes=meta.bytes,
            ),
        )


class HealthResponse(BaseModel):
    """Liveness probe — minimal, near-zero cost."""

    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
