# Request validation: raw payload → GenerateConfig, or the first violation.
# Structure is decoded by the pydantic schema; bounds come from Settings.


from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from asciimap.config import Settings
from asciimap.exceptions import MalformedPayloadError, ValidationFailedError
from asciimap.render.palette import ALLOWED_COLORS, COLOR_MODES
from asciimap.render.protocol import Marker
from asciimap.schemas import GenerateRequest

logger = structlog.get_logger(__name__)

DEFAULT_CENTER = "O"
DEFAULT_HORIZONTAL = "-"
DEFAULT_VERTICAL = "|"


@dataclass(frozen=True)
class ColorConfig:
    mode: str = "always"
    map_color: str = "green"
    frame_color: str = "bright-white"
    marker_color: str = "bright-red"


@dataclass(frozen=True)
class GenerateConfig:
    """A validated, render-ready request. marker is None when disabled."""

    width: int = 120
    supersample: int = 3
    char_aspect: float = 2.0
    margin: int = 2
    frame: bool = True
    marker: Marker | None = None
    color: ColorConfig = ColorConfig()


@dataclass(frozen=True)
class ValidationLimits:
    min_width: int = 20
    max_width: int = 240
    min_supersample: int = 1
    max_supersample: int = 5
    max_margin: int = 12
    min_char_aspect: float = 1.0
    max_char_aspect: float = 3.5

    @classmethod
    def from_settings(cls, settings: Settings) -> ValidationLimits:
        return cls(
            min_width=settings.min_width,
            max_width=settings.max_width,
            min_supersample=settings.min_supersample,
            max_supersample=settings.max_supersample,
            max_margin=settings.max_margin,
            min_char_aspect=settings.min_char_aspect,
            max_char_aspect=settings.max_char_aspect,
        )


def _normalize(value: str) -> str:
    return value.strip().lower()


def parse_ascii_glyph(value: str, fallback: str, field: str) -> str:
    """Trimmed single ASCII character; empty falls back to the default glyph."""
    value = value.strip()
    if not value:
        return fallback
    if len(value) != 1:
        raise ValidationFailedError(field, f"{field} must be a single ASCII character")
    if ord(value) > 127:
        raise ValidationFailedError(field, f"{field} must be ASCII")
    return value


class RequestValidator:
    """Decodes and bounds-checks generate payloads.

    Checks run in a fixed order and stop at the first violation. The
    validator holds nothing but its limits, so the same payload always
    produces the same outcome.
    """

    def __init__(self, limits: ValidationLimits | None = None) -> None:
        self.limits = limits or ValidationLimits()

    def decode(self, raw: bytes | str | Mapping[str, Any]) -> GenerateRequest:
        """Structural decode over defaults. Unknown fields and trailing data are malformed."""
        try:
            if isinstance(raw, (bytes, bytearray, str)):
                return GenerateRequest.model_validate_json(raw)
            return GenerateRequest.model_validate(raw)
        except ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            reason = f"{location}: {first['msg']}" if location else first["msg"]
            raise MalformedPayloadError(reason) from exc

    def validate(self, raw: bytes | str | Mapping[str, Any]) -> GenerateConfig:
        request = self.decode(raw)
        try:
            return self._check(request)
        except ValidationFailedError as exc:
            logger.info("validation_failed", field=exc.field, error=exc.message)
            raise

    def _check(self, req: GenerateRequest) -> GenerateConfig:
        lim = self.limits

        if not lim.min_width <= req.width <= lim.max_width:
            raise ValidationFailedError(
                "width", f"width must be between {lim.min_width} and {lim.max_width}"
            )
        if not lim.min_supersample <= req.supersample <= lim.max_supersample:
            raise ValidationFailedError(
                "supersample",
                f"supersample must be between {lim.min_supersample} and {lim.max_supersample}",
            )
        if not 0 <= req.margin <= lim.max_margin:
            raise ValidationFailedError("margin", f"margin must be between 0 and {lim.max_margin}")
        if not (
            math.isfinite(req.char_aspect)
            and lim.min_char_aspect <= req.char_aspect <= lim.max_char_aspect
        ):
            raise ValidationFailedError(
                "char_aspect",
                f"char_aspect must be between {lim.min_char_aspect:.1f} and {lim.max_char_aspect:.1f}",
            )

        color = ColorConfig(
            mode=_normalize(req.color.mode),
            map_color=_normalize(req.color.map_color),
            frame_color=_normalize(req.color.frame_color),
            marker_color=_normalize(req.color.marker_color),
        )
        if color.mode not in COLOR_MODES:
            raise ValidationFailedError("color.mode", "color.mode must be one of: never, always")
        for field in ("map_color", "frame_color", "marker_color"):
            if getattr(color, field) not in ALLOWED_COLORS:
                raise ValidationFailedError(
                    f"color.{field}", f"color.{field} is not a supported ANSI 16 color"
                )

        return GenerateConfig(
            width=req.width,
            supersample=req.supersample,
            char_aspect=req.char_aspect,
            margin=req.margin,
            frame=req.frame,
            marker=self._check_marker(req) if req.marker.enabled else None,
            color=color,
        )

    def _check_marker(self, req: GenerateRequest) -> Marker:
        m = req.marker
        if not (math.isfinite(m.lon) and -180.0 <= m.lon <= 180.0):
            raise ValidationFailedError("marker.lon", "marker.lon must be between -180 and 180")
        if not (math.isfinite(m.lat) and -90.0 <= m.lat <= 90.0):
            raise ValidationFailedError("marker.lat", "marker.lat must be between -90 and 90")
        if m.arm_x < -1 or m.arm_y < -1:
            raise ValidationFailedError("marker.arm", "marker arm lengths must be -1 or greater")

        return Marker(
            lon=m.lon,
            lat=m.lat,
            center=parse_ascii_glyph(m.center, DEFAULT_CENTER, "marker.center"),
            horizontal=parse_ascii_glyph(m.horizontal, DEFAULT_HORIZONTAL, "marker.horizontal"),
            vertical=parse_ascii_glyph(m.vertical, DEFAULT_VERTICAL, "marker.vertical"),
            arm_x=m.arm_x,
            arm_y=m.arm_y,
        )
