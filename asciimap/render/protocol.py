# ─────────────────────────────────────────────────────────────────────────────
# Renderer Protocol — the boundary to the ASCII map rendering engine
# ─────────────────────────────────────────────────────────────────────────────
# The orchestrator only ever talks to a Renderer. The land mask is bound
# inside the renderer and is read-only, so one instance serves every
# concurrent request.
# ─────────────────────────────────────────────────────────────────────────────

import math
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


class RenderError(Exception):
    """Raised by a renderer that rejects its inputs."""


@dataclass(frozen=True)
class Marker:
    """A point drawn on the map with a center glyph and two arms.

    An arm length of -1 means "renderer default" (the full row / column).
    """

    lon: float
    lat: float
    center: str = "O"
    horizontal: str = "-"
    vertical: str = "|"
    arm_x: int = -1
    arm_y: int = -1


@dataclass(frozen=True)
class RenderOptions:
    margin_rows: int = 0
    frame: bool = False
    color_mode: str = "never"
    map_color: str = ""
    frame_color: str = ""
    marker_color: str = ""


@runtime_checkable
class Renderer(Protocol):
    """Projects the land mask (and optional marker) into a character grid."""

    def render(
        self,
        width: int,
        supersample: int,
        char_aspect: float,
        marker: Marker | None,
        options: RenderOptions,
    ) -> str: ...


def derive_height(width: int, char_aspect: float) -> int:
    """Map rows for a given width: width / (2 × char_aspect), halves rounded away from zero."""
    value = width / (2.0 * char_aspect)
    return int(math.copysign(math.floor(abs(value) + 0.5), value))
