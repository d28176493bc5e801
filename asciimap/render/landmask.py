# ─────────────────────────────────────────────────────────────────────────────
# Land-Mask Renderer — equirectangular ASCII world map
# ─────────────────────────────────────────────────────────────────────────────
# LandMask holds a read-only boolean grid (row 0 = 90°N, column 0 = 180°W).
# LandMaskRenderer samples it supersample × supersample times per character
# cell and picks a glyph by land coverage, then draws the marker, margins,
# frame, and (optionally) ANSI colors.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import math
from pathlib import Path

import numpy as np
import structlog

from asciimap.config import Settings
from asciimap.render.palette import ALLOWED_COLORS, COLOR_MODES, colorize
from asciimap.render.protocol import Marker, RenderError, RenderOptions, derive_height

logger = structlog.get_logger(__name__)

# Coverage ramp: water, then increasing land fraction. Any land shows at least ".".
GLYPH_RAMP = " .:*#"


class LandMask:
    """Immutable equirectangular land/water grid."""

    def __init__(self, grid: np.ndarray) -> None:
        grid = np.array(grid, dtype=bool)
        if grid.ndim != 2 or grid.shape[0] == 0 or grid.shape[1] == 0:
            raise ValueError(f"land mask must be a non-empty 2D grid, got shape {grid.shape}")
        grid.setflags(write=False)
        self._grid = grid

    @property
    def shape(self) -> tuple[int, int]:
        return self._grid.shape  # type: ignore[return-value]

    def is_land(self, lat: np.ndarray, lon: np.ndarray) -> np.ndarray:
        """Vectorized lookup of the cells containing (lat, lon)."""
        rows, cols = self._grid.shape
        r = np.clip(((90.0 - lat) / 180.0 * rows).astype(np.intp), 0, rows - 1)
        c = np.clip(((lon + 180.0) / 360.0 * cols).astype(np.intp), 0, cols - 1)
        return self._grid[r, c]

    def save(self, path: str | Path) -> None:
        np.save(Path(path), self._grid)

    @classmethod
    def load(cls, path: str | Path) -> LandMask:
        """Load a grid previously written by save() / scripts/export_land_mask.py."""
        return cls(np.load(Path(path), allow_pickle=False))

    @classmethod
    def from_globe(cls, resolution: float = 0.25) -> LandMask:
        """Build a grid from the global-land-mask package at `resolution` degrees."""
        from global_land_mask import globe

        rows = max(1, round(180.0 / resolution))
        cols = max(1, round(360.0 / resolution))
        lats = 90.0 - (np.arange(rows) + 0.5) * (180.0 / rows)
        lons = -180.0 + (np.arange(cols) + 0.5) * (360.0 / cols)
        lon_grid, lat_grid = np.meshgrid(lons, lats)
        return cls(globe.is_land(lat_grid, lon_grid))


def load_land_mask(settings: Settings) -> LandMask:
    """Load the mask the server renders from. Errors propagate: no mask, no service."""
    if settings.land_mask_path:
        mask = LandMask.load(settings.land_mask_path)
        source = settings.land_mask_path
    else:
        mask = LandMask.from_globe(settings.land_mask_resolution)
        source = "global-land-mask"
    logger.info("land_mask_loaded", source=source, rows=mask.shape[0], cols=mask.shape[1])
    return mask


class LandMaskRenderer:
    """Renderer backed by a LandMask. Stateless per call; safe to share across threads."""

    def __init__(self, mask: LandMask) -> None:
        self._mask = mask

    def render(
        self,
        width: int,
        supersample: int,
        char_aspect: float,
        marker: Marker | None,
        options: RenderOptions,
    ) -> str:
        _check_geometry(width, supersample, char_aspect, options)
        height = derive_height(width, char_aspect)
        if height < 1:
            raise RenderError(f"width {width} with char aspect {char_aspect} yields no rows")

        coverage = self._coverage(width, height, supersample)
        levels = np.ceil(coverage * (len(GLYPH_RAMP) - 1)).astype(np.intp)
        cells = [[GLYPH_RAMP[level] for level in row] for row in levels.tolist()]

        marker_cells: set[tuple[int, int]] = set()
        if marker is not None:
            marker_cells = _draw_marker(cells, marker, width, height)

        colored = options.color_mode == "always"
        map_color = options.map_color if colored else ""
        marker_color = options.marker_color if colored else ""
        frame_color = options.frame_color if colored else ""

        lines = [
            _render_row(row, r, marker_cells, map_color, marker_color)
            for r, row in enumerate(cells)
        ]
        blank = " " * width
        lines = [blank] * options.margin_rows + lines + [blank] * options.margin_rows

        if options.frame:
            edge = colorize("+" + "-" * width + "+", frame_color)
            side = colorize("|", frame_color)
            lines = [edge, *(f"{side}{line}{side}" for line in lines), edge]

        return "\n".join(lines) + "\n"

    def _coverage(self, width: int, height: int, supersample: int) -> np.ndarray:
        """Fraction of land among the supersample² sub-points of each cell."""
        sub_cols = width * supersample
        sub_rows = height * supersample
        lons = -180.0 + (np.arange(sub_cols) + 0.5) * (360.0 / sub_cols)
        lats = 90.0 - (np.arange(sub_rows) + 0.5) * (180.0 / sub_rows)
        lon_grid, lat_grid = np.meshgrid(lons, lats)
        land = self._mask.is_land(lat_grid, lon_grid)
        return land.reshape(height, supersample, width, supersample).mean(axis=(1, 3))


def _check_geometry(width: int, supersample: int, char_aspect: float, options: RenderOptions) -> None:
    if width < 1:
        raise RenderError("width must be positive")
    if supersample < 1:
        raise RenderError("supersample must be positive")
    if not math.isfinite(char_aspect) or char_aspect <= 0:
        raise RenderError("char aspect must be a positive finite number")
    if options.margin_rows < 0:
        raise RenderError("margin rows must not be negative")
    if options.color_mode not in COLOR_MODES:
        raise RenderError(f"unknown color mode {options.color_mode!r}")
    for color in (options.map_color, options.frame_color, options.marker_color):
        if color not in ALLOWED_COLORS:
            raise RenderError(f"unknown color {color!r}")


def _draw_marker(
    cells: list[list[str]], marker: Marker, width: int, height: int
) -> set[tuple[int, int]]:
    if not (-180.0 <= marker.lon <= 180.0 and -90.0 <= marker.lat <= 90.0):
        raise RenderError(f"marker ({marker.lon}, {marker.lat}) is outside the map")
    if marker.arm_x < -1 or marker.arm_y < -1:
        raise RenderError("marker arm lengths must be -1 or greater")
    for glyph in (marker.center, marker.horizontal, marker.vertical):
        if len(glyph) != 1 or ord(glyph) > 127:
            raise RenderError(f"marker glyph {glyph!r} is not a single ASCII character")

    col = min(int((marker.lon + 180.0) / 360.0 * width), width - 1)
    row = min(int((90.0 - marker.lat) / 180.0 * height), height - 1)

    left, right = _arm_span(col, marker.arm_x, width)
    top, bottom = _arm_span(row, marker.arm_y, height)

    drawn: set[tuple[int, int]] = set()
    for c in range(left, right + 1):
        cells[row][c] = marker.horizontal
        drawn.add((row, c))
    for r in range(top, bottom + 1):
        cells[r][col] = marker.vertical
        drawn.add((r, col))
    cells[row][col] = marker.center
    return drawn


def _arm_span(center: int, arm: int, size: int) -> tuple[int, int]:
    # -1 spans the whole axis.
    if arm < 0:
        return 0, size - 1
    return max(0, center - arm), min(size - 1, center + arm)


def _render_row(
    row: list[str],
    r: int,
    marker_cells: set[tuple[int, int]],
    map_color: str,
    marker_color: str,
) -> str:
    """Join a row, coloring consecutive runs of map and marker cells."""
    if not marker_cells and not map_color:
        return "".join(row)

    parts: list[str] = []
    run: list[str] = []
    run_is_marker = False
    for c, glyph in enumerate(row):
        is_marker = (r, c) in marker_cells
        if run and is_marker != run_is_marker:
            parts.append(colorize("".join(run), marker_color if run_is_marker else map_color))
            run = []
        run_is_marker = is_marker
        run.append(glyph)
    if run:
        parts.append(colorize("".join(run), marker_color if run_is_marker else map_color))
    return "".join(parts)
