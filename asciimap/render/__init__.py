"""Rendering engine boundary — Renderer protocol and the land-mask renderer."""

from asciimap.render.landmask import LandMask, LandMaskRenderer, load_land_mask
from asciimap.render.protocol import Marker, RenderError, Renderer, RenderOptions, derive_height

__all__ = [
    "LandMask",
    "LandMaskRenderer",
    "Marker",
    "RenderError",
    "RenderOptions",
    "Renderer",
    "derive_height",
    "load_land_mask",
]
