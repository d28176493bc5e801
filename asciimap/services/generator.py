# Generation orchestrator: plain render, optional colorized render, metadata.
# Fail-closed: if either render fails, no result is produced.


import time
from dataclasses import dataclass

import structlog
from opentelemetry import trace

from asciimap.exceptions import RenderFailedError
from asciimap.render.protocol import RenderError, Renderer, RenderOptions, derive_height
from asciimap.services.metrics import GenerationMetrics
from asciimap.services.validator import GenerateConfig

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class GenerateMeta:
    width: int
    height: int
    supersample: int
    char_aspect: float
    duration_ms: int
    bytes: int


@dataclass(frozen=True)
class GenerateResult:
    plain: str
    ansi: str
    meta: GenerateMeta


class GenerationOrchestrator:
    """Invokes the renderer once or twice with one consistent parameter set."""

    def __init__(self, renderer: Renderer, metrics: GenerationMetrics | None = None) -> None:
        self._renderer = renderer
        self._metrics = metrics

    def generate(self, config: GenerateConfig) -> GenerateResult:
        """Render plain (always) and colorized (mode == "always") variants.

        Blocking; the HTTP layer runs it in the thread pool. The plain
        variant is rendered with color forced off so a colorless baseline is
        always present. With mode "never" the plain text doubles as ansi and
        the renderer is called exactly once.
        """
        colorized = config.color.mode == "always"
        with tracer.start_as_current_span("generate") as span:
            span.set_attribute("width", config.width)
            span.set_attribute("supersample", config.supersample)
            span.set_attribute("colorized", colorized)

            start = time.perf_counter()
            plain = self._render(
                config,
                "plain",
                RenderOptions(margin_rows=config.margin, frame=config.frame, color_mode="never"),
            )

            ansi = plain
            if colorized:
                ansi = self._render(
                    config,
                    "ansi",
                    RenderOptions(
                        margin_rows=config.margin,
                        frame=config.frame,
                        color_mode=config.color.mode,
                        map_color=config.color.map_color,
                        frame_color=config.color.frame_color,
                        marker_color=config.color.marker_color,
                    ),
                )
            elapsed_ms = (time.perf_counter() - start) * 1000

        meta = GenerateMeta(
            width=config.width,
            height=derive_height(config.width, config.char_aspect),
            supersample=config.supersample,
            char_aspect=config.char_aspect,
            duration_ms=int(elapsed_ms),
            bytes=len(plain.encode("utf-8")),
        )
        if self._metrics:
            self._metrics.record_generation(elapsed_ms, colorized=colorized)
        logger.debug(
            "generation_complete",
            width=meta.width,
            height=meta.height,
            colorized=colorized,
            duration_ms=meta.duration_ms,
        )
        return GenerateResult(plain=plain, ansi=ansi, meta=meta)

    def _render(self, config: GenerateConfig, variant: str, options: RenderOptions) -> str:
        with tracer.start_as_current_span(f"render_{variant}"):
            try:
                return self._renderer.render(
                    config.width,
                    config.supersample,
                    config.char_aspect,
                    config.marker,
                    options,
                )
            except RenderError as exc:
                if self._metrics:
                    self._metrics.record_render_failure()
                logger.warning("render_failed", variant=variant, error=str(exc))
                raise RenderFailedError(variant, str(exc)) from exc
