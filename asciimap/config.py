# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────
# Every field has a hardcoded fallback. A value that is set but unparsable
# logs a warning and falls back; configuration never aborts startup.
# ─────────────────────────────────────────────────────────────────────────────


import re
from datetime import timedelta
from functools import lru_cache
from typing import Any

import structlog
from pydantic import ValidationError, ValidatorFunctionWrapHandler, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> timedelta | None:
    """Parse "90", "1m", "1m30s", "500ms" or "1h" into a timedelta.

    Returns None when the string is not in one of those forms.
    """
    value = value.strip()
    if not value:
        return None
    try:
        return timedelta(seconds=float(value))
    except ValueError:
        pass

    pos = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            return None
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(value):
        return None
    return timedelta(seconds=seconds)


def parse_listen_addr(listen_addr: str) -> tuple[str, int]:
    """Split "host:port" (host optional, e.g. ":8081") into (host, port)."""
    host, _, port = listen_addr.strip().rpartition(":")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


class Settings(BaseSettings):
    """Server configuration sourced from API_* environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="API_", env_file=".env", env_ignore_empty=True)

    # ── Server ───────────────────────────────────────────────────────────────
    listen_addr: str = ":8081"
    idle_timeout_seconds: int = 60
    max_body_bytes: int = 64 * 1024

    # Comma-separated origins for CORS. Empty string = deny all cross-origin requests.
    allowed_origins: str = ""

    # ── Request bounds ───────────────────────────────────────────────────────
    min_width: int = 20
    max_width: int = 240
    max_margin: int = 12
    min_supersample: int = 1
    max_supersample: int = 5
    min_char_aspect: float = 1.0
    max_char_aspect: float = 3.5

    # ── Rate limiting ────────────────────────────────────────────────────────
    # Per-client fixed window on /api/generate.
    rate_limit: int = 20
    rate_window: timedelta = timedelta(minutes=1)

    # Coarse outer DoS gate (slowapi format, e.g. "300/minute").
    http_rate_limit: str = "300/minute"

    # ── Land mask ────────────────────────────────────────────────────────────
    land_mask_path: str = ""  # .npy grid; empty = build from global-land-mask
    land_mask_resolution: float = 0.25  # degrees per cell when building from global-land-mask

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("rate_window", mode="before")
    @classmethod
    def _parse_rate_window(cls, value: Any) -> Any:
        if isinstance(value, str):
            parsed = parse_duration(value)
            if parsed is not None:
                return parsed
        return value

    @field_validator("listen_addr")
    @classmethod
    def _check_listen_addr(cls, value: str) -> str:
        parse_listen_addr(value)
        return value

    @field_validator("*", mode="wrap")
    @classmethod
    def _fallback_on_invalid(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            fallback = cls.model_fields[info.field_name].default
            logger.warning(
                "invalid_setting_using_fallback",
                setting=info.field_name,
                value=value,
                fallback=str(fallback),
            )
            return fallback


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
