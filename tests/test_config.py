# ─────────────────────────────────────────────────────────────────────────────
# Tests — Settings (environment configuration with silent fallbacks)
# ─────────────────────────────────────────────────────────────────────────────

from datetime import timedelta

import pytest

from asciimap.config import Settings, parse_duration, parse_listen_addr
from asciimap.services.validator import ValidationLimits


class TestDefaults:
    def test_hardcoded_fallbacks(self, monkeypatch):
        for name in ("API_MAX_WIDTH", "API_RATE_LIMIT", "API_RATE_WINDOW", "API_LISTEN_ADDR"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.listen_addr == ":8081"
        assert (settings.min_width, settings.max_width) == (20, 240)
        assert settings.max_margin == 12
        assert (settings.min_supersample, settings.max_supersample) == (1, 5)
        assert (settings.min_char_aspect, settings.max_char_aspect) == (1.0, 3.5)
        assert settings.rate_limit == 20
        assert settings.rate_window == timedelta(minutes=1)
        assert settings.max_body_bytes == 64 * 1024

    def test_limits_from_settings(self):
        limits = ValidationLimits.from_settings(Settings(_env_file=None, max_width=100))
        assert limits.max_width == 100
        assert limits.min_width == 20


class TestEnvironment:
    def test_values_read_from_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("API_MAX_WIDTH", "180")
        monkeypatch.setenv("API_MAX_CHAR_ASPECT", "4.25")
        monkeypatch.setenv("API_RATE_WINDOW", "30s")
        settings = Settings(_env_file=None)
        assert settings.max_width == 180
        assert settings.max_char_aspect == 4.25
        assert settings.rate_window == timedelta(seconds=30)

    @pytest.mark.parametrize(
        ("name", "value", "field", "fallback"),
        [
            ("API_MAX_WIDTH", "wide", "max_width", 240),
            ("API_RATE_LIMIT", "12.5", "rate_limit", 20),
            ("API_MIN_CHAR_ASPECT", "one", "min_char_aspect", 1.0),
            ("API_RATE_WINDOW", "soon", "rate_window", timedelta(minutes=1)),
            ("API_MAX_BODY_BYTES", "64k", "max_body_bytes", 64 * 1024),
            ("API_LISTEN_ADDR", "localhost:http", "listen_addr", ":8081"),
        ],
    )
    def test_unparsable_values_fall_back(self, monkeypatch, name, value, field, fallback):
        monkeypatch.setenv(name, value)
        settings = Settings(_env_file=None)
        assert getattr(settings, field) == fallback

    def test_empty_value_means_unset(self, monkeypatch):
        monkeypatch.setenv("API_MAX_MARGIN", "")
        assert Settings(_env_file=None).max_margin == 12


class TestParsers:
    @pytest.mark.parametrize(
        ("raw", "seconds"),
        [
            ("90", 90),
            ("1m", 60),
            ("1m30s", 90),
            ("500ms", 0.5),
            ("1h", 3600),
            ("2.5s", 2.5),
        ],
    )
    def test_parse_duration(self, raw, seconds):
        assert parse_duration(raw) == timedelta(seconds=seconds)

    @pytest.mark.parametrize("raw", ["", "abc", "1x", "m1", "1m junk"])
    def test_parse_duration_rejects(self, raw):
        assert parse_duration(raw) is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (":8081", ("0.0.0.0", 8081)),
            ("127.0.0.1:9000", ("127.0.0.1", 9000)),
            ("[::1]:8081", ("::1", 8081)),
        ],
    )
    def test_parse_listen_addr(self, raw, expected):
        assert parse_listen_addr(raw) == expected
