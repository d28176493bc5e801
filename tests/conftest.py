# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

import os

import pytest
from fastapi.testclient import TestClient

from asciimap.config import Settings
from asciimap.main import create_app
from asciimap.rate_limit import FixedWindowLimiter, limiter
from asciimap.services.generator import GenerationOrchestrator
from asciimap.services.metrics import GenerationMetrics
from asciimap.services.validator import RequestValidator, ValidationLimits
from tests.fakes import FakeRenderer


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing — console logs, default bounds."""
    return Settings(log_json=False, log_level="DEBUG")


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def metrics() -> GenerationMetrics:
    return GenerationMetrics()


@pytest.fixture
def validator() -> RequestValidator:
    return RequestValidator(ValidationLimits())


@pytest.fixture
def client(
    test_settings: Settings, fake_renderer: FakeRenderer, metrics: GenerationMetrics
) -> TestClient:
    """FastAPI TestClient with a fake renderer.

    The lifespan does not run (no `with` block), so no land mask is loaded;
    app.state is populated here instead.
    """
    from asciimap.config import get_settings

    get_settings.cache_clear()

    env_overrides = {
        "API_LOG_JSON": "false",
        "API_LOG_LEVEL": "DEBUG",
        "API_ALLOWED_ORIGINS": "*",
    }
    for k, v in env_overrides.items():
        os.environ[k] = v

    try:
        app = create_app()
        client = TestClient(app)

        limiter.reset()
        app.state.settings = test_settings
        app.state.metrics = metrics
        app.state.rate_limiter = FixedWindowLimiter(
            test_settings.rate_limit, test_settings.rate_window.total_seconds()
        )
        app.state.validator = RequestValidator(ValidationLimits.from_settings(test_settings))
        app.state.orchestrator = GenerationOrchestrator(fake_renderer, metrics=metrics)

        return client
    finally:
        for k in env_overrides:
            os.environ.pop(k, None)
        get_settings.cache_clear()
