# ─────────────────────────────────────────────────────────────────────────────
# Property-Based Tests — Hypothesis
# ─────────────────────────────────────────────────────────────────────────────
# Demonstrates: hypothesis for invariant testing on the pure pieces of the
# service: the fixed-window limiter, the request validator, and the
# height derivation shared by the renderer and the orchestrator.
# ─────────────────────────────────────────────────────────────────────────────

import math

import numpy as np
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from asciimap.exceptions import MalformedPayloadError, ValidationFailedError
from asciimap.rate_limit import ANONYMOUS_KEY, FixedWindowLimiter
from asciimap.render import LandMask, LandMaskRenderer, RenderOptions, derive_height
from asciimap.services.validator import GenerateConfig, RequestValidator

# ─── Strategies (reusable random data generators) ────────────────────────────

limits = st.integers(min_value=1, max_value=50)
windows = st.floats(min_value=0.5, max_value=3600.0, allow_nan=False, allow_infinity=False)
client_keys = st.from_regex(r"[0-9a-f:.]{1,39}", fullmatch=True)

widths = st.integers(min_value=1, max_value=400)
aspects = st.floats(min_value=0.25, max_value=8.0, allow_nan=False, allow_infinity=False)

# Loosely-shaped payloads: any subset of the known fields with arbitrary JSON
# scalars, so both well-typed and ill-typed inputs are exercised.
json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-1000, max_value=1000),
    st.floats(allow_nan=False, allow_infinity=False, width=32),
    st.text(max_size=4),
)
payloads = st.fixed_dictionaries(
    {},
    optional={
        "width": json_scalars,
        "supersample": json_scalars,
        "char_aspect": json_scalars,
        "margin": json_scalars,
        "frame": json_scalars,
        "marker": st.fixed_dictionaries(
            {},
            optional={"enabled": json_scalars, "lon": json_scalars, "lat": json_scalars},
        ),
        "color": st.fixed_dictionaries({}, optional={"mode": json_scalars}),
    },
)


class TestFixedWindowProperties:
    """Whatever the limit and timing, one window admits exactly `limit` calls."""

    @given(limit=limits, window=windows, extra=st.integers(min_value=0, max_value=20))
    @settings(max_examples=200)
    def test_admits_exactly_limit(self, limit: int, window: float, extra: int):
        limiter = FixedWindowLimiter(limit, window)
        admitted = [limiter.allow("10.0.0.1", now=0.0) for _ in range(limit + extra)]
        assert admitted.count(True) == limit
        assert admitted[:limit] == [True] * limit

    @given(
        limit=limits,
        window=windows,
        offsets=st.lists(st.floats(min_value=0.0, max_value=1.0), min_size=1, max_size=60),
    )
    @settings(max_examples=200)
    def test_never_exceeds_limit_inside_one_window(self, limit, window, offsets):
        limiter = FixedWindowLimiter(limit, window)
        times = sorted(o * window * 0.999 for o in offsets)
        admitted = sum(limiter.allow("k", now=t) for t in times)
        assert admitted == min(limit, len(times))

    @given(limit=limits, window=windows)
    @settings(max_examples=100)
    def test_full_reset_after_window(self, limit: int, window: float):
        limiter = FixedWindowLimiter(limit, window)
        for _ in range(limit):
            limiter.allow("k", now=0.0)
        assert not limiter.allow("k", now=0.0)
        assert all(limiter.allow("k", now=window) for _ in range(limit))

    @given(key=st.text(alphabet=" \t", max_size=5))
    def test_blank_keys_are_anonymous(self, key: str):
        limiter = FixedWindowLimiter(1, 60)
        assert limiter.allow(key, now=0.0)
        assert not limiter.allow(ANONYMOUS_KEY, now=0.0)

    @given(keys=st.lists(client_keys, min_size=1, max_size=40, unique=True), window=windows)
    @settings(max_examples=100)
    def test_idle_buckets_are_swept(self, keys: list[str], window: float):
        limiter = FixedWindowLimiter(5, window)
        for key in keys:
            limiter.allow(key, now=0.0)
        limiter.allow("fresh", now=2 * window)
        assert len(limiter) == 1


class TestValidatorProperties:
    @given(payload=payloads)
    @settings(max_examples=300)
    def test_outcome_is_config_or_known_error(self, payload: dict):
        validator = RequestValidator()
        try:
            config = validator.validate(payload)
        except (MalformedPayloadError, ValidationFailedError) as exc:
            assert exc.status_code == 400
        else:
            assert isinstance(config, GenerateConfig)
            assert 20 <= config.width <= 240
            assert 1 <= config.supersample <= 5
            assert 0 <= config.margin <= 12
            assert 1.0 <= config.char_aspect <= 3.5

    @given(payload=payloads)
    @settings(max_examples=200)
    def test_same_input_same_outcome(self, payload: dict):
        validator = RequestValidator()

        def outcome():
            try:
                return validator.validate(payload)
            except (MalformedPayloadError, ValidationFailedError) as exc:
                return type(exc), exc.message

        assert outcome() == outcome()


class TestDeriveHeightProperties:
    @given(width=widths, char_aspect=aspects)
    def test_within_half_a_row_of_exact(self, width: int, char_aspect: float):
        exact = width / char_aspect / 2
        assert abs(derive_height(width, char_aspect) - exact) <= 0.5 + 1e-9

    @given(width=widths, char_aspect=aspects)
    def test_monotonic_in_width(self, width: int, char_aspect: float):
        assert derive_height(width + 1, char_aspect) >= derive_height(width, char_aspect)

    @given(width=st.integers(min_value=1, max_value=200))
    def test_halves_round_up(self, width: int):
        # width / (2 * 1.0) lands on .5 for every odd width
        assume(width % 2 == 1)
        assert derive_height(width, 1.0) == math.ceil(width / 2)


class TestRendererProperties:
    @given(
        width=st.integers(min_value=1, max_value=80),
        supersample=st.integers(min_value=1, max_value=4),
        char_aspect=st.floats(min_value=1.0, max_value=3.5),
        margin=st.integers(min_value=0, max_value=3),
        frame=st.booleans(),
    )
    @settings(max_examples=100, deadline=None)
    def test_plain_geometry(self, width, supersample, char_aspect, margin, frame):
        height = derive_height(width, char_aspect)
        assume(height >= 1)
        grid = np.zeros((18, 36), dtype=bool)
        grid[4:12, 10:20] = True
        renderer = LandMaskRenderer(LandMask(grid))

        text = renderer.render(
            width, supersample, char_aspect, None, RenderOptions(margin_rows=margin, frame=frame)
        )

        lines = text.splitlines()
        border = 2 if frame else 0
        assert len(lines) == height + 2 * margin + border
        assert {len(line) for line in lines} == {width + border}
        assert "\x1b" not in text
