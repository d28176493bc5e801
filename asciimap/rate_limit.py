# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiting — per-client fixed window + shared slowapi DoS gate
# ─────────────────────────────────────────────────────────────────────────────
# FixedWindowLimiter is the authoritative per-client budget on /api/generate.
# The slowapi limiter is a coarse outer gate, kept in this module to avoid
# circular imports between main.py and the route modules.
#
# Thread-safe: every allow() is one critical section under a threading.Lock,
# so two concurrent callers can never both take the last slot of a window.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import ipaddress
import threading
import time
from dataclasses import dataclass

from slowapi import Limiter
from starlette.requests import Request

ANONYMOUS_KEY = "anonymous"

_DEFAULT_LIMIT = 1
_DEFAULT_WINDOW_SECONDS = 60.0


@dataclass
class _Bucket:
    window_start: float
    count: int


class FixedWindowLimiter:
    """Counts requests per key inside fixed windows of `window` seconds.

    A key's counter resets entirely when its window expires, so up to
    2 × limit requests can land within a short span around a window edge.
    Buckets older than two windows are swept whenever any key starts a
    new window, which keeps memory bounded under churn of distinct keys.

    Non-positive limit/window are corrected to 1 request / 60 seconds.
    """

    def __init__(self, limit: int, window: float) -> None:
        if limit <= 0:
            limit = _DEFAULT_LIMIT
        if window <= 0:
            window = _DEFAULT_WINDOW_SECONDS
        self.limit = limit
        self.window = float(window)
        self._lock = threading.Lock()
        self._buckets: dict[str, _Bucket] = {}

    def allow(self, key: str, now: float | None = None) -> bool:
        """Admit or reject one request for `key` at time `now` (monotonic seconds)."""
        key = key.strip() or ANONYMOUS_KEY
        if now is None:
            now = time.monotonic()

        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None or now - bucket.window_start >= self.window:
                self._buckets[key] = _Bucket(window_start=now, count=1)
                self._sweep(now)
                return True

            if bucket.count >= self.limit:
                return False

            bucket.count += 1
            return True

    def retry_after(self, key: str, now: float | None = None) -> float:
        """Seconds until `key`'s current window ends (at least 1)."""
        key = key.strip() or ANONYMOUS_KEY
        if now is None:
            now = time.monotonic()

        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                return 1.0
            return max(1.0, self.window - (now - bucket.window_start))

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _sweep(self, now: float) -> None:
        # Caller holds self._lock.
        horizon = 2 * self.window
        stale = [k for k, b in self._buckets.items() if now - b.window_start >= horizon]
        for k in stale:
            del self._buckets[k]


# ── Client identity ──────────────────────────────────────────────────────────


def _parse_ip(value: str | None) -> str | None:
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def client_key(request: Request) -> str:
    """Derive the rate-limit key for a request.

    Preference: first X-Forwarded-For hop, then X-Real-IP, then the peer
    address. Each candidate must parse as an IP; otherwise the next one is
    tried, ending at the shared "anonymous" key.
    """
    forwarded = request.headers.get("x-forwarded-for", "").strip()
    if forwarded:
        ip = _parse_ip(forwarded.split(",")[0])
        if ip:
            return ip

    ip = _parse_ip(request.headers.get("x-real-ip"))
    if ip:
        return ip

    if request.client is not None:
        ip = _parse_ip(request.client.host)
        if ip:
            return ip

    return ANONYMOUS_KEY


limiter = Limiter(key_func=client_key)
