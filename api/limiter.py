"""
api/limiter.py -- Login rate limiting keyed by client address (slowapi).

Fixed window anchored at the first attempt: an address gets `limit`
attempts, then is refused until `window_seconds` after that first attempt.
The first attempt after the window starts a fresh count. Refused attempts
do not move the window.

One LoginRateLimiter instance lives on app.state for the whole process so
every request shares the same counters. Storage is slowapi's in-memory
backend: a restart clears it, and expired keys are dropped by the storage
itself. This is an abuse deterrent, not a security boundary.

The login route calls check() explicitly instead of using @limiter.limit(),
so the limit runs before the body is read and a refusal comes back in the
API's error envelope with an exact Retry-After.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass

from fastapi import Request
from limits import RateLimitItemPerSecond
from slowapi import Limiter

# Used when neither proxy header is present. Every caller without a proxy in
# front of it shares this one bucket.
_FALLBACK_ADDRESS = "127.0.0.1"

_SCOPE = "login"


def get_client_address(request: Request) -> str:
    """Best-effort client address behind a proxy.

    First entry of X-Forwarded-For, then X-Real-IP, then the loopback
    fallback. The socket peer address is not consulted.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return _FALLBACK_ADDRESS


@dataclass
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int | None = None


class LoginRateLimiter:
    """Per-address attempt counter.

    Usage:
        limiter = LoginRateLimiter(limit=10, window_seconds=300)
        decision = limiter.check("203.0.113.5")
        if not decision.allowed:
            ...  # 429 with Retry-After: decision.retry_after_seconds
    """

    def __init__(self, limit: int = 10, window_seconds: int = 300) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(limit, window_seconds)
        self._limiter = Limiter(
            key_func=get_client_address,
            storage_uri="memory://",
            strategy="fixed-window",
        )

    def check(self, client_address: str) -> RateLimitDecision:
        """Count one attempt from client_address and decide whether to allow it."""
        strategy = self._limiter.limiter
        if strategy.hit(self._item, _SCOPE, client_address):
            return RateLimitDecision(allowed=True)

        stats = strategy.get_window_stats(self._item, _SCOPE, client_address)
        return RateLimitDecision(
            allowed=False,
            retry_after_seconds=max(1, math.ceil(stats.reset_time - time.time())),
        )

    def reset(self) -> None:
        self._limiter.reset()
