"""Rate limiting: the shared slowapi limiter plus a per-IP window for PIN login."""

import math
import time
from typing import Tuple

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from franchise_pos.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


class PinLoginRateLimiter:
    """At most ``max_requests`` PIN logins per client IP per window.

    Counts live in a ``limits`` memory store, which expires finished windows.
    """

    namespace = "pin_login"

    def __init__(self, max_requests: int, window_seconds: int):
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.enabled = True
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def hit(self, key: str) -> Tuple[bool, int]:
        """Count a request. Returns ``(allowed, retry_after_seconds)``."""
        if not self.enabled:
            return True, 0
        if self._strategy.hit(self.item, self.namespace, key):
            return True, 0
        stats = self._strategy.get_window_stats(self.item, self.namespace, key)
        return False, max(1, math.ceil(stats.reset_time - time.time()))

    def reset(self) -> None:
        self._storage.reset()


pin_login_limiter = PinLoginRateLimiter(
    max_requests=settings.pin_rate_limit_requests,
    window_seconds=settings.pin_rate_limit_window,
)
