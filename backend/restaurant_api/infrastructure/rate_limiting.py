"""Rate Limiting — fixed-window, per-client counters on the `limits` in-memory storage.

Invariants:
    - Counters live in process memory; a restart resets every window
    - Each limiter has its own namespace, so global and auth counts never mix
    - MemoryStorage guards increments with a lock: safe across concurrent requests
"""

import time
from dataclasses import dataclass

from limits import RateLimitItemPerMinute
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from restaurant_api.config import RateLimitRule


@dataclass(frozen=True)
class LimitStatus:
    """Snapshot of one client's window after a hit or a peek."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    window_seconds: int

    @property
    def reset_in(self) -> int:
        return max(int(round(self.reset_at - time.time())), 0)

    def headers(self) -> dict[str, str]:
        """IETF draft standard RateLimit-* headers."""
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_in),
            "RateLimit-Policy": f"{self.limit};w={self.window_seconds}",
        }


class ClientRateLimiter:
    """Fixed-window limiter keyed by client address."""

    def __init__(self, name: str, rule: RateLimitRule, storage: MemoryStorage | None = None):
        self.name = name
        self.rule = rule
        self._storage = storage or MemoryStorage()
        self._item = RateLimitItemPerMinute(
            rule.max_requests, rule.window_minutes, namespace=name,
        )
        self._limiter = FixedWindowRateLimiter(self._storage)

    def hit(self, key: str) -> LimitStatus:
        """Count one request; allowed is False once the window cap is exceeded."""
        allowed = self._limiter.hit(self._item, key)
        return self._status(key, allowed)

    def peek(self, key: str) -> LimitStatus:
        """Report whether one more hit would be allowed, without counting."""
        allowed = self._limiter.test(self._item, key)
        return self._status(key, allowed)

    def reset(self) -> None:
        self._storage.reset()

    def _status(self, key: str, allowed: bool) -> LimitStatus:
        stats = self._limiter.get_window_stats(self._item, key)
        return LimitStatus(
            allowed=allowed,
            limit=self.rule.max_requests,
            remaining=max(stats.remaining, 0),
            reset_at=stats.reset_time,
            window_seconds=self.rule.window_seconds,
        )
