"""
Rate Limiter - per-client fixed-window request counter.

Each client key (usually the originating IP) gets a window of
RATE_LIMIT_WINDOW_MS milliseconds and a ceiling of RATE_LIMIT_MAX_REQUESTS
requests inside it. The first request from a key opens its window; the
request that would exceed the ceiling is rejected with the time left until
the window resets.

Memory is bounded without a background task: on a random fraction of calls
(RATE_LIMIT_CLEANUP_PROBABILITY) every expired entry is swept.

One instance is created per process in the FastAPI lifespan and handed to
the mode dispatcher; there is no module-level state.
"""

import logging
import random
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional

from assistant_gateway.core.config import settings

logger = logging.getLogger("gateway.rate_limiter")


@dataclass
class RateLimitEntry:
    """Counter for one client key."""
    count: int
    reset_at_ms: float


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Result of one check.

    Attributes:
        allowed: Whether the request may proceed
        remaining: Requests left in the current window
        reset_in_ms: Milliseconds until the window resets
    """
    allowed: bool
    remaining: int
    reset_in_ms: int


def _now_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """
    Thread-safe fixed-window rate limiter.

    Usage:
        limiter = RateLimiter(max_requests=10, window_ms=60_000)
        decision = limiter.check("203.0.113.7")
        if not decision.allowed:
            raise ClientRateLimited(retry_after=...)
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_ms: int = 60_000,
        cleanup_probability: float = 0.1,
        clock: Callable[[], float] = _now_ms,
        rng: Callable[[], float] = random.random,
    ):
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.cleanup_probability = cleanup_probability
        self._clock = clock
        self._rng = rng
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = Lock()

    @classmethod
    def from_settings(cls) -> "RateLimiter":
        return cls(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_ms=settings.RATE_LIMIT_WINDOW_MS,
            cleanup_probability=settings.RATE_LIMIT_CLEANUP_PROBABILITY,
        )

    def check(self, client_id: str) -> RateLimitDecision:
        """Count one request from client_id and decide whether it may proceed."""
        with self._lock:
            now = self._clock()

            if self._rng() < self.cleanup_probability:
                self._purge_expired(now)

            entry = self._entries.get(client_id)
            if entry is None or now >= entry.reset_at_ms:
                self._entries[client_id] = RateLimitEntry(count=1, reset_at_ms=now + self.window_ms)
                return RateLimitDecision(
                    allowed=True,
                    remaining=self.max_requests - 1,
                    reset_in_ms=self.window_ms,
                )

            reset_in_ms = max(0, int(entry.reset_at_ms - now))
            if entry.count >= self.max_requests:
                return RateLimitDecision(allowed=False, remaining=0, reset_in_ms=reset_in_ms)

            entry.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - entry.count,
                reset_in_ms=reset_in_ms,
            )

    def tracked_clients(self) -> int:
        """Number of client keys currently held in memory."""
        with self._lock:
            return len(self._entries)

    def reset(self, client_id: Optional[str] = None) -> None:
        """Forget one client, or every client when client_id is None."""
        with self._lock:
            if client_id is None:
                self._entries.clear()
            else:
                self._entries.pop(client_id, None)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now >= entry.reset_at_ms]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired rate-limit entries")
