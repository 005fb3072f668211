"""
In-memory throttling for the authentication endpoints.

Keys are namespaced by purpose, e.g. ``login:<ip>`` and ``reset:<ip>``, so
the login budget and the password-reset budget of one client are counted
separately. State is per process; every worker keeps its own counts.

    rate_limiter.enforce(f"reset:{ip}", RESET_LIMIT, "Too many password reset attempts.")
"""
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Tuple

from fastapi import Request

from app.core.errors import RateLimitError


@dataclass(frozen=True)
class Limit:
    max_requests: int
    window_seconds: int


# 5 login attempts per minute; 5 failures in a row lock the key for 5 minutes
LOGIN_LIMIT = Limit(max_requests=5, window_seconds=60)
LOCKOUT_THRESHOLD = 5
LOCKOUT_SECONDS = 300

RESET_LIMIT = Limit(max_requests=5, window_seconds=3600)


class RateLimiter:
    """Sliding-window hit counts and failure lockouts, per key."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._failures: Dict[str, int] = defaultdict(int)
        self._locked_until: Dict[str, float] = {}

    def check(self, key: str, limit: Limit) -> Tuple[bool, int]:
        """
        Returns (is_limited, retry_after_seconds). Nothing is recorded.
        """
        now = self._clock()

        locked_until = self._locked_until.get(key)
        if locked_until is not None:
            if now < locked_until:
                return True, int(locked_until - now)
            del self._locked_until[key]
            self._failures.pop(key, None)

        hits = self._hits[key]
        cutoff = now - limit.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

        if len(hits) >= limit.max_requests:
            return True, max(1, int(hits[0] + limit.window_seconds - now))
        return False, 0

    def hit(self, key: str) -> None:
        self._hits[key].append(self._clock())

    def enforce(self, key: str, limit: Limit, message: str) -> None:
        """Raise RateLimitError when ``key`` is over ``limit``, otherwise count this request."""
        is_limited, retry_after = self.check(key, limit)
        if is_limited:
            raise RateLimitError(message, headers={"Retry-After": str(retry_after)})
        self.hit(key)

    def record_failure(
        self,
        key: str,
        threshold: int = LOCKOUT_THRESHOLD,
        lockout_seconds: int = LOCKOUT_SECONDS,
    ) -> Tuple[bool, int]:
        """
        Count a failed attempt.

        Returns (locked, lockout_seconds) once the threshold is reached,
        otherwise (False, attempts_remaining).
        """
        self._failures[key] += 1
        if self._failures[key] >= threshold:
            self._locked_until[key] = self._clock() + lockout_seconds
            return True, lockout_seconds
        return False, threshold - self._failures[key]

    def reset_failures(self, key: str) -> None:
        self._failures.pop(key, None)
        self._locked_until.pop(key, None)

    def clear(self) -> None:
        self._hits.clear()
        self._failures.clear()
        self._locked_until.clear()


rate_limiter = RateLimiter()


def get_client_ip(request: Request) -> str:
    """Client address, preferring the proxy-supplied headers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("User-Agent") or "unknown"
