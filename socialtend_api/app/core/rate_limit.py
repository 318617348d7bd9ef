"""
In-memory fixed-window rate limiting.

Each ``RateLimiter`` keeps a counter per client IP that resets when
its window elapses.  Instances are used as FastAPI dependencies::

    @router.post("/login", dependencies=[Depends(auth_rate_limit)])

When the limit is exceeded the request fails with HTTP 429 and a
``retry_after`` hint in seconds.  State is per process; running
several workers multiplies the effective limit.
"""

import logging
import math
import threading
import time
from typing import Callable, Dict, Optional

from fastapi import HTTPException, Request, status

from .config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window counter keyed by client address."""

    def __init__(
        self,
        name: str,
        max_requests: Callable[[], int],
        window_seconds: Callable[[], int],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        # Limits are read lazily so they follow the current settings.
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._store: Dict[str, Dict[str, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> Optional[int]:
        """Record a request for ``key``.

        Returns ``None`` when the request is allowed, otherwise the number
        of seconds until the window resets.
        """
        now = self._clock()
        with self._lock:
            self._purge(now)
            entry = self._store.get(key)
            if entry is None or entry["reset_at"] <= now:
                self._store[key] = {"count": 1, "reset_at": now + self._window_seconds()}
                return None
            entry["count"] += 1
            if entry["count"] > self._max_requests():
                return max(1, math.ceil(entry["reset_at"] - now))
            return None

    def _purge(self, now: float) -> None:
        expired = [k for k, v in self._store.items() if v["reset_at"] <= now]
        for key in expired:
            del self._store[key]

    def reset(self) -> None:
        with self._lock:
            self._store.clear()

    async def __call__(self, request: Request) -> None:
        if not settings.rate_limit_enabled:
            return
        key = request.client.host if request.client else "unknown"
        retry_after = self.hit(key)
        if retry_after is not None:
            logger.warning("Rate limit '%s' exceeded for %s", self.name, key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"error": "Too many requests", "retry_after": retry_after},
                headers={"Retry-After": str(retry_after)},
            )


auth_rate_limit = RateLimiter(
    "auth",
    max_requests=lambda: settings.auth_rate_limit,
    window_seconds=lambda: settings.auth_rate_window_seconds,
)

message_rate_limit = RateLimiter(
    "messages",
    max_requests=lambda: settings.message_rate_limit,
    window_seconds=lambda: settings.message_rate_window_seconds,
)
