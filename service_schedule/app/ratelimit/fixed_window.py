"""
In-process fixed-window rate limiter for the schedule service.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Request

from shared.logging import get_logger


WINDOW_SECONDS = 60


class FixedWindowRateLimiter:
    """Per-client request counter over one-minute windows.

    State lives in process memory; the service runs as a single process
    with no shared coordination.
    """

    def __init__(
        self,
        default_limits: Optional[Dict[str, int]] = None,
        *,
        window_seconds: int = WINDOW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
        max_tracked_keys: int = 10_000,
    ):
        self.logger = get_logger("schedule.rate_limiter")
        self.window_seconds = window_seconds
        self.max_tracked_keys = max_tracked_keys
        self._clock = clock or time.monotonic
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = asyncio.Lock()

        # Requests per window
        self.default_limits = {"public": 120}
        if default_limits:
            self.default_limits.update(default_limits)

    def _make_key(self, client_id: str, endpoint: str) -> str:
        return f"rate_limit:{client_id}:{endpoint}"

    async def check_rate_limit(self, client_id: str, endpoint: str, limit_type: str = "public") -> Dict[str, Any]:
        """Count this request and report whether it is within the limit."""
        limit = self.default_limits.get(limit_type, self.default_limits["public"])
        key = self._make_key(client_id, endpoint)

        async with self._lock:
            now = self._clock()
            window_start, current_count = self._windows.get(key, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, current_count = now, 0

            reset_in = max(1, int(round(window_start + self.window_seconds - now)))

            if current_count + 1 > limit:
                self.logger.warning(
                    "Rate limit exceeded",
                    client_id=client_id,
                    endpoint=endpoint,
                    current_count=current_count,
                    limit=limit
                )
                return {
                    "allowed": False,
                    "current_count": current_count,
                    "limit": limit,
                    "remaining": 0,
                    "reset_in_seconds": reset_in,
                    "retry_after": reset_in
                }

            if current_count == 0:
                # New windows go to the end so the map stays ordered by start time
                self._windows.pop(key, None)
            self._windows[key] = (window_start, current_count + 1)
            self._evict(now)

            return {
                "allowed": True,
                "current_count": current_count + 1,
                "limit": limit,
                "remaining": max(0, limit - current_count - 1),
                "reset_in_seconds": reset_in
            }

    async def reset_rate_limit(self, client_id: str, endpoint: str) -> bool:
        """Reset rate limit for client and endpoint."""
        async with self._lock:
            removed = self._windows.pop(self._make_key(client_id, endpoint), None) is not None
        self.logger.info("Rate limit reset", client_id=client_id, endpoint=endpoint)
        return removed

    def _evict(self, now: float) -> None:
        """Drop expired windows, then the oldest ones beyond ``max_tracked_keys``."""
        while self._windows:
            key, (start, _) = next(iter(self._windows.items()))
            if now - start < self.window_seconds and len(self._windows) <= self.max_tracked_keys:
                break
            del self._windows[key]


def get_client_id(request: Request) -> str:
    """Extract the caller IP from standard proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"
