from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: float | None


class RateLimiter:
    """Sliding-window limiter keyed by client address."""

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        time_fn: Callable[[], float] | None = None,
    ) -> None:
        if limit <= 0 or window_seconds <= 0:
            raise ValueError("limit and window_seconds must be positive")
        self._limit = limit
        self._window_seconds = window_seconds
        self._time_fn = time_fn or time.monotonic
        self._events: dict[str, deque[float]] = {}

    def allow(self, client: str) -> RateLimitDecision:
        now = self._time_fn()
        events = self._events.setdefault(client, deque())
        while events and events[0] <= now - self._window_seconds:
            events.popleft()
        if len(events) >= self._limit:
            return RateLimitDecision(
                allowed=False,
                retry_after=max(0.0, self._window_seconds - (now - events[0])),
            )
        events.append(now)
        return RateLimitDecision(allowed=True, retry_after=None)

    def reset(self) -> None:
        self._events.clear()
