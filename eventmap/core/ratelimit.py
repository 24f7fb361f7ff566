from __future__ import annotations

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

from .errors import RateLimitExceeded


@dataclass
class _WindowConfig:
    max_calls: int
    per_seconds: float


class KeyedSlidingWindowLimiter:
    """
    A thread-safe sliding-window rate limiter with one window per key.

    - At most `max_calls` hits are accepted per key within any `per_seconds` window.
    - Every hit counts, successful or not, so a source that has used its budget
      is refused until its oldest hit leaves the window.
    - `hit()` raises `RateLimitExceeded` carrying the seconds until a slot frees up.

    In-process only; counters reset when the server restarts.
    """

    def __init__(self, max_calls: int, per_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        if max_calls <= 0:
            raise ValueError("max_calls must be > 0")
        if per_seconds <= 0:
            raise ValueError("per_seconds must be > 0")
        self._cfg = _WindowConfig(max_calls=max_calls, per_seconds=per_seconds)
        self._events: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._last_sweep = clock()

    def _prune(self, events: Deque[float], now: float) -> None:
        """Drop timestamps that are outside the current window."""
        window_start = now - self._cfg.per_seconds
        while events and events[0] <= window_start:
            events.popleft()

    def hit(self, key: str) -> None:
        with self._lock:
            now = self._clock()
            events = self._events.setdefault(key, deque())
            self._prune(events, now)
            if len(events) >= self._cfg.max_calls:
                retry_after = (events[0] + self._cfg.per_seconds) - now
                raise RateLimitExceeded(retry_after=math.ceil(retry_after))
            events.append(now)
            self._sweep(now)

    def _sweep(self, now: float) -> None:
        """Forget sources whose window has emptied so the map stays bounded."""
        if now - self._last_sweep < self._cfg.per_seconds:
            return
        self._last_sweep = now
        for key in list(self._events):
            events = self._events[key]
            self._prune(events, now)
            if not events:
                del self._events[key]

    def remaining(self, key: str) -> int:
        with self._lock:
            events = self._events.get(key)
            if not events:
                return self._cfg.max_calls
            self._prune(events, self._clock())
            if not events:
                del self._events[key]
                return self._cfg.max_calls
            return self._cfg.max_calls - len(events)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._events)
