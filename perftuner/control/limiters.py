"""
Dynamic rate limiters.

``DynamicThrottler`` stretches or shrinks its interval from a rolling
performance metric; ``DynamicDebouncer`` picks its delay from the current
interaction level. Both read time from an injected clock so they can be driven
deterministically in tests. The debouncer either hands its pending call to an
asyncio loop (``call_later``) or waits to be polled by the host's frame loop.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

import numpy as np

logger = logging.getLogger(__name__)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


class DynamicThrottler:
    """Fires a callback at most once per effective interval."""

    def __init__(
        self,
        base_interval_ms: float,
        min_interval_ms: float = 8.0,
        max_interval_ms: float = 50.0,
        performance_threshold: float = 0.8,
        window: int = 10,
        dynamic: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        if min_interval_ms > max_interval_ms:
            raise ValueError(f"min_interval_ms {min_interval_ms} exceeds max_interval_ms {max_interval_ms}")
        self.min_interval_ms = float(min_interval_ms)
        self.max_interval_ms = float(max_interval_ms)
        self.performance_threshold = float(performance_threshold)
        self.dynamic = dynamic
        self._clock = clock
        self._metrics: Deque[float] = deque(maxlen=window)
        self._interval = clamp(float(base_interval_ms), self.min_interval_ms, self.max_interval_ms)
        self._last_fired: Optional[float] = None

    @property
    def effective_interval_ms(self) -> float:
        return self._interval

    def observe(self, metric: float) -> float:
        """Fold one performance metric into the window and adapt the interval."""
        self._metrics.append(float(metric))
        avg = float(np.mean(self._metrics))
        if avg < self.performance_threshold:
            self._interval = min(self.max_interval_ms, self._interval * 1.1)
        elif avg > self.performance_threshold * 1.2:
            self._interval = max(self.min_interval_ms, self._interval * 0.9)
        return self._interval

    def __call__(self, callback: Callable[[], None], metric: Optional[float] = None) -> bool:
        """Run ``callback`` if the interval has elapsed. Returns whether it ran."""
        if self.dynamic and metric is not None:
            self.observe(metric)
        now_ms = self._clock() * 1000.0
        if self._last_fired is not None and now_ms - self._last_fired < self._interval:
            return False
        self._last_fired = now_ms
        callback()
        return True


class DynamicDebouncer:
    """Delays a callback until a quiet period, replacing any pending call."""

    def __init__(
        self,
        base_delay_ms: float,
        min_delay_ms: float = 25.0,
        max_delay_ms: float = 300.0,
        interaction_level: float = 0.5,
        dynamic: bool = True,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.base_delay_ms = float(base_delay_ms)
        self.min_delay_ms = float(min_delay_ms)
        self.max_delay_ms = float(max_delay_ms)
        self.default_level = interaction_level
        self.dynamic = dynamic
        self._clock = clock
        self._loop = loop
        self._delay = self.base_delay_ms
        self._pending: Optional[Callable[[], None]] = None
        self._deadline_ms: Optional[float] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def effective_delay_ms(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def delay_for(self, interaction_level: float) -> float:
        if not self.dynamic:
            return self.base_delay_ms
        if interaction_level > 0.8:
            return max(self.min_delay_ms, self.base_delay_ms * 0.5)
        if interaction_level < 0.3:
            return min(self.max_delay_ms, self.base_delay_ms * 1.5)
        return self.base_delay_ms

    def __call__(self, callback: Callable[[], None], interaction_level: Optional[float] = None) -> None:
        self.cancel()
        level = self.default_level if interaction_level is None else interaction_level
        self._delay = self.delay_for(level)
        self._pending = callback
        self._deadline_ms = self._clock() * 1000.0 + self._delay
        if self._loop is not None:
            self._handle = self._loop.call_later(self._delay / 1000.0, self._fire)

    def poll(self) -> bool:
        """Fire the pending call if its deadline has passed."""
        if self._pending is None or self._deadline_ms is None:
            return False
        if self._clock() * 1000.0 < self._deadline_ms:
            return False
        self._fire()
        return True

    def flush(self) -> bool:
        """Fire the pending call immediately."""
        if self._pending is None:
            return False
        self._fire()
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = None
        self._deadline_ms = None

    def _fire(self) -> None:
        callback = self._pending
        self._pending = None
        self._deadline_ms = None
        self._handle = None
        if callback is not None:
            callback()
