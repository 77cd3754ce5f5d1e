"""Rolling user-interaction intensity."""

import time
from collections import deque
from typing import Callable, Deque, Optional, Tuple

DEFAULT_LEVEL = 0.5


class InteractionTracker:
    """
    Counts interaction events over a sliding time window.

    level = min(events in window / saturation, 1). Before the first event the
    level is the neutral 0.5 so the controller does not scale the profile.
    """

    def __init__(
        self,
        window_seconds: float = 5.0,
        saturation: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.saturation = saturation
        self._clock = clock
        self._events: Deque[Tuple[float, str]] = deque()
        self._seen_any = False

    def record(self, kind: str = "touch", ts: Optional[float] = None) -> None:
        ts = self._clock() if ts is None else ts
        self._events.append((ts, kind))
        self._seen_any = True
        self._evict(ts)

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._events and self._events[0][0] < cutoff:
            self._events.popleft()

    def level(self, now: Optional[float] = None) -> float:
        if not self._seen_any:
            return DEFAULT_LEVEL
        self._evict(self._clock() if now is None else now)
        return min(len(self._events) / self.saturation, 1.0)

    def reset(self) -> None:
        self._events.clear()
        self._seen_any = False
