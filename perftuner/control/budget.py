"""
Per-frame admission control.

Two independent budgets (frame work, event work) are debited by callers that
go ahead with optional work and reset once a frame's worth of time has passed.
This only advises callers; rejected work is never queued or retried.
"""

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

FRAME_MS = 16.0


class PerformanceBudgetManager:
    def __init__(
        self,
        frame_budget_ms: float,
        event_budget_ms: float,
        clock: Callable[[], float] = time.monotonic,
        frame_ms: float = FRAME_MS,
    ):
        if frame_budget_ms < 0 or event_budget_ms < 0:
            raise ValueError("budgets must be non-negative")
        self.frame_budget_ms = float(frame_budget_ms)
        self.event_budget_ms = float(event_budget_ms)
        self.frame_ms = frame_ms
        self._clock = clock
        self._frame_used = 0.0
        self._event_used = 0.0
        self._last_reset = self._now_ms()

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _maybe_roll_frame(self) -> None:
        if self._now_ms() - self._last_reset > self.frame_ms:
            self.reset()

    def reset(self) -> None:
        """Zero both budgets and start a new frame."""
        self._frame_used = 0.0
        self._event_used = 0.0
        self._last_reset = self._now_ms()

    def can_execute_frame(self, estimated_ms: float) -> bool:
        self._maybe_roll_frame()
        return self.frame_remaining_ms() >= estimated_ms

    def can_execute_event(self, estimated_ms: float) -> bool:
        self._maybe_roll_frame()
        return self.event_remaining_ms() >= estimated_ms

    def record_frame_time(self, actual_ms: float) -> None:
        self._frame_used += max(0.0, float(actual_ms))

    def record_event_time(self, actual_ms: float) -> None:
        self._event_used += max(0.0, float(actual_ms))

    def frame_remaining_ms(self) -> float:
        return max(0.0, self.frame_budget_ms - self._frame_used)

    def event_remaining_ms(self) -> float:
        return max(0.0, self.event_budget_ms - self._event_used)
