from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

import numpy as np

from ..types import PerformanceSample


@dataclass
class WindowStats:
    count: int
    avg_fps: float
    avg_latency_ms: float
    avg_frame_time_ms: float
    p95_latency_ms: float


class SampleWindow:
    """
    Bounded FIFO of telemetry samples covering the last ``window_seconds``.
    Samples are kept in arrival order; old ones fall off by age or by the
    ``max_samples`` cap, whichever comes first.
    """
    def __init__(self, window_seconds: float = 10.0, max_samples: int = 600):
        self.window_seconds = window_seconds
        self.buf: Deque[PerformanceSample] = deque(maxlen=max_samples)

    def __len__(self) -> int:
        return len(self.buf)

    def feed(self, sample: PerformanceSample) -> None:
        self.buf.append(sample)
        self._evict(sample.timestamp)

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self.buf and self.buf[0].timestamp < cutoff:
            self.buf.popleft()

    def clear(self) -> None:
        self.buf.clear()

    def stats(self, now: Optional[float] = None) -> Optional[WindowStats]:
        """Rolling averages, or None when the window is empty."""
        if now is not None:
            self._evict(now)
        if not self.buf:
            return None
        fps = np.array([s.fps for s in self.buf], dtype=float)
        lat = np.array([s.latency_ms for s in self.buf], dtype=float)
        ft = np.array([s.frame_time_ms for s in self.buf], dtype=float)
        return WindowStats(
            count=int(fps.size),
            avg_fps=float(fps.mean()),
            avg_latency_ms=float(lat.mean()),
            avg_frame_time_ms=float(ft.mean()),
            p95_latency_ms=float(np.percentile(lat, 95)),
        )
