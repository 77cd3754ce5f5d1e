"""Benchmark scoring and analytic improvement estimates."""

from ..types import BenchmarkMetrics, Improvements, PerformanceProfile

REFERENCE_FPS = 60.0
REFERENCE_LATENCY_MS = 50.0
REFERENCE_FRAME_TIME_MS = 33.0

FPS_WEIGHT = 0.5
LATENCY_WEIGHT = 0.3
FRAME_TIME_WEIGHT = 0.2


def benchmark_score(metrics: BenchmarkMetrics) -> float:
    """
    Weighted 0-1 score of one benchmark pass.

    fps is normalized against 60 fps (capped), latency against 50 ms and frame
    time against 33 ms (both floored at 0).
    """
    fps_score = min(metrics.fps / REFERENCE_FPS, 1.0)
    latency_score = max(0.0, 1.0 - metrics.latency_ms / REFERENCE_LATENCY_MS)
    frame_score = max(0.0, 1.0 - metrics.frame_time_ms / REFERENCE_FRAME_TIME_MS)
    return fps_score * FPS_WEIGHT + latency_score * LATENCY_WEIGHT + frame_score * FRAME_TIME_WEIGHT


def estimate_improvements(profile: PerformanceProfile) -> Improvements:
    """
    Estimate per-metric gains from the profile values alone.

    These are analytic estimates derived from the tunables, not re-measured
    numbers: fps from the throttle interval relative to a 16 ms frame, latency
    from the debounce delay relative to 100 ms, frame time from animation
    concurrency relative to 5 parallel animations.
    """
    fps = max(0.0, (REFERENCE_FPS * 16.0 / profile.throttle_interval - REFERENCE_FPS) / REFERENCE_FPS)
    latency = max(0.0, (100.0 - profile.debounce_delay) / 100.0)
    frame_time = max(0.0, (16.0 - 16.0 * profile.max_concurrent_animations / 5.0) / 16.0)
    return Improvements(
        fps=fps,
        latency=latency,
        frame_time=frame_time,
        overall=(fps + latency + frame_time) / 3.0,
    )
