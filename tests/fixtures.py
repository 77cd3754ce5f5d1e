"""
Test fixtures for the tuning engine

Provides factory functions, a controllable clock and scripted benchmarks for
consistent test setup.
"""

import random
import numpy as np
from typing import Callable, List, Optional, Tuple

from perftuner.device.catalog import ProfileCatalog
from perftuner.errors import BenchmarkFailureError, PersistenceFailureError
from perftuner.types import (
    BenchmarkMetrics,
    BenchmarkResult,
    BenchmarkScenario,
    DeviceInfo,
    Improvements,
    OptimizationResult,
    PerformanceProfile,
    PerformanceSample,
)


def make_device(**overrides) -> DeviceInfo:
    """
    Create a DeviceInfo with sane defaults, allowing overrides.

    Default values:
    - platform="test", memory_gb=4, logical_cores=4, network="medium"
    - battery_level=0.8, pixel_ratio=1.0, touch_support=True
    - capability=0.5 (Mid-Range, "balanced" profile)
    """
    defaults = {
        "platform": "test",
        "memory_gb": 4.0,
        "logical_cores": 4.0,
        "network": "medium",
        "battery_level": 0.8,
        "screen_resolution": "1920x1080",
        "pixel_ratio": 1.0,
        "touch_support": True,
        "capability": 0.5,
    }
    defaults.update(overrides)
    return DeviceInfo(**defaults)


def make_sample(fps: float = 60.0, latency_ms: float = 10.0, frame_time_ms: float = 16.0,
                timestamp: float = 0.0) -> PerformanceSample:
    """Create a telemetry sample."""
    return PerformanceSample(fps=fps, frame_time_ms=frame_time_ms,
                             latency_ms=latency_ms, timestamp=timestamp)


def sample_for_score(score: float, target_fps: float = 60.0, max_latency_ms: float = 33.0,
                     timestamp: float = 0.0) -> PerformanceSample:
    """
    Sample whose controller score equals ``score``.

    fps = target * score and latency = max_latency * (1 - score) give
    0.6 * score + 0.4 * score.
    """
    return make_sample(fps=target_fps * score, latency_ms=max_latency_ms * (1.0 - score),
                       timestamp=timestamp)


def make_profile(name: str = "balanced", **tunables) -> PerformanceProfile:
    """Catalog profile with some tunables replaced."""
    profile = ProfileCatalog().get(name)
    return profile.with_tunables(**tunables) if tunables else profile


def make_result(device: DeviceInfo, profile: PerformanceProfile, overall: float = 0.2,
                success: bool = True) -> OptimizationResult:
    """Create an OptimizationResult for learner tests."""
    return OptimizationResult(
        success=success,
        device=device,
        original_profile=ProfileCatalog().select(device.capability),
        optimized_profile=profile,
        improvements=Improvements(overall=overall),
        confidence=0.8,
        iterations=3,
        converged=True,
    )


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


def fixed_metrics(profile: PerformanceProfile, device: DeviceInfo,
                  scenario: BenchmarkScenario) -> BenchmarkMetrics:
    return BenchmarkMetrics(fps=50.0, frame_time_ms=20.0, latency_ms=20.0)


class ScriptedBenchmark:
    """
    Benchmark whose metrics come from a function of the profile.

    ``fail_after`` makes every run after the first N raise
    ``BenchmarkFailureError``.
    """

    def __init__(self, metrics_fn: Optional[Callable] = None, fail_after: Optional[int] = None):
        self.metrics_fn = metrics_fn or fixed_metrics
        self.fail_after = fail_after
        self.calls: List[Tuple[PerformanceProfile, BenchmarkScenario]] = []

    def run(self, profile: PerformanceProfile, device: DeviceInfo,
            scenario: BenchmarkScenario) -> BenchmarkResult:
        if self.fail_after is not None and len(self.calls) >= self.fail_after:
            raise BenchmarkFailureError("scripted benchmark failure")
        self.calls.append((profile, scenario))
        return BenchmarkResult(
            scenario=scenario,
            profile=profile,
            device=device,
            metrics=self.metrics_fn(profile, device, scenario),
        )


class BrokenStore:
    """Key-value store whose every operation fails."""

    def get(self, key):
        raise PersistenceFailureError(f"cannot read {key}")

    def set(self, key, value):
        raise PersistenceFailureError(f"cannot write {key}")

    def delete(self, key):
        raise PersistenceFailureError(f"cannot delete {key}")


def set_random_seed(seed: int = 0) -> None:
    """Set random seed for deterministic tests."""
    random.seed(seed)
    np.random.seed(seed)
