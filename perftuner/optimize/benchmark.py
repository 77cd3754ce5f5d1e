"""
Benchmark collaborator.

The optimizer and validator never drive a UI themselves; they hand a profile,
a device and a scenario to a ``Benchmark`` and score what comes back. Hosts
with a real UI plug in their own implementation. ``SimulatedBenchmark`` is a
deterministic synthetic model for headless hosts and tests.
"""

import logging
import random
from typing import Optional, Protocol

from ..errors import BenchmarkFailureError
from ..types import (
    BenchmarkMetrics,
    BenchmarkResult,
    BenchmarkScenario,
    DeviceInfo,
    PerformanceProfile,
)

logger = logging.getLogger(__name__)

BASELINE_SCENARIO = BenchmarkScenario(
    name="Baseline Test",
    description="Baseline performance measurement",
    duration_s=5.0,
    event_count=50,
    complexity="medium",
    interaction_type="touch",
)

PROFILE_SCENARIO = BenchmarkScenario(
    name="Profile Test",
    description="Candidate profile measurement",
    duration_s=3.0,
    event_count=30,
    complexity="medium",
    interaction_type="touch",
)


def parameter_scenario(parameter: str, value: float) -> BenchmarkScenario:
    return BenchmarkScenario(
        name=f"Parameter Test - {parameter}",
        description=f"Testing {parameter} = {value}",
        duration_s=3.0,
        event_count=30,
        complexity="medium",
        interaction_type="touch",
    )


class Benchmark(Protocol):
    def run(self, profile: PerformanceProfile, device: DeviceInfo,
            scenario: BenchmarkScenario) -> BenchmarkResult:
        """Run one interaction pass. Raises ``BenchmarkFailureError`` if it cannot complete."""
        ...


COMPLEXITY_COST = {"low": 0.8, "medium": 1.0, "high": 1.3}


class SimulatedBenchmark:
    """
    Synthetic cost model of a UI under a profile.

    Frame cost grows with concurrent animations and shrinks with throttling;
    a faster device divides it down. Input latency combines frame time with
    the debounce/touch delays. Gaussian noise comes from a seeded
    ``random.Random`` so runs are reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None, noise: float = 0.02,
                 fail: bool = False):
        self.rng = rng or random.Random()
        self.noise = noise
        self.fail = fail
        self.runs = 0

    def _jitter(self, value: float) -> float:
        if self.noise <= 0:
            return value
        return value * (1.0 + self.rng.gauss(0.0, self.noise))

    def run(self, profile: PerformanceProfile, device: DeviceInfo,
            scenario: BenchmarkScenario) -> BenchmarkResult:
        self.runs += 1
        if self.fail:
            raise BenchmarkFailureError(f"Simulated environment unavailable for '{scenario.name}'")

        speed = 0.3 + 0.7 * device.capability
        complexity = COMPLEXITY_COST.get(scenario.complexity, 1.0)
        # Work per frame: base render plus animations, relieved by throttling
        work_ms = (6.0 + 2.2 * profile.max_concurrent_animations) * complexity
        work_ms *= 16.0 / (16.0 + 0.5 * profile.throttle_interval)
        frame_time = max(4.0, self._jitter(work_ms / speed))
        fps = min(60.0, 1000.0 / frame_time)
        latency = (
            0.5 * frame_time
            + 0.04 * profile.debounce_delay
            + 0.01 * profile.touch_delay
            + 0.2 * profile.touch_threshold
        )
        latency = max(1.0, self._jitter(latency / speed))
        metrics = BenchmarkMetrics(
            fps=fps,
            frame_time_ms=frame_time,
            latency_ms=latency,
            render_time_ms=frame_time * 0.6,
        )
        logger.debug(
            f"Simulated '{scenario.name}' profile={profile.name} "
            f"fps={fps:.1f} frame={frame_time:.1f}ms latency={latency:.1f}ms"
        )
        return BenchmarkResult(scenario=scenario, profile=profile, device=device, metrics=metrics)
