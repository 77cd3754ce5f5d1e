"""
Iterative parameter optimizer.

Starting from the catalog profile for a device, the optimizer benchmarks a
baseline, then alternates random exploration with a gradient step toward the
best point found so far. The search point moves with momentum whether or not a
candidate improved, and the run stops early once the best score is within
``convergence_threshold`` of the baseline.

The work is a step generator (``iter_optimize``) yielding one
``OptimizationProgress`` per benchmarked candidate, so hosts can pace and
cancel it; ``optimize`` / ``optimize_async`` drive it to completion.
"""

import logging
import random
from typing import Dict, Generator, List, Optional

import numpy as np

from ..config import OptimizationConfig
from ..device.capability import same_device_class
from ..device.catalog import ProfileCatalog
from ..errors import BenchmarkFailureError, ConcurrentOperationError
from ..events import log_event
from ..storage import (
    OPTIMIZATION_HISTORY_KEY,
    KeyValueStore,
    OptimizationHistory,
    delete_record,
    load_record,
    save_record,
)
from ..tasks import CancellationToken, run_steps, run_steps_async
from ..types import (
    TUNABLE_PARAMETERS,
    DeviceInfo,
    Improvements,
    OptimizationProgress,
    OptimizationResult,
    ParameterRange,
    PerformanceProfile,
)
from .benchmark import BASELINE_SCENARIO, PROFILE_SCENARIO, Benchmark
from .scoring import benchmark_score, estimate_improvements

logger = logging.getLogger(__name__)

MOMENTUM = 0.9

DEFAULT_PARAMETER_RANGES: Dict[str, ParameterRange] = {
    "throttle_interval": ParameterRange(min=8, max=50, step=2),
    "debounce_delay": ParameterRange(min=25, max=300, step=25),
    "touch_threshold": ParameterRange(min=5, max=15, step=1),
    "touch_delay": ParameterRange(min=50, max=500, step=50),
    "max_concurrent_animations": ParameterRange(min=1, max=10, step=1),
}

_CHANGE_TEXT = {
    "throttle_interval": ("Throttle interval", "ms", "for better performance"),
    "debounce_delay": ("Debounce delay", "ms", "for better responsiveness"),
    "touch_threshold": ("Touch threshold", "px", "for better touch detection"),
    "touch_delay": ("Touch delay", "ms", "for better touch handling"),
    "max_concurrent_animations": ("Max concurrent animations", "", "for better animation performance"),
}


def optimization_confidence(iterations: int, converged: bool, overall_improvement: float) -> float:
    confidence = 0.5 + min(iterations / 10.0, 0.3)
    if converged:
        confidence += 0.2
    if overall_improvement > 0.1:
        confidence += 0.2
    return min(confidence, 1.0)


def describe_changes(original: PerformanceProfile, optimized: PerformanceProfile,
                     improvements: Improvements) -> List[str]:
    """Human-readable list of what changed and the expected overall gain."""
    lines: List[str] = []
    before, after = original.tunables(), optimized.tunables()
    for name in TUNABLE_PARAMETERS:
        if after[name] == before[name]:
            continue
        label, unit, purpose = _CHANGE_TEXT[name]
        direction = "increased" if after[name] > before[name] else "decreased"
        lines.append(
            f"{label} {direction} from {before[name]:g}{unit} to {after[name]:g}{unit} {purpose}"
        )
    if improvements.overall > 0.1:
        lines.append(f"Overall performance improvement of {improvements.overall * 100:.1f}% expected")
    return lines


class ParameterOptimizer:
    def __init__(
        self,
        benchmark: Benchmark,
        catalog: Optional[ProfileCatalog] = None,
        config: Optional[OptimizationConfig] = None,
        store: Optional[KeyValueStore] = None,
        rng: Optional[random.Random] = None,
        parameter_ranges: Optional[Dict[str, ParameterRange]] = None,
    ):
        self.benchmark = benchmark
        self.catalog = catalog or ProfileCatalog()
        self.config = config or OptimizationConfig()
        self.store = store
        self.rng = rng or random.Random()
        self.parameter_ranges: Dict[str, ParameterRange] = dict(DEFAULT_PARAMETER_RANGES)
        if parameter_ranges:
            self.set_parameter_ranges(parameter_ranges)
        self._busy = False
        self.history: List[OptimizationResult] = []
        if store is not None:
            self.history = load_record(store, OPTIMIZATION_HISTORY_KEY, OptimizationHistory,
                                       OptimizationHistory).entries

    @property
    def busy(self) -> bool:
        return self._busy

    def set_parameter_ranges(self, ranges: Dict[str, ParameterRange]) -> None:
        for name, rng in ranges.items():
            if name not in TUNABLE_PARAMETERS:
                raise KeyError(f"Unknown tunable parameter '{name}'")
            self.parameter_ranges[name] = rng

    # ---- entry points ----------------------------------------------------

    def iter_optimize(
        self, device: DeviceInfo, config: Optional[OptimizationConfig] = None
    ) -> Generator[OptimizationProgress, None, OptimizationResult]:
        """Validate inputs now and return the step generator for one run."""
        cfg = config or self.config
        cfg.validate()
        if self._busy:
            raise ConcurrentOperationError("An optimization run is already in progress")
        return self._optimize_steps(device, cfg)

    def optimize(self, device: DeviceInfo, config: Optional[OptimizationConfig] = None,
                 token: Optional[CancellationToken] = None) -> OptimizationResult:
        return run_steps(self.iter_optimize(device, config), token)

    async def optimize_async(self, device: DeviceInfo, config: Optional[OptimizationConfig] = None,
                             token: Optional[CancellationToken] = None) -> OptimizationResult:
        return await run_steps_async(self.iter_optimize(device, config), token)

    # ---- search ----------------------------------------------------------

    def _optimize_steps(self, device: DeviceInfo, cfg: OptimizationConfig):
        if self._busy:
            raise ConcurrentOperationError("An optimization run is already in progress")
        self._busy = True
        try:
            original = self.catalog.select(device.capability)
            logger.info(
                f"Starting optimization on '{original.name}' "
                f"(capability={device.capability:.3f}, max_iterations={cfg.max_iterations})"
            )
            try:
                baseline = self.benchmark.run(original, device, BASELINE_SCENARIO)
            except BenchmarkFailureError as e:
                return self._failed(device, original, e)

            baseline_score = benchmark_score(baseline.metrics)
            ranges = [self.parameter_ranges[n] for n in TUNABLE_PARAMETERS]
            tunables = original.tunables()
            current = np.array([tunables[n] for n in TUNABLE_PARAMETERS], dtype=float)
            best = current.copy()
            best_profile = original
            best_score = baseline_score
            trace = [best_score]
            iterations = 0
            converged = False
            logger.debug(f"Baseline score {baseline_score:.3f}")

            while iterations < cfg.max_iterations and not converged:
                iterations += 1
                explored = self.rng.random() < cfg.exploration_rate
                if explored:
                    candidate = np.array([self._draw(r) for r in ranges], dtype=float)
                else:
                    gradient = (best - current) / current
                    stepped = current + gradient * cfg.learning_rate
                    candidate = np.array([r.clamp(v) for r, v in zip(ranges, stepped)], dtype=float)

                candidate_profile = original.with_tunables(
                    **{n: float(v) for n, v in zip(TUNABLE_PARAMETERS, candidate)}
                )
                try:
                    result = self.benchmark.run(candidate_profile, device, PROFILE_SCENARIO)
                except BenchmarkFailureError as e:
                    return self._failed(device, original, e)
                score = benchmark_score(result.metrics)

                improved = score > best_score + cfg.min_improvement
                if improved:
                    best = candidate.copy()
                    best_profile = candidate_profile
                    best_score = score
                trace.append(best_score)

                if baseline_score > 0:
                    gain = (best_score - baseline_score) / baseline_score
                else:
                    gain = best_score - baseline_score
                if gain < cfg.convergence_threshold:
                    converged = True

                current = MOMENTUM * current + (1.0 - MOMENTUM) * candidate
                logger.debug(
                    f"Iteration {iterations}: score={score:.3f} best={best_score:.3f} "
                    f"explored={explored} improved={improved}"
                )
                yield OptimizationProgress(
                    iteration=iterations,
                    candidate_score=score,
                    best_score=best_score,
                    explored=explored,
                    improved=improved,
                )

            improvements = estimate_improvements(best_profile)
            outcome = OptimizationResult(
                success=True,
                device=device,
                original_profile=original,
                optimized_profile=best_profile,
                improvements=improvements,
                recommendations=describe_changes(original, best_profile, improvements),
                confidence=optimization_confidence(iterations, converged, improvements.overall),
                iterations=iterations,
                converged=converged,
                baseline_score=baseline_score,
                best_score=best_score,
                best_score_trace=trace,
            )
            self.history.append(outcome)
            self._persist()
            log_event(
                logger, "optimization_completed",
                profile=original.name, iterations=iterations, converged=converged,
                baseline_score=round(baseline_score, 4), best_score=round(best_score, 4),
                confidence=round(outcome.confidence, 3),
            )
            return outcome
        finally:
            self._busy = False

    def _draw(self, r: ParameterRange) -> float:
        values = r.values()
        return values[self.rng.randrange(len(values))]

    def _failed(self, device: DeviceInfo, original: PerformanceProfile,
                error: Exception) -> OptimizationResult:
        logger.warning(f"Optimization aborted, benchmark failed: {error}")
        return OptimizationResult(
            success=False,
            device=device,
            original_profile=original,
            optimized_profile=original,
            error=str(error),
        )

    # ---- history ---------------------------------------------------------

    def optimized_parameters_for(self, device: DeviceInfo) -> Optional[PerformanceProfile]:
        """Best historical profile for a device of the same class, if any."""
        similar = [
            r for r in self.history
            if r.success and same_device_class(r.device, device)
        ]
        if not similar:
            return None
        best = max(similar, key=lambda r: r.improvements.overall)
        return best.optimized_profile

    def clear_history(self) -> None:
        self.history = []
        if self.store is not None:
            delete_record(self.store, OPTIMIZATION_HISTORY_KEY)

    def _persist(self) -> None:
        if self.store is not None:
            save_record(self.store, OPTIMIZATION_HISTORY_KEY, OptimizationHistory(entries=self.history))
