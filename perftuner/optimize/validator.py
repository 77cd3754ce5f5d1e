"""
Parameter range validator.

For each tunable, sweep the range recommended for the device's category,
benchmark every value ``test_iterations`` times and narrow the range to the
contiguous band of values scoring within 90% of the best performance seen.
"""

import logging
from typing import Dict, Generator, List, Optional, Sequence

import numpy as np

from ..config import ValidationConfig
from ..device.capability import same_device_class
from ..device.catalog import ProfileCatalog
from ..device.categories import DEFAULT_CATEGORIES, DeviceCategory, categorize
from ..errors import ConcurrentOperationError
from ..events import log_event
from ..storage import (
    VALIDATION_HISTORY_KEY,
    KeyValueStore,
    ValidationHistory,
    ValidationRecord,
    delete_record,
    load_record,
    save_record,
)
from ..tasks import CancellationToken, run_steps, run_steps_async
from ..types import (
    TUNABLE_PARAMETERS,
    DeviceInfo,
    ParameterRange,
    TrialPoint,
    ValidationProgress,
    ValidationResult,
)
from .benchmark import Benchmark, parameter_scenario
from .optimizer import DEFAULT_PARAMETER_RANGES
from .scoring import benchmark_score

logger = logging.getLogger(__name__)

BAND_RATIO = 0.9


def stability_of(scores: Sequence[float]) -> float:
    """1 - standard deviation of repeated scores, floored at 0."""
    return max(0.0, 1.0 - float(np.sqrt(np.var(np.asarray(scores, dtype=float)))))


def narrow_range(points: List[TrialPoint], base: ParameterRange) -> ParameterRange:
    """Contiguous band around the best-performing value within 90% of it."""
    if not points:
        return base
    perf = [p.performance for p in points]
    best_idx = int(np.argmax(perf))
    threshold = perf[best_idx] * BAND_RATIO
    lo = hi = best_idx
    while lo > 0 and perf[lo - 1] >= threshold:
        lo -= 1
    while hi < len(points) - 1 and perf[hi + 1] >= threshold:
        hi += 1
    return ParameterRange(min=points[lo].value, max=points[hi].value, step=base.step)


def analyze(points: List[TrialPoint], cfg: ValidationConfig):
    """Return (confidence, reasoning) for one parameter sweep."""
    best = max(
        points,
        key=lambda p: p.performance * cfg.performance_weight + p.stability * cfg.stability_weight,
    )
    perf = [p.performance for p in points]
    spread = max(perf) - min(perf)
    avg_stability = float(np.mean([p.stability for p in points]))
    confidence = min(0.5 + min(spread, 0.3) + avg_stability * 0.2, 1.0)
    reasoning = (
        f"Best value: {best.value:g} "
        f"(Performance: {best.performance:.3f}, Stability: {best.stability:.3f})"
    )
    return confidence, reasoning


class ParameterValidator:
    def __init__(
        self,
        benchmark: Benchmark,
        catalog: Optional[ProfileCatalog] = None,
        config: Optional[ValidationConfig] = None,
        store: Optional[KeyValueStore] = None,
        categories: Optional[Sequence[DeviceCategory]] = None,
        parameter_ranges: Optional[Dict[str, ParameterRange]] = None,
    ):
        self.benchmark = benchmark
        self.catalog = catalog or ProfileCatalog()
        self.config = config or ValidationConfig()
        self.store = store
        self._categories = list(categories) if categories is not None else None
        self.parameter_ranges = dict(parameter_ranges or DEFAULT_PARAMETER_RANGES)
        self._busy = False
        self.history: List[ValidationRecord] = []
        if store is not None:
            self.history = load_record(store, VALIDATION_HISTORY_KEY, ValidationHistory,
                                       ValidationHistory).entries

    @property
    def busy(self) -> bool:
        return self._busy

    def categories(self) -> List[DeviceCategory]:
        return list(self._categories or DEFAULT_CATEGORIES)

    def category_for(self, device: DeviceInfo) -> DeviceCategory:
        return categorize(device, self._categories)

    def iter_validate(
        self, device: DeviceInfo, config: Optional[ValidationConfig] = None
    ) -> Generator[ValidationProgress, None, List[ValidationResult]]:
        cfg = config or self.config
        cfg.validate()
        if self._busy:
            raise ConcurrentOperationError("A validation run is already in progress")
        return self._validate_steps(device, cfg)

    def validate(self, device: DeviceInfo, config: Optional[ValidationConfig] = None,
                 token: Optional[CancellationToken] = None) -> List[ValidationResult]:
        return run_steps(self.iter_validate(device, config), token)

    async def validate_async(self, device: DeviceInfo, config: Optional[ValidationConfig] = None,
                             token: Optional[CancellationToken] = None) -> List[ValidationResult]:
        return await run_steps_async(self.iter_validate(device, config), token)

    def _validate_steps(self, device: DeviceInfo, cfg: ValidationConfig):
        if self._busy:
            raise ConcurrentOperationError("A validation run is already in progress")
        self._busy = True
        try:
            category = self.category_for(device)
            base_profile = self.catalog.select(device.capability)
            logger.info(
                f"Validating parameter ranges for category '{category.name}' "
                f"on '{base_profile.name}'"
            )
            results: List[ValidationResult] = []
            for param in TUNABLE_PARAMETERS:
                recommended = category.recommended_ranges[param]
                points: List[TrialPoint] = []
                for value in recommended.values():
                    profile = base_profile.with_tunables(**{param: value})
                    scenario = parameter_scenario(param, value)
                    scores = [
                        benchmark_score(self.benchmark.run(profile, device, scenario).metrics)
                        for _ in range(cfg.test_iterations)
                    ]
                    point = TrialPoint(
                        value=value,
                        performance=float(np.mean(scores)),
                        stability=stability_of(scores),
                    )
                    points.append(point)
                    logger.debug(
                        f"{param}={value:g}: performance={point.performance:.3f} "
                        f"stability={point.stability:.3f}"
                    )
                    yield ValidationProgress(
                        parameter=param,
                        value=value,
                        performance=point.performance,
                        stability=point.stability,
                    )

                confidence, reasoning = analyze(points, cfg)
                results.append(ValidationResult(
                    parameter=param,
                    category=category.name,
                    current_range=self.parameter_ranges[param],
                    recommended_range=narrow_range(points, recommended),
                    confidence=confidence,
                    reasoning=reasoning,
                    test_results=points,
                ))

            self.history.append(ValidationRecord(device=device, results=results))
            self._persist()
            log_event(
                logger, "validation_completed",
                category=category.name,
                confident=sum(1 for r in results if r.confidence >= cfg.min_confidence),
                parameters=len(results),
            )
            return results
        finally:
            self._busy = False

    def validated_ranges_for(self, device: DeviceInfo) -> Optional[Dict[str, ParameterRange]]:
        """Union of the recommended ranges validated on devices of the same class."""
        similar = [r for r in self.history if same_device_class(r.device, device)]
        if not similar:
            return None
        merged: Dict[str, ParameterRange] = {}
        for record in similar:
            for result in record.results:
                rec = result.recommended_range
                prev = merged.get(result.parameter)
                if prev is None:
                    merged[result.parameter] = rec
                else:
                    merged[result.parameter] = ParameterRange(
                        min=min(prev.min, rec.min),
                        max=max(prev.max, rec.max),
                        step=min(prev.step, rec.step),
                    )
        return merged

    def clear_history(self) -> None:
        self.history = []
        if self.store is not None:
            delete_record(self.store, VALIDATION_HISTORY_KEY)

    def _persist(self) -> None:
        if self.store is not None:
            save_record(self.store, VALIDATION_HISTORY_KEY, ValidationHistory(entries=self.history))
