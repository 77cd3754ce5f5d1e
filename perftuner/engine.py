"""
TuningEngine: the single handle a host constructs once per session.

It owns the adaptive controller (live telemetry window, active profile and
budgets), the optimizer, the validator and the cross-device learner, and wires
their results together: successful optimizations feed the learner, and learned
recommendations can be installed into the controller.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from .config import EngineConfig, OptimizationConfig, ValidationConfig
from .control.controller import AdaptiveController
from .device.catalog import ProfileCatalog, render_hints
from .errors import BenchmarkFailureError, TuningError
from .learning.learner import CrossDeviceLearner
from .optimize.advisor import PerformanceRecommendation, generate_recommendations
from .optimize.benchmark import PROFILE_SCENARIO, Benchmark, SimulatedBenchmark
from .optimize.optimizer import ParameterOptimizer
from .optimize.validator import ParameterValidator
from .storage import InMemoryStore, JsonFileStore, KeyValueStore
from .tasks import CancellationToken
from .types import (
    BenchmarkResult,
    BudgetStatus,
    CrossDeviceRecommendation,
    DeviceInfo,
    OptimizationResult,
    PerformanceProfile,
    PerformanceSample,
    ValidationResult,
)

logger = logging.getLogger(__name__)


@dataclass
class Diagnosis:
    """One benchmark of the active profile with threshold-based advice."""
    profile: PerformanceProfile
    result: Optional[BenchmarkResult] = None
    recommendations: List[PerformanceRecommendation] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class TuningEngine:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[KeyValueStore] = None,
        benchmark: Optional[Benchmark] = None,
        catalog: Optional[ProfileCatalog] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or EngineConfig()
        self.config.validate()
        seed = self.config.rng_seed
        self.catalog = catalog or ProfileCatalog()
        self.clock = clock
        if store is None:
            store = JsonFileStore(self.config.store_dir) if self.config.store_dir else InMemoryStore()
        self.store = store
        self.benchmark = benchmark or SimulatedBenchmark(rng=random.Random(seed))

        self.optimizer = ParameterOptimizer(
            self.benchmark, self.catalog, self.config.optimization, store,
            rng=random.Random(seed),
        )
        self.validator = ParameterValidator(
            self.benchmark, self.catalog, self.config.validation, store,
        )
        self.learner = CrossDeviceLearner(
            self.catalog, self.config.learning, store,
            rng=random.Random(seed), np_rng=np.random.default_rng(seed), clock=clock,
        )
        self.device: Optional[DeviceInfo] = None
        self.controller: Optional[AdaptiveController] = None

    # ---- session ---------------------------------------------------------

    def start(self, device: DeviceInfo) -> PerformanceProfile:
        """Begin a session on ``device`` and load learned state."""
        self.device = device
        self.controller = AdaptiveController(device, self.catalog, self.config.adaptive, clock=self.clock)
        self.learner.load()
        logger.info(
            f"Tuning engine started: platform={device.platform} "
            f"capability={device.capability:.3f} profile={self.controller.profile.name}"
        )
        return self.controller.profile

    def _controller(self) -> AdaptiveController:
        if self.controller is None:
            raise TuningError("Engine not started; call start(device) first")
        return self.controller

    def _device(self, device: Optional[DeviceInfo]) -> DeviceInfo:
        if device is not None:
            return device
        if self.device is None:
            raise TuningError("No device given and engine not started")
        return self.device

    # ---- live control ----------------------------------------------------

    def push_sample(self, sample: PerformanceSample) -> None:
        self._controller().push_sample(sample)

    def interaction_event(self, kind: str = "touch") -> None:
        self._controller().interaction_event(kind)

    def tick(self) -> PerformanceProfile:
        return self._controller().step()

    @property
    def current_profile(self) -> PerformanceProfile:
        return self._controller().profile

    def budget_status(self) -> BudgetStatus:
        return self._controller().budget_status()

    def render_hints(self, role: str = "element"):
        return render_hints(self.current_profile, role)

    def can_execute_frame(self, estimated_ms: float) -> bool:
        return self._controller().budget.can_execute_frame(estimated_ms)

    def can_execute_event(self, estimated_ms: float) -> bool:
        return self._controller().budget.can_execute_event(estimated_ms)

    def record_frame_time(self, actual_ms: float) -> None:
        self._controller().budget.record_frame_time(actual_ms)

    def record_event_time(self, actual_ms: float) -> None:
        self._controller().budget.record_event_time(actual_ms)

    def reset_to_optimal(self) -> PerformanceProfile:
        return self._controller().reset_to_optimal()

    # ---- optimization / validation / learning ----------------------------

    def optimize(self, device: Optional[DeviceInfo] = None,
                 config: Optional[OptimizationConfig] = None,
                 token: Optional[CancellationToken] = None) -> OptimizationResult:
        device = self._device(device)
        result = self.optimizer.optimize(device, config, token)
        self._after_optimize(device, result)
        return result

    async def optimize_async(self, device: Optional[DeviceInfo] = None,
                             config: Optional[OptimizationConfig] = None,
                             token: Optional[CancellationToken] = None) -> OptimizationResult:
        device = self._device(device)
        result = await self.optimizer.optimize_async(device, config, token)
        self._after_optimize(device, result)
        return result

    def _after_optimize(self, device: DeviceInfo, result: OptimizationResult) -> None:
        if result.success:
            self.learner.add_result(device, result)

    def validate(self, device: Optional[DeviceInfo] = None,
                 config: Optional[ValidationConfig] = None,
                 token: Optional[CancellationToken] = None) -> List[ValidationResult]:
        return self.validator.validate(self._device(device), config, token)

    async def validate_async(self, device: Optional[DeviceInfo] = None,
                             config: Optional[ValidationConfig] = None,
                             token: Optional[CancellationToken] = None) -> List[ValidationResult]:
        return await self.validator.validate_async(self._device(device), config, token)

    def train(self, token: Optional[CancellationToken] = None) -> bool:
        return self.learner.train(token)

    async def train_async(self, token: Optional[CancellationToken] = None) -> bool:
        return await self.learner.train_async(token)

    def recommend(self, device: Optional[DeviceInfo] = None) -> Optional[CrossDeviceRecommendation]:
        return self.learner.recommend(self._device(device))

    def apply_learned_profile(self, min_confidence: Optional[float] = None) -> Optional[PerformanceProfile]:
        """Install the learned recommendation when it is confident enough."""
        threshold = self.config.min_recommendation_confidence if min_confidence is None else min_confidence
        rec = self.recommend()
        if rec is None or rec.confidence < threshold:
            logger.info(
                "Keeping catalog profile, no learned recommendation above "
                f"confidence {threshold:.2f}"
            )
            return None
        return self._controller().override(rec.recommended_profile)

    def diagnose(self) -> Diagnosis:
        """Benchmark the active profile once and return threshold-based advice."""
        controller = self._controller()
        profile = controller.profile
        try:
            result = self.benchmark.run(profile, controller.device, PROFILE_SCENARIO)
        except BenchmarkFailureError as e:
            logger.warning(f"Diagnosis benchmark failed: {e}")
            return Diagnosis(profile=profile, error=str(e))
        recs = generate_recommendations(result.metrics, profile, controller.device)
        return Diagnosis(profile=profile, result=result, recommendations=recs)
