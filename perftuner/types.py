"""
Core data contracts for the tuning engine.

Records that are persisted (device snapshots, profiles, optimization and
validation results) are pydantic models so that blobs read back from the
key-value store are validated field by field. Transient runtime records
(telemetry samples, benchmark results, budget status, progress events) are
plain dataclasses.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Tunable profile fields, in the order used for parameter vectors
TUNABLE_PARAMETERS: Tuple[str, ...] = (
    "throttle_interval",
    "debounce_delay",
    "touch_threshold",
    "touch_delay",
    "max_concurrent_animations",
)

# Catalog order, highest rank first
PROFILE_NAMES: Tuple[str, ...] = (
    "ultra-high",
    "high",
    "balanced",
    "power-saver",
    "ultra-power-saver",
)
PROFILE_RANKS: Dict[str, int] = {
    name: len(PROFILE_NAMES) - 1 - idx for idx, name in enumerate(PROFILE_NAMES)
}

Complexity = Literal["low", "medium", "high"]


class DeviceInfo(BaseModel):
    """
    Immutable device snapshot taken once per session.

    Optional hints stay ``None`` when the host could not resolve them; the
    capability assessor applies documented defaults for those.
    """
    model_config = ConfigDict(frozen=True)

    platform: str = "unknown"
    memory_gb: Optional[float] = Field(default=None, ge=0)
    logical_cores: Optional[float] = Field(default=None, ge=0)
    network: Optional[str] = None
    battery_level: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    screen_resolution: str = ""
    pixel_ratio: float = Field(default=1.0, gt=0)
    touch_support: bool = False
    capability: float = Field(default=0.5, ge=0.0, le=1.0)


class PerformanceProfile(BaseModel):
    """Named bundle of timing/concurrency parameters."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    target_fps: float = Field(gt=0)
    throttle_interval: float = Field(gt=0)     # ms
    debounce_delay: float = Field(gt=0)        # ms
    touch_threshold: float = Field(gt=0)       # px
    touch_delay: float = Field(gt=0)           # ms
    max_concurrent_animations: int = Field(ge=1)
    animation_frame_budget: float = Field(gt=0)  # ms per frame
    touch_event_budget: float = Field(gt=0)      # ms per frame
    enable_hardware_acceleration: bool = True
    enable_monitoring: bool = True
    enable_frame_scheduling: bool = True
    enable_throttling: bool = True
    enable_debouncing: bool = True

    @property
    def rank(self) -> int:
        """Ordinal rank, 4 for ultra-high down to 0 for ultra-power-saver."""
        return PROFILE_RANKS.get(self.name, 0)

    def tunables(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in TUNABLE_PARAMETERS}

    def with_tunables(self, **values: float) -> "PerformanceProfile":
        """Return a copy with the given tunable fields replaced."""
        update = {}
        for key, value in values.items():
            if key not in TUNABLE_PARAMETERS:
                raise KeyError(f"Unknown tunable parameter '{key}'")
            if key == "max_concurrent_animations":
                value = max(1, int(round(value)))
            update[key] = value
        return self.model_copy(update=update)


class ParameterRange(BaseModel):
    """Inclusive numeric range with a step."""
    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    step: float = Field(gt=0)

    @model_validator(mode="after")
    def _check_order(self) -> "ParameterRange":
        if self.min > self.max:
            raise ValueError(f"range min {self.min} exceeds max {self.max}")
        return self

    def values(self) -> List[float]:
        """Every value from min to max (inclusive) in increments of step."""
        count = int((self.max - self.min) / self.step + 1e-9)
        return [self.min + i * self.step for i in range(count + 1)]

    def clamp(self, value: float) -> float:
        """Clamp into the range and snap to the nearest step."""
        clamped = max(self.min, min(self.max, value))
        steps = round((clamped - self.min) / self.step)
        return min(self.max, self.min + steps * self.step)


class Improvements(BaseModel):
    """Signed per-metric improvement ratios."""
    model_config = ConfigDict(frozen=True)

    fps: float = 0.0
    latency: float = 0.0
    frame_time: float = 0.0
    overall: float = 0.0


class OptimizationResult(BaseModel):
    """Outcome of one optimizer run. Immutable after creation."""
    model_config = ConfigDict(frozen=True)

    success: bool
    device: DeviceInfo
    original_profile: PerformanceProfile
    optimized_profile: PerformanceProfile
    improvements: Improvements = Field(default_factory=Improvements)
    recommendations: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    iterations: int = 0
    converged: bool = False
    baseline_score: float = 0.0
    best_score: float = 0.0
    best_score_trace: List[float] = Field(default_factory=list)
    error: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)


class TrialPoint(BaseModel):
    """One (value, performance, stability) triple measured by the validator."""
    model_config = ConfigDict(frozen=True)

    value: float
    performance: float
    stability: float


class ValidationResult(BaseModel):
    """Per-parameter outcome of one validation run."""
    model_config = ConfigDict(frozen=True)

    parameter: str
    category: str
    current_range: ParameterRange
    recommended_range: ParameterRange
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    test_results: List[TrialPoint] = Field(default_factory=list)


@dataclass(frozen=True)
class PerformanceSample:
    """One telemetry measurement pushed by the UI."""
    fps: float
    frame_time_ms: float
    latency_ms: float
    render_time_ms: float = 0.0
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class BenchmarkScenario:
    """Interaction pass description handed to a benchmark."""
    name: str
    description: str
    duration_s: float
    event_count: int
    complexity: Complexity = "medium"
    interaction_type: str = "touch"


@dataclass(frozen=True)
class BenchmarkMetrics:
    """Averaged metrics of one benchmark pass."""
    fps: float
    frame_time_ms: float
    latency_ms: float
    render_time_ms: float = 0.0


@dataclass(frozen=True)
class BenchmarkResult:
    """Result of running a scenario with a profile on a device."""
    scenario: BenchmarkScenario
    profile: PerformanceProfile
    device: DeviceInfo
    metrics: BenchmarkMetrics
    success: bool = True
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class BudgetStatus:
    """Snapshot of the per-frame budgets exposed to the UI."""
    frame_budget_remaining_ms: float
    event_budget_remaining_ms: float
    interaction_level: float


@dataclass(frozen=True)
class CrossDeviceRecommendation:
    """Profile recommendation derived from similar devices."""
    device: DeviceInfo
    recommended_profile: PerformanceProfile
    confidence: float
    reasoning: str
    similar_devices: List[DeviceInfo] = field(default_factory=list)
    estimated_improvement: float = 0.0
    cluster_id: Optional[str] = None


@dataclass(frozen=True)
class OptimizationProgress:
    """Yielded by the optimizer after each benchmark iteration."""
    iteration: int
    candidate_score: float
    best_score: float
    explored: bool
    improved: bool


@dataclass(frozen=True)
class ValidationProgress:
    """Yielded by the validator after each tested value."""
    parameter: str
    value: float
    performance: float
    stability: float


@dataclass(frozen=True)
class TrainingProgress:
    """Yielded by the learner between training stages and K-means iterations."""
    stage: str
    iteration: int = 0
    movement: float = 0.0
