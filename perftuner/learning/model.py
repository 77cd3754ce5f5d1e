"""
Persisted learning model.

``LearningModel`` is the single root object the learner stores under the
``learning_model`` key. Every nested record is a pydantic model so a blob read
back from the store is validated field by field.
"""

import time
from typing import List, Optional

from pydantic import BaseModel, Field

from ..types import DeviceInfo, PerformanceProfile

MODEL_VERSION = "1.0.0"


class ParameterStats(BaseModel):
    mean: float
    std: float = Field(ge=0)
    confidence: float = Field(ge=0.0, le=1.0)


class GlobalOptimizations(BaseModel):
    """Improvement-weighted running statistics per tunable."""
    throttle_interval: ParameterStats = Field(default_factory=lambda: ParameterStats(mean=16, std=8, confidence=0.5))
    debounce_delay: ParameterStats = Field(default_factory=lambda: ParameterStats(mean=100, std=50, confidence=0.5))
    touch_threshold: ParameterStats = Field(default_factory=lambda: ParameterStats(mean=10, std=3, confidence=0.5))
    touch_delay: ParameterStats = Field(default_factory=lambda: ParameterStats(mean=200, std=100, confidence=0.5))
    max_concurrent_animations: ParameterStats = Field(default_factory=lambda: ParameterStats(mean=6, std=2, confidence=0.5))

    def get(self, name: str) -> ParameterStats:
        return getattr(self, name)


class DeviceCluster(BaseModel):
    """
    A group of similar devices and the profiles optimized on them.

    ``devices`` and ``performance_profiles`` are parallel lists.
    ``estimated_average_improvement`` is derived from profile deltas against
    the catalog preset, not from re-measured benchmarks.
    """
    id: str
    name: str
    devices: List[DeviceInfo] = Field(default_factory=list)
    centroid: DeviceInfo
    performance_profiles: List[PerformanceProfile] = Field(default_factory=list)
    estimated_average_improvement: float = 0.0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    last_updated: float = Field(default_factory=time.time)


class LearningModel(BaseModel):
    version: str = MODEL_VERSION
    clusters: List[DeviceCluster] = Field(default_factory=list)
    global_optimizations: GlobalOptimizations = Field(default_factory=GlobalOptimizations)
    learning_rate: float = 0.1
    convergence_threshold: float = 0.05
    last_training: Optional[float] = None


def create_initial_model() -> LearningModel:
    return LearningModel()


def is_compatible(version: str) -> bool:
    """Stored models are readable when the major version matches."""
    return version.split(".", 1)[0] == MODEL_VERSION.split(".", 1)[0]
