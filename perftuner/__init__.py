"""
perftuner - adaptive performance tuning engine

Device-capability scoring, closed-loop profile control with per-frame
budgets and dynamic rate limiters, an iterative parameter optimizer, a
parameter-range validator and a cross-device clustering learner.
"""

from .config import (
    AdaptiveTuningConfig,
    EngineConfig,
    LearningConfig,
    OptimizationConfig,
    ValidationConfig,
)
from .engine import Diagnosis, TuningEngine
from .errors import (
    BenchmarkFailureError,
    ConcurrentOperationError,
    InvalidConfigurationError,
    OperationCancelledError,
    PersistenceFailureError,
    TuningError,
)
from .storage import InMemoryStore, JsonFileStore, KeyValueStore
from .tasks import CancellationToken, run_steps, run_steps_async
from .types import (
    BudgetStatus,
    CrossDeviceRecommendation,
    DeviceInfo,
    OptimizationResult,
    ParameterRange,
    PerformanceProfile,
    PerformanceSample,
    ValidationResult,
)

__all__ = [
    'AdaptiveTuningConfig',
    'EngineConfig',
    'LearningConfig',
    'OptimizationConfig',
    'ValidationConfig',
    'Diagnosis',
    'TuningEngine',
    'BenchmarkFailureError',
    'ConcurrentOperationError',
    'InvalidConfigurationError',
    'OperationCancelledError',
    'PersistenceFailureError',
    'TuningError',
    'InMemoryStore',
    'JsonFileStore',
    'KeyValueStore',
    'CancellationToken',
    'run_steps',
    'run_steps_async',
    'BudgetStatus',
    'CrossDeviceRecommendation',
    'DeviceInfo',
    'OptimizationResult',
    'ParameterRange',
    'PerformanceProfile',
    'PerformanceSample',
    'ValidationResult',
]
