"""Benchmark-driven parameter optimization and range validation."""

from .advisor import PerformanceRecommendation, generate_recommendations
from .benchmark import BASELINE_SCENARIO, PROFILE_SCENARIO, Benchmark, SimulatedBenchmark
from .optimizer import DEFAULT_PARAMETER_RANGES, ParameterOptimizer
from .scoring import benchmark_score, estimate_improvements
from .validator import ParameterValidator

__all__ = [
    'PerformanceRecommendation',
    'generate_recommendations',
    'BASELINE_SCENARIO',
    'PROFILE_SCENARIO',
    'Benchmark',
    'SimulatedBenchmark',
    'DEFAULT_PARAMETER_RANGES',
    'ParameterOptimizer',
    'benchmark_score',
    'estimate_improvements',
    'ParameterValidator',
]
