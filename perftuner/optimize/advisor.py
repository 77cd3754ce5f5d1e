"""
Threshold-based performance advice for one benchmark pass.
"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from ..types import BenchmarkMetrics, DeviceInfo, PerformanceProfile

RecommendationType = Literal["throttle", "debounce", "budget", "profile", "hardware"]
Priority = Literal["low", "medium", "high", "critical"]


@dataclass(frozen=True)
class Thresholds:
    excellent: float
    good: float
    acceptable: float
    poor: float


@dataclass
class OptimizationThresholds:
    fps: Thresholds = field(default_factory=lambda: Thresholds(58, 50, 30, 20))
    latency_ms: Thresholds = field(default_factory=lambda: Thresholds(8, 16, 33, 50))
    frame_time_ms: Thresholds = field(default_factory=lambda: Thresholds(12, 16, 33, 50))
    budget_utilization: Thresholds = field(default_factory=lambda: Thresholds(0.7, 0.8, 0.9, 1.0))


@dataclass(frozen=True)
class PerformanceRecommendation:
    type: RecommendationType
    priority: Priority
    current_value: float
    recommended_value: float
    reason: str
    expected_improvement: str


def generate_recommendations(
    metrics: BenchmarkMetrics,
    profile: PerformanceProfile,
    device: DeviceInfo,
    thresholds: Optional[OptimizationThresholds] = None,
) -> List[PerformanceRecommendation]:
    t = thresholds or OptimizationThresholds()
    recs: List[PerformanceRecommendation] = []

    if metrics.fps < t.fps.poor:
        recs.append(PerformanceRecommendation(
            "profile", "critical", profile.throttle_interval,
            min(profile.throttle_interval * 1.5, 50),
            "FPS is critically low", "Reduce frame processing load",
        ))
    elif metrics.fps < t.fps.acceptable:
        recs.append(PerformanceRecommendation(
            "throttle", "high", profile.throttle_interval,
            min(profile.throttle_interval * 1.2, 32),
            "FPS below acceptable threshold", "Increase throttle interval",
        ))

    if metrics.latency_ms > t.latency_ms.poor:
        recs.append(PerformanceRecommendation(
            "debounce", "critical", profile.debounce_delay,
            max(profile.debounce_delay * 0.7, 25),
            "Touch latency is critically high", "Reduce debounce delay for responsiveness",
        ))
    elif metrics.latency_ms > t.latency_ms.acceptable:
        recs.append(PerformanceRecommendation(
            "debounce", "high", profile.debounce_delay,
            max(profile.debounce_delay * 0.8, 50),
            "Touch latency above acceptable threshold", "Optimize debounce timing",
        ))

    if metrics.frame_time_ms > t.frame_time_ms.poor:
        recs.append(PerformanceRecommendation(
            "budget", "critical", profile.animation_frame_budget,
            min(profile.animation_frame_budget * 1.3, 50),
            "Frame time is critically high", "Increase frame budget allocation",
        ))

    if device.capability < 0.3:
        recs.append(PerformanceRecommendation(
            "hardware", "high", 1.0 if profile.enable_hardware_acceleration else 0.0, 0.0,
            "Low-end device detected", "Disable hardware acceleration",
        ))

    if device.battery_level is not None and device.battery_level < 0.2:
        recs.append(PerformanceRecommendation(
            "profile", "medium", profile.throttle_interval,
            min(profile.throttle_interval * 1.5, 50),
            "Low battery level", "Switch to power-saving mode",
        ))

    return recs
