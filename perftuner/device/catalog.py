"""
Profile catalog: the five discrete presets from ultra-high to ultra-power-saver,
capability-based cold-start selection, rank stepping and the option/render-hint
views handed to UI collaborators.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..types import PerformanceProfile

logger = logging.getLogger(__name__)

# Capability lower bounds for the first four presets, in catalog order
SELECTION_THRESHOLDS = (0.8, 0.6, 0.4, 0.2)

DEFAULT_PROFILES: List[PerformanceProfile] = [
    PerformanceProfile(
        name="ultra-high",
        description="Maximum performance for high-end devices",
        target_fps=60,
        throttle_interval=8,
        debounce_delay=50,
        touch_threshold=5,
        touch_delay=100,
        max_concurrent_animations=10,
        animation_frame_budget=16,
        touch_event_budget=8,
        enable_hardware_acceleration=True,
        enable_monitoring=True,
        enable_frame_scheduling=True,
    ),
    PerformanceProfile(
        name="high",
        description="Optimized for modern devices",
        target_fps=60,
        throttle_interval=16,
        debounce_delay=75,
        touch_threshold=8,
        touch_delay=150,
        max_concurrent_animations=8,
        animation_frame_budget=16,
        touch_event_budget=16,
        enable_hardware_acceleration=True,
        enable_monitoring=True,
        enable_frame_scheduling=True,
    ),
    PerformanceProfile(
        name="balanced",
        description="Balanced performance and battery life",
        target_fps=60,
        throttle_interval=20,
        debounce_delay=100,
        touch_threshold=10,
        touch_delay=200,
        max_concurrent_animations=6,
        animation_frame_budget=20,
        touch_event_budget=20,
        enable_hardware_acceleration=True,
        enable_monitoring=False,
        enable_frame_scheduling=True,
    ),
    PerformanceProfile(
        name="power-saver",
        description="Optimized for battery life and older devices",
        target_fps=30,
        throttle_interval=32,
        debounce_delay=150,
        touch_threshold=12,
        touch_delay=300,
        max_concurrent_animations=3,
        animation_frame_budget=32,
        touch_event_budget=32,
        enable_hardware_acceleration=False,
        enable_monitoring=False,
        enable_frame_scheduling=True,
    ),
    PerformanceProfile(
        name="ultra-power-saver",
        description="Maximum battery life, minimal performance",
        target_fps=30,
        throttle_interval=50,
        debounce_delay=200,
        touch_threshold=15,
        touch_delay=400,
        max_concurrent_animations=1,
        animation_frame_budget=50,
        touch_event_budget=50,
        enable_hardware_acceleration=False,
        enable_monitoring=False,
        enable_frame_scheduling=False,
    ),
]

RENDER_ROLES = ("element", "drag-preview", "drop-target")


class ProfileCatalog:
    """Ordered list of presets, highest rank first."""

    def __init__(self, profiles: Optional[Sequence[PerformanceProfile]] = None):
        self._profiles: List[PerformanceProfile] = list(profiles or DEFAULT_PROFILES)
        if len(self._profiles) != len(SELECTION_THRESHOLDS) + 1:
            raise ValueError(
                f"catalog needs exactly {len(SELECTION_THRESHOLDS) + 1} profiles, "
                f"got {len(self._profiles)}"
            )
        self._index = {p.name: i for i, p in enumerate(self._profiles)}

    def all(self) -> List[PerformanceProfile]:
        return list(self._profiles)

    def get(self, name: str) -> PerformanceProfile:
        try:
            return self._profiles[self._index[name]]
        except KeyError:
            raise KeyError(f"Unknown profile '{name}', expected one of {list(self._index)}")

    def rank_of(self, profile: PerformanceProfile) -> int:
        """4 for the first (highest) preset down to 0 for the last."""
        idx = self._index.get(profile.name)
        if idx is None:
            return profile.rank
        return len(self._profiles) - 1 - idx

    def select(self, capability: float) -> PerformanceProfile:
        """Cold-start selection: first preset whose threshold the capability meets."""
        for idx, threshold in enumerate(SELECTION_THRESHOLDS):
            if capability >= threshold:
                return self._profiles[idx]
        return self._profiles[-1]

    def next_higher(self, profile: PerformanceProfile) -> PerformanceProfile:
        idx = self._index.get(profile.name)
        if idx is None or idx == 0:
            return profile
        return self._profiles[idx - 1]

    def next_lower(self, profile: PerformanceProfile) -> PerformanceProfile:
        idx = self._index.get(profile.name)
        if idx is None or idx == len(self._profiles) - 1:
            return profile
        return self._profiles[idx + 1]

    def lowest(self) -> PerformanceProfile:
        return self._profiles[-1]


def profile_to_options(profile: PerformanceProfile) -> Dict[str, Any]:
    """Flatten a profile into the option mapping the touch/drag layer consumes."""
    return {
        "enable_touch_drag": True,
        "touch_threshold": profile.touch_threshold,
        "touch_delay": profile.touch_delay,
        "enable_performance_monitoring": profile.enable_monitoring,
        "target_fps": profile.target_fps,
        "enable_throttling": profile.enable_throttling,
        "throttle_interval": profile.throttle_interval,
        "enable_debouncing": profile.enable_debouncing,
        "debounce_delay": profile.debounce_delay,
        "enable_frame_scheduling": profile.enable_frame_scheduling,
        "enable_hardware_acceleration": profile.enable_hardware_acceleration,
    }


def render_hints(profile: PerformanceProfile, role: str = "element") -> Dict[str, str]:
    """
    Style key/value pairs for a rendered element.

    The core never renders; the UI maps these pairs onto its own styling.
    Hardware-acceleration hints are only emitted when the profile enables them.
    """
    if role not in RENDER_ROLES:
        raise ValueError(f"Unknown render role '{role}', expected one of {RENDER_ROLES}")

    hints: Dict[str, str] = {
        "use-hardware-acceleration": "true" if profile.enable_hardware_acceleration else "false",
    }
    if profile.enable_hardware_acceleration:
        hints.update({
            "transform": "translate3d(0, 0, 0)",
            "will-change": "transform",
            "backface-visibility": "hidden",
            "perspective": "1000px",
        })

    if role == "drag-preview":
        hints["scale-factor"] = "1.05"
        hints["rotate"] = "2deg"
    elif role == "drop-target":
        hints["scale-factor"] = "1.02"
    else:
        hints["scale-factor"] = "1"
    return hints
