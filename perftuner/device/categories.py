"""
Device categories used by the parameter validator.

Each category pairs memory/core/capability criteria with the parameter ranges
recommended for that class of hardware. Criteria on a hint the device did not
report are skipped.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..types import DeviceInfo, ParameterRange


@dataclass(frozen=True)
class CategoryCriteria:
    memory_min: Optional[float] = None
    memory_max: Optional[float] = None
    cores_min: Optional[float] = None
    cores_max: Optional[float] = None
    capability_min: Optional[float] = None
    capability_max: Optional[float] = None
    platform: Optional[str] = None

    def matches(self, device: DeviceInfo) -> bool:
        memory = device.memory_gb
        cores = device.logical_cores
        if memory is not None:
            if self.memory_min is not None and memory < self.memory_min:
                return False
            if self.memory_max is not None and memory > self.memory_max:
                return False
        if cores is not None:
            if self.cores_min is not None and cores < self.cores_min:
                return False
            if self.cores_max is not None and cores > self.cores_max:
                return False
        if self.capability_min is not None and device.capability < self.capability_min:
            return False
        if self.capability_max is not None and device.capability > self.capability_max:
            return False
        if self.platform is not None and device.platform != self.platform:
            return False
        return True


@dataclass(frozen=True)
class DeviceCategory:
    name: str
    description: str
    criteria: CategoryCriteria
    recommended_ranges: Dict[str, ParameterRange] = field(default_factory=dict)


def _ranges(throttle, debounce, touch_threshold, touch_delay, animations) -> Dict[str, ParameterRange]:
    table = {
        "throttle_interval": throttle,
        "debounce_delay": debounce,
        "touch_threshold": touch_threshold,
        "touch_delay": touch_delay,
        "max_concurrent_animations": animations,
    }
    return {k: ParameterRange(min=lo, max=hi, step=step) for k, (lo, hi, step) in table.items()}


ULTRA_HIGH_END = DeviceCategory(
    name="Ultra High-End",
    description="Latest flagship devices with maximum performance",
    criteria=CategoryCriteria(memory_min=8, cores_min=8, capability_min=0.8),
    recommended_ranges=_ranges((8, 20, 1), (25, 100, 10), (3, 8, 1), (30, 150, 20), (8, 15, 1)),
)
HIGH_END = DeviceCategory(
    name="High-End",
    description="Modern devices with good performance",
    criteria=CategoryCriteria(memory_min=6, cores_min=6, capability_min=0.6, capability_max=0.8),
    recommended_ranges=_ranges((12, 25, 2), (50, 150, 15), (5, 10, 1), (50, 200, 25), (6, 12, 1)),
)
MID_RANGE = DeviceCategory(
    name="Mid-Range",
    description="Average devices with balanced performance",
    criteria=CategoryCriteria(memory_min=4, cores_min=4, capability_min=0.4, capability_max=0.6),
    recommended_ranges=_ranges((16, 32, 2), (75, 200, 20), (8, 12, 1), (100, 300, 30), (4, 8, 1)),
)
LOW_END = DeviceCategory(
    name="Low-End",
    description="Budget devices with limited performance",
    criteria=CategoryCriteria(memory_max=4, cores_max=4, capability_max=0.4),
    recommended_ranges=_ranges((25, 50, 5), (100, 300, 25), (10, 15, 1), (200, 500, 50), (2, 5, 1)),
)
LEGACY = DeviceCategory(
    name="Legacy",
    description="Older devices with minimal performance",
    criteria=CategoryCriteria(memory_max=2, cores_max=2, capability_max=0.2),
    recommended_ranges=_ranges((40, 60, 5), (150, 400, 50), (12, 18, 1), (300, 600, 100), (1, 3, 1)),
)

# Listing order, best hardware first
DEFAULT_CATEGORIES: List[DeviceCategory] = [ULTRA_HIGH_END, HIGH_END, MID_RANGE, LOW_END, LEGACY]

# Legacy criteria are a subset of Low-End's, so it is tried first
_MATCH_ORDER: List[DeviceCategory] = [ULTRA_HIGH_END, HIGH_END, MID_RANGE, LEGACY, LOW_END]


def categorize(device: DeviceInfo, categories: Optional[Sequence[DeviceCategory]] = None) -> DeviceCategory:
    """First matching category, or Mid-Range when nothing matches."""
    ordered = list(categories) if categories is not None else _MATCH_ORDER
    for category in ordered:
        if category.criteria.matches(device):
            return category
    return MID_RANGE
