"""
Device capability scoring.

``assess`` folds best-effort platform hints into a single 0-1 score. It is pure
and synchronous: asynchronous hints (battery level, network class) must be
resolved by the host before it builds the hints object.
"""

import logging
from typing import Any, Mapping, Optional

from ..types import DeviceInfo

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_GB = 4.0
DEFAULT_CORES = 4.0
DEFAULT_NETWORK = "medium"
DEFAULT_BATTERY = 0.5

NETWORK_SCORES = {
    "fast": 1.0,
    "medium": 0.7,
    "slow": 0.4,
    "very-slow": 0.2,
}

# Browser effective-connection-type labels
NETWORK_ALIASES = {
    "4g": "fast",
    "3g": "medium",
    "2g": "slow",
    "slow-2g": "very-slow",
}


def _hint(hints: Any, name: str) -> Any:
    if hints is None:
        return None
    if isinstance(hints, Mapping):
        return hints.get(name)
    return getattr(hints, name, None)


def normalize_network(network: Optional[str]) -> str:
    """Map a raw network label onto one of the four tiers.

    Missing labels mean ``medium``; labels we do not recognise are treated as
    ``very-slow``.
    """
    if network is None or network == "":
        return DEFAULT_NETWORK
    label = str(network).strip().lower()
    label = NETWORK_ALIASES.get(label, label)
    if label not in NETWORK_SCORES:
        return "very-slow"
    return label


def assess(hints: Any = None) -> float:
    """
    Score a device between 0 and 1.

    Args:
        hints: a ``DeviceInfo``, a mapping or any object exposing
            ``memory_gb``, ``logical_cores``, ``network`` and ``battery_level``.
            Missing hints fall back to 4 GB, 4 cores, medium network and half
            battery.

    Returns:
        memory (0.3) + cores (0.3) + network (0.2) + battery (0.2), clamped to 1.
    """
    memory = _hint(hints, "memory_gb")
    cores = _hint(hints, "logical_cores")
    battery = _hint(hints, "battery_level")

    memory = DEFAULT_MEMORY_GB if memory is None else max(0.0, float(memory))
    cores = DEFAULT_CORES if cores is None else max(0.0, float(cores))
    battery = DEFAULT_BATTERY if battery is None else min(1.0, max(0.0, float(battery)))
    network = normalize_network(_hint(hints, "network"))

    score = (
        min(memory / 8.0, 1.0) * 0.3
        + min(cores / 8.0, 1.0) * 0.3
        + NETWORK_SCORES[network] * 0.2
        + battery * 0.2
    )
    return min(1.0, max(0.0, score))


def is_low_performance_device(hints: Any = None) -> bool:
    """Quick heuristic: under 4 GB, under 4 cores, or a very slow network."""
    memory = _hint(hints, "memory_gb")
    cores = _hint(hints, "logical_cores")
    memory = DEFAULT_MEMORY_GB if memory is None else float(memory)
    cores = DEFAULT_CORES if cores is None else float(cores)
    network = normalize_network(_hint(hints, "network"))
    return memory < 4 or cores < 4 or network == "very-slow"


def describe_device(
    platform: str = "unknown",
    memory_gb: Optional[float] = None,
    logical_cores: Optional[float] = None,
    network: Optional[str] = None,
    battery_level: Optional[float] = None,
    screen_resolution: str = "",
    pixel_ratio: float = 1.0,
    touch_support: bool = False,
    capability: Optional[float] = None,
) -> DeviceInfo:
    """Build a ``DeviceInfo`` snapshot, scoring capability unless given."""
    hints = {
        "memory_gb": memory_gb,
        "logical_cores": logical_cores,
        "network": network,
        "battery_level": battery_level,
    }
    if capability is None:
        capability = assess(hints)
    device = DeviceInfo(
        platform=platform,
        memory_gb=memory_gb,
        logical_cores=logical_cores,
        network=normalize_network(network) if network is not None else None,
        battery_level=battery_level,
        screen_resolution=screen_resolution,
        pixel_ratio=pixel_ratio,
        touch_support=touch_support,
        capability=capability,
    )
    logger.debug(f"Described device platform={platform} capability={capability:.3f}")
    return device


def same_device_class(a: DeviceInfo, b: DeviceInfo, capability_tolerance: float = 0.2) -> bool:
    """Same platform, memory and cores, and capability within the tolerance."""
    return (
        a.platform == b.platform
        and a.memory_gb == b.memory_gb
        and a.logical_cores == b.logical_cores
        and abs(a.capability - b.capability) <= capability_tolerance
    )
