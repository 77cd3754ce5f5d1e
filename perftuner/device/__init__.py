"""Device capability scoring, profile catalog and device categories."""

from .capability import assess, describe_device, is_low_performance_device, normalize_network
from .catalog import ProfileCatalog, profile_to_options, render_hints
from .categories import DeviceCategory, categorize

__all__ = [
    'assess',
    'describe_device',
    'is_low_performance_device',
    'normalize_network',
    'ProfileCatalog',
    'profile_to_options',
    'render_hints',
    'DeviceCategory',
    'categorize',
]
