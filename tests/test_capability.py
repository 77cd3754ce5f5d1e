"""
Test device capability scoring and device categories
"""

import random

import pytest

from perftuner.device.capability import (
    assess,
    describe_device,
    is_low_performance_device,
    normalize_network,
    same_device_class,
)
from perftuner.device.categories import DEFAULT_CATEGORIES, categorize
from perftuner.types import DeviceInfo
from tests.fixtures import make_device, set_random_seed
from tests.utils_asserts import assert_within_band


class TestAssess:
    """Capability score from device hints."""

    def setup_method(self):
        set_random_seed(0)

    def test_flagship_scores_one(self):
        hints = {"memory_gb": 8, "logical_cores": 8, "network": "fast", "battery_level": 1.0}
        assert assess(hints) == pytest.approx(1.0)

    def test_missing_hints_use_defaults(self):
        # 4 GB, 4 cores, medium network, half battery
        assert assess({}) == pytest.approx(0.15 + 0.15 + 0.14 + 0.10)
        assert assess(None) == pytest.approx(assess({}))

    def test_memory_and_cores_saturate_at_eight(self):
        small = assess({"memory_gb": 8, "logical_cores": 8, "network": "slow", "battery_level": 0.0})
        big = assess({"memory_gb": 64, "logical_cores": 32, "network": "slow", "battery_level": 0.0})
        assert small == pytest.approx(big)

    def test_accepts_objects_with_attributes(self):
        device = make_device(memory_gb=2, logical_cores=2, network="slow", battery_level=0.25)
        expected = 0.25 * 0.3 + 0.25 * 0.3 + 0.4 * 0.2 + 0.25 * 0.2
        assert assess(device) == pytest.approx(expected)

    def test_score_stays_in_unit_interval(self):
        rng = random.Random(0)
        networks = [None, "fast", "medium", "slow", "very-slow", "4g", "bogus"]
        for _ in range(200):
            hints = {
                "memory_gb": rng.choice([None, rng.uniform(0, 64)]),
                "logical_cores": rng.choice([None, rng.uniform(0, 32)]),
                "network": rng.choice(networks),
                "battery_level": rng.choice([None, rng.random()]),
            }
            assert_within_band(assess(hints), 0.0, 1.0)

    def test_is_pure(self):
        hints = {"memory_gb": 3, "logical_cores": 6, "network": "3g", "battery_level": 0.4}
        assert assess(hints) == assess(dict(hints))


class TestNetwork:
    def test_missing_is_medium(self):
        assert normalize_network(None) == "medium"
        assert normalize_network("") == "medium"

    def test_connection_type_aliases(self):
        assert normalize_network("4g") == "fast"
        assert normalize_network("3g") == "medium"
        assert normalize_network("2g") == "slow"
        assert normalize_network("slow-2g") == "very-slow"

    def test_unknown_label_is_very_slow(self):
        assert normalize_network("satellite") == "very-slow"


class TestDeviceHelpers:
    def test_low_performance_heuristic(self):
        assert is_low_performance_device({"memory_gb": 2, "logical_cores": 8})
        assert is_low_performance_device({"memory_gb": 8, "logical_cores": 2})
        assert is_low_performance_device({"memory_gb": 8, "logical_cores": 8, "network": "slow-2g"})
        assert not is_low_performance_device({"memory_gb": 8, "logical_cores": 8, "network": "4g"})

    def test_describe_device_scores_capability(self):
        device = describe_device(platform="web", memory_gb=8, logical_cores=8,
                                 network="4g", battery_level=1.0)
        assert isinstance(device, DeviceInfo)
        assert device.network == "fast"
        assert device.capability == pytest.approx(1.0)

    def test_describe_device_keeps_given_capability(self):
        device = describe_device(memory_gb=8, logical_cores=8, capability=0.15)
        assert device.capability == 0.15

    def test_same_device_class(self):
        a = make_device(capability=0.5)
        assert same_device_class(a, make_device(capability=0.65))
        assert not same_device_class(a, make_device(capability=0.75))
        assert not same_device_class(a, make_device(platform="other"))
        assert not same_device_class(a, make_device(memory_gb=8))


class TestCategories:
    @pytest.mark.parametrize("memory,cores,capability,expected", [
        (8, 8, 0.9, "Ultra High-End"),
        (6, 6, 0.7, "High-End"),
        (4, 4, 0.5, "Mid-Range"),
        (3, 3, 0.3, "Low-End"),
        (2, 2, 0.15, "Legacy"),
    ])
    def test_categorize(self, memory, cores, capability, expected):
        device = make_device(memory_gb=memory, logical_cores=cores, capability=capability)
        assert categorize(device).name == expected

    def test_missing_hints_skip_their_checks(self):
        device = make_device(memory_gb=None, logical_cores=None, capability=0.9)
        assert categorize(device).name == "Ultra High-End"

    def test_unmatched_device_defaults_to_mid_range(self):
        device = make_device(memory_gb=8, logical_cores=2, capability=0.5)
        assert categorize(device).name == "Mid-Range"

    def test_every_category_has_ranges_for_every_tunable(self):
        for category in DEFAULT_CATEGORIES:
            assert len(category.recommended_ranges) == 5
            for r in category.recommended_ranges.values():
                assert r.min <= r.max
