"""
Test the profile catalog: presets, cold-start selection, rank stepping and
the option/render-hint views
"""

import pytest

from perftuner.device.catalog import ProfileCatalog, profile_to_options, render_hints
from perftuner.types import PROFILE_NAMES
from tests.fixtures import make_device


class TestSelection:
    def setup_method(self):
        self.catalog = ProfileCatalog()

    @pytest.mark.parametrize("capability,expected", [
        (1.0, "ultra-high"),
        (0.8, "ultra-high"),
        (0.79, "high"),
        (0.6, "high"),
        (0.5, "balanced"),
        (0.4, "balanced"),
        (0.3, "power-saver"),
        (0.2, "power-saver"),
        (0.19, "ultra-power-saver"),
        (0.0, "ultra-power-saver"),
    ])
    def test_select_thresholds(self, capability, expected):
        assert self.catalog.select(capability).name == expected

    def test_selection_is_monotonic_in_capability(self):
        previous_rank = -1
        for i in range(101):
            rank = self.catalog.select(i / 100.0).rank
            assert rank >= previous_rank
            previous_rank = rank

    def test_low_end_device_gets_most_conservative_profile(self):
        device = make_device(memory_gb=2, logical_cores=2, capability=0.15)
        profile = self.catalog.select(device.capability)
        assert profile.name == "ultra-power-saver"
        assert profile.throttle_interval == 50
        assert profile.max_concurrent_animations == 1


class TestPresets:
    def setup_method(self):
        self.catalog = ProfileCatalog()

    def test_catalog_order_and_ranks(self):
        names = [p.name for p in self.catalog.all()]
        assert tuple(names) == PROFILE_NAMES
        assert [self.catalog.rank_of(p) for p in self.catalog.all()] == [4, 3, 2, 1, 0]

    def test_higher_rank_means_tighter_timings(self):
        profiles = self.catalog.all()
        for higher, lower in zip(profiles, profiles[1:]):
            assert higher.throttle_interval < lower.throttle_interval
            assert higher.debounce_delay < lower.debounce_delay
            assert higher.max_concurrent_animations > lower.max_concurrent_animations

    def test_next_higher_and_lower_saturate(self):
        top = self.catalog.get("ultra-high")
        bottom = self.catalog.get("ultra-power-saver")
        assert self.catalog.next_higher(top) is top
        assert self.catalog.next_lower(bottom) is bottom
        assert self.catalog.next_higher(self.catalog.get("balanced")).name == "high"
        assert self.catalog.next_lower(self.catalog.get("balanced")).name == "power-saver"

    def test_unknown_profile_name(self):
        with pytest.raises(KeyError):
            self.catalog.get("turbo")

    def test_catalog_requires_five_profiles(self):
        with pytest.raises(ValueError):
            ProfileCatalog(self.catalog.all()[:3])


class TestViews:
    def test_profile_to_options(self):
        balanced = ProfileCatalog().get("balanced")
        options = profile_to_options(balanced)
        assert options["enable_touch_drag"] is True
        assert options["throttle_interval"] == 20
        assert options["debounce_delay"] == 100
        assert options["enable_performance_monitoring"] is False

    def test_render_hints_with_hardware_acceleration(self):
        hints = render_hints(ProfileCatalog().get("high"), "drag-preview")
        assert hints["use-hardware-acceleration"] == "true"
        assert hints["transform"] == "translate3d(0, 0, 0)"
        assert hints["scale-factor"] == "1.05"
        assert hints["rotate"] == "2deg"

    def test_render_hints_without_hardware_acceleration(self):
        hints = render_hints(ProfileCatalog().get("power-saver"), "drop-target")
        assert hints["use-hardware-acceleration"] == "false"
        assert "will-change" not in hints
        assert hints["scale-factor"] == "1.02"

    def test_render_hints_unknown_role(self):
        with pytest.raises(ValueError):
            render_hints(ProfileCatalog().get("high"), "tooltip")
