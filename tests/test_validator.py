"""
Test the parameter range validator
"""

import asyncio
import random

import pytest

from perftuner.config import ValidationConfig
from perftuner.device.catalog import ProfileCatalog
from perftuner.device.categories import MID_RANGE
from perftuner.errors import BenchmarkFailureError, ConcurrentOperationError, InvalidConfigurationError
from perftuner.optimize.benchmark import SimulatedBenchmark
from perftuner.optimize.validator import ParameterValidator, analyze, narrow_range, stability_of
from perftuner.storage import VALIDATION_HISTORY_KEY, InMemoryStore
from perftuner.types import TUNABLE_PARAMETERS, ParameterRange, TrialPoint
from tests.fixtures import ScriptedBenchmark, make_device, set_random_seed
from tests.utils_asserts import assert_range_within, assert_within_band

QUICK = ValidationConfig(test_iterations=2)


def make_validator(benchmark=None, store=None):
    return ParameterValidator(
        benchmark or SimulatedBenchmark(rng=random.Random(0), noise=0.0),
        ProfileCatalog(),
        ValidationConfig(),
        store,
    )


def points(values, performances, stability=1.0):
    return [TrialPoint(value=v, performance=p, stability=stability) for v, p in zip(values, performances)]


class TestAnalysis:
    def test_stability(self):
        assert stability_of([0.5, 0.5, 0.5]) == pytest.approx(1.0)
        assert stability_of([0.0, 1.0]) == pytest.approx(0.5)
        assert stability_of([0.0, 10.0]) == 0.0

    def test_narrow_range_keeps_contiguous_band(self):
        base = ParameterRange(min=10, max=70, step=10)
        pts = points([10, 20, 30, 40, 50, 60, 70], [0.5, 0.8, 0.95, 1.0, 0.92, 0.6, 0.97])
        narrowed = narrow_range(pts, base)
        assert (narrowed.min, narrowed.max, narrowed.step) == (30, 50, 10)

    def test_narrow_range_single_peak(self):
        base = ParameterRange(min=1, max=3, step=1)
        narrowed = narrow_range(points([1, 2, 3], [0.2, 0.9, 0.3]), base)
        assert (narrowed.min, narrowed.max) == (2, 2)

    def test_narrow_range_without_points(self):
        base = ParameterRange(min=1, max=3, step=1)
        assert narrow_range([], base) is base

    def test_analyze_confidence(self):
        pts = points([1, 2, 3], [0.5, 0.7, 0.6], stability=0.9)
        confidence, reasoning = analyze(pts, ValidationConfig())
        assert confidence == pytest.approx(0.5 + 0.2 + 0.9 * 0.2)
        assert reasoning.startswith("Best value: 2 ")

    def test_analyze_caps_spread_contribution(self):
        pts = points([1, 2], [0.1, 0.9], stability=1.0)
        confidence, _ = analyze(pts, ValidationConfig())
        assert confidence == pytest.approx(1.0)


class TestValidate:
    def setup_method(self):
        set_random_seed(0)

    def test_results_cover_every_tunable(self):
        validator = make_validator()
        results = validator.validate(make_device(), QUICK)
        assert [r.parameter for r in results] == list(TUNABLE_PARAMETERS)
        for result in results:
            assert result.category == "Mid-Range"
            assert_range_within(result.recommended_range, MID_RANGE.recommended_ranges[result.parameter])
            assert_within_band(result.confidence, 0.0, 1.0)
            assert len(result.test_results) == len(MID_RANGE.recommended_ranges[result.parameter].values())

    def test_every_value_benchmarked_per_iteration(self):
        benchmark = ScriptedBenchmark()
        make_validator(benchmark).validate(make_device(), QUICK)
        expected = sum(len(r.values()) for r in MID_RANGE.recommended_ranges.values()) * 2
        assert len(benchmark.calls) == expected

    def test_only_tested_parameter_changes(self):
        benchmark = ScriptedBenchmark()
        make_validator(benchmark).validate(make_device(), ValidationConfig(test_iterations=1))
        balanced = ProfileCatalog().get("balanced")
        for profile, scenario in benchmark.calls:
            parameter = scenario.name.replace("Parameter Test - ", "")
            for name in TUNABLE_PARAMETERS:
                if name != parameter:
                    assert getattr(profile, name) == getattr(balanced, name)

    def test_noise_free_runs_are_perfectly_stable(self):
        results = make_validator().validate(make_device(), QUICK)
        for result in results:
            assert all(p.stability == pytest.approx(1.0) for p in result.test_results)

    def test_benchmark_failure_propagates(self):
        store = InMemoryStore()
        validator = make_validator(ScriptedBenchmark(fail_after=4), store)
        with pytest.raises(BenchmarkFailureError):
            validator.validate(make_device(), QUICK)
        assert not validator.busy
        assert validator.history == []
        assert store.get(VALIDATION_HISTORY_KEY) is None

    def test_invalid_config(self):
        with pytest.raises(InvalidConfigurationError):
            make_validator().validate(make_device(), ValidationConfig(test_iterations=0))

    def test_concurrent_validation_rejected(self):
        validator = make_validator()
        steps = validator.iter_validate(make_device(), QUICK)
        next(steps)
        with pytest.raises(ConcurrentOperationError):
            validator.iter_validate(make_device(), QUICK)
        steps.close()
        assert not validator.busy

    def test_async_validation(self):
        validator = make_validator()
        results = asyncio.run(validator.validate_async(make_device(), QUICK))
        assert len(results) == 5


class TestValidationHistory:
    def test_validated_ranges_for_similar_devices(self):
        store = InMemoryStore()
        validator = make_validator(store=store)
        validator.validate(make_device(), QUICK)
        ranges = validator.validated_ranges_for(make_device(capability=0.45))
        assert set(ranges) == set(TUNABLE_PARAMETERS)
        assert validator.validated_ranges_for(make_device(platform="desktop")) is None

        reloaded = make_validator(store=store)
        assert len(reloaded.history) == 1
        assert reloaded.validated_ranges_for(make_device()) == ranges

    def test_ranges_merge_across_runs(self):
        validator = make_validator()
        validator.validate(make_device(), QUICK)
        first = validator.validated_ranges_for(make_device())
        validator.validate(make_device(capability=0.55), QUICK)
        merged = validator.validated_ranges_for(make_device())
        for name in TUNABLE_PARAMETERS:
            assert merged[name].min <= first[name].min
            assert merged[name].max >= first[name].max

    def test_clear_history(self):
        store = InMemoryStore()
        validator = make_validator(store=store)
        validator.validate(make_device(), QUICK)
        validator.clear_history()
        assert validator.history == []
        assert store.get(VALIDATION_HISTORY_KEY) is None

    def test_categories_listing(self):
        names = [c.name for c in make_validator().categories()]
        assert names == ["Ultra High-End", "High-End", "Mid-Range", "Low-End", "Legacy"]
