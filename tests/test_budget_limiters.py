"""
Test per-frame budgets, dynamic rate limiters, interaction tracking and the
telemetry window
"""

import asyncio
import random

import pytest

from perftuner.control.budget import PerformanceBudgetManager
from perftuner.control.interaction import InteractionTracker
from perftuner.control.limiters import DynamicDebouncer, DynamicThrottler
from perftuner.metrics.sample_window import SampleWindow
from tests.fixtures import FakeClock, make_sample, set_random_seed
from tests.utils_asserts import assert_within_band


class TestBudget:
    def setup_method(self):
        self.clock = FakeClock(0.0)
        self.budget = PerformanceBudgetManager(16, 8, clock=self.clock)

    def test_fresh_frame_admits_full_budget(self):
        assert self.budget.can_execute_frame(16)
        assert not self.budget.can_execute_frame(16.5)
        assert self.budget.can_execute_event(8)

    def test_recording_debits_budget(self):
        self.budget.record_frame_time(10)
        assert self.budget.can_execute_frame(5)
        assert not self.budget.can_execute_frame(7)
        assert self.budget.can_execute_event(8)

    def test_remaining_never_negative(self):
        self.budget.record_frame_time(40)
        self.budget.record_event_time(-5)
        assert self.budget.frame_remaining_ms() == 0
        assert self.budget.event_remaining_ms() == 8
        assert not self.budget.can_execute_frame(0.1)

    def test_budget_resets_after_a_frame(self):
        self.budget.record_frame_time(16)
        self.clock.advance(0.010)
        assert not self.budget.can_execute_frame(1)
        self.clock.advance(0.007)
        assert self.budget.can_execute_frame(16)

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            PerformanceBudgetManager(-1, 8)


class TestThrottler:
    def setup_method(self):
        set_random_seed(0)
        self.clock = FakeClock(0.0)

    def test_fires_at_most_once_per_interval(self):
        throttle = DynamicThrottler(16, clock=self.clock)
        fired = []
        assert throttle(lambda: fired.append(1))
        self.clock.advance(0.010)
        assert not throttle(lambda: fired.append(2))
        self.clock.advance(0.007)
        assert throttle(lambda: fired.append(3))
        assert fired == [1, 3]

    def test_base_interval_is_clamped(self):
        assert DynamicThrottler(2, clock=self.clock).effective_interval_ms == 8
        assert DynamicThrottler(90, clock=self.clock).effective_interval_ms == 50

    def test_poor_performance_stretches_interval(self):
        throttle = DynamicThrottler(20, clock=self.clock)
        assert throttle.observe(0.5) == pytest.approx(22)

    def test_good_performance_shrinks_interval(self):
        throttle = DynamicThrottler(20, clock=self.clock)
        assert throttle.observe(1.0) == pytest.approx(18)

    def test_interval_stays_within_bounds(self):
        rng = random.Random(0)
        for _ in range(20):
            throttle = DynamicThrottler(rng.uniform(1, 80), clock=self.clock)
            for _ in range(100):
                throttle(lambda: None, metric=rng.uniform(0, 2))
                assert_within_band(throttle.effective_interval_ms, 8, 50)

    def test_static_throttler_ignores_metrics(self):
        throttle = DynamicThrottler(20, dynamic=False, clock=self.clock)
        throttle(lambda: None, metric=0.0)
        assert throttle.effective_interval_ms == 20


class TestDebouncer:
    def setup_method(self):
        self.clock = FakeClock(0.0)

    def test_delay_follows_interaction_level(self):
        debounce = DynamicDebouncer(100, clock=self.clock)
        assert debounce.delay_for(0.9) == 50
        assert debounce.delay_for(0.5) == 100
        assert debounce.delay_for(0.1) == 150

    def test_delay_bounds(self):
        assert DynamicDebouncer(40, clock=self.clock).delay_for(0.9) == 25
        assert DynamicDebouncer(250, clock=self.clock).delay_for(0.1) == 300

    def test_poll_fires_after_quiet_period(self):
        debounce = DynamicDebouncer(100, clock=self.clock)
        fired = []
        debounce(lambda: fired.append(1), interaction_level=0.9)
        self.clock.advance(0.049)
        assert not debounce.poll()
        self.clock.advance(0.002)
        assert debounce.poll()
        assert fired == [1]
        assert not debounce.pending

    def test_new_call_replaces_pending(self):
        debounce = DynamicDebouncer(100, clock=self.clock)
        fired = []
        debounce(lambda: fired.append("first"))
        self.clock.advance(0.05)
        debounce(lambda: fired.append("second"))
        self.clock.advance(0.06)
        assert not debounce.poll()
        self.clock.advance(0.05)
        assert debounce.poll()
        assert fired == ["second"]

    def test_flush_and_cancel(self):
        debounce = DynamicDebouncer(100, clock=self.clock)
        fired = []
        debounce(lambda: fired.append(1))
        assert debounce.flush()
        debounce(lambda: fired.append(2))
        debounce.cancel()
        assert not debounce.flush()
        assert fired == [1]

    def test_asyncio_loop_scheduling(self):
        async def scenario():
            fired = []
            debounce = DynamicDebouncer(30, min_delay_ms=1, loop=asyncio.get_running_loop())
            debounce(lambda: fired.append("late"), interaction_level=0.9)
            debounce(lambda: fired.append("only"), interaction_level=0.9)
            await asyncio.sleep(0.1)
            return fired

        assert asyncio.run(scenario()) == ["only"]


class TestInteractionTracker:
    def test_neutral_before_first_event(self):
        assert InteractionTracker(clock=FakeClock()).level() == 0.5

    def test_level_counts_recent_events(self):
        clock = FakeClock()
        tracker = InteractionTracker(window_seconds=5, saturation=10, clock=clock)
        for _ in range(4):
            tracker.record("touch")
        assert tracker.level() == pytest.approx(0.4)
        clock.advance(6)
        assert tracker.level() == 0.0

    def test_level_saturates(self):
        tracker = InteractionTracker(saturation=10, clock=FakeClock())
        for _ in range(25):
            tracker.record("drag")
        assert tracker.level() == 1.0


class TestSampleWindow:
    def test_empty_window_has_no_stats(self):
        assert SampleWindow().stats() is None

    def test_averages(self):
        window = SampleWindow(window_seconds=10)
        window.feed(make_sample(fps=60, latency_ms=10, frame_time_ms=16, timestamp=100))
        window.feed(make_sample(fps=40, latency_ms=30, frame_time_ms=24, timestamp=101))
        stats = window.stats(now=101)
        assert stats.count == 2
        assert stats.avg_fps == pytest.approx(50)
        assert stats.avg_latency_ms == pytest.approx(20)
        assert stats.avg_frame_time_ms == pytest.approx(20)

    def test_old_samples_are_evicted(self):
        window = SampleWindow(window_seconds=10)
        window.feed(make_sample(fps=10, timestamp=100))
        window.feed(make_sample(fps=60, timestamp=115))
        assert len(window) == 1
        assert window.stats(now=115).avg_fps == pytest.approx(60)
        assert window.stats(now=200) is None

    def test_sample_cap(self):
        window = SampleWindow(window_seconds=1000, max_samples=3)
        for i in range(10):
            window.feed(make_sample(fps=i, timestamp=float(i)))
        assert len(window) == 3
        assert window.stats().avg_fps == pytest.approx(8)
