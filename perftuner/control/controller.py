"""
Closed-loop profile controller.

On each tick the controller averages the rolling telemetry window, scores the
active profile against it and steps one rank up or down the catalog when the
score leaves the hysteresis band. The emitted profile is then scaled for the
current interaction intensity; that scaling never changes the rank.

The controller is the single writer of the sample window and of the active
profile. ``step`` never benchmarks and does only O(window) arithmetic.
"""

import logging
import time
from typing import Callable, Literal, Optional

from ..config import AdaptiveTuningConfig
from ..device.catalog import ProfileCatalog
from ..metrics.sample_window import SampleWindow, WindowStats
from ..types import BudgetStatus, DeviceInfo, PerformanceProfile, PerformanceSample
from .budget import PerformanceBudgetManager
from .interaction import InteractionTracker
from .limiters import DynamicDebouncer, DynamicThrottler

logger = logging.getLogger(__name__)

Transition = Literal["promote", "demote", "hold"]

# Absolute bounds for interaction-scaled timings (ms)
THROTTLE_BOUNDS = (8.0, 50.0)
DEBOUNCE_BOUNDS = (25.0, 300.0)
TOUCH_DELAY_BOUNDS = (50.0, 500.0)


def performance_score(avg_fps: float, avg_latency_ms: float,
                      target_fps: float, max_latency_ms: float) -> float:
    """0.6 * fps ratio + 0.4 * latency headroom."""
    return 0.6 * (avg_fps / target_fps) + 0.4 * (1.0 - avg_latency_ms / max_latency_ms)


def decide_transition(score: float, promote: float = 0.9, demote: float = 0.7) -> Transition:
    """Hysteresis band: only leave the current rank outside (demote, promote)."""
    if score >= promote:
        return "promote"
    if score <= demote:
        return "demote"
    return "hold"


def adjust_for_interaction(profile: PerformanceProfile, level: float,
                           high: float = 0.8, low: float = 0.3) -> PerformanceProfile:
    """Favor responsiveness under heavy interaction and battery when idle."""
    if level > high:
        factor = 0.8
    elif level < low:
        factor = 1.2
    else:
        return profile

    def scaled(value: float, bounds) -> float:
        return max(bounds[0], min(bounds[1], value * factor))

    return profile.model_copy(update={
        "throttle_interval": scaled(profile.throttle_interval, THROTTLE_BOUNDS),
        "debounce_delay": scaled(profile.debounce_delay, DEBOUNCE_BOUNDS),
        "touch_delay": scaled(profile.touch_delay, TOUCH_DELAY_BOUNDS),
    })


class AdaptiveController:
    def __init__(
        self,
        device: DeviceInfo,
        catalog: Optional[ProfileCatalog] = None,
        config: Optional[AdaptiveTuningConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.device = device
        self.catalog = catalog or ProfileCatalog()
        self.config = config or AdaptiveTuningConfig()
        self.config.validate()
        self._clock = clock
        self.window = SampleWindow(self.config.window_seconds, self.config.max_window_samples)
        self.interaction = InteractionTracker(
            window_seconds=self.config.interaction_window_seconds,
            saturation=self.config.interaction_saturation,
            clock=clock,
        )
        self._rank_profile = self.catalog.select(device.capability)
        self._profile = self._rank_profile
        self.last_score: Optional[float] = None
        self._rebuild()
        logger.info(
            f"Controller started on '{self._rank_profile.name}' "
            f"(capability={device.capability:.3f})"
        )

    # ---- read side -------------------------------------------------------

    @property
    def profile(self) -> PerformanceProfile:
        """Profile emitted on the last tick, interaction adjustment included."""
        return self._profile

    @property
    def rank_profile(self) -> PerformanceProfile:
        return self._rank_profile

    def interaction_level(self) -> float:
        return self.interaction.level(self._clock())

    def budget_status(self) -> BudgetStatus:
        return BudgetStatus(
            frame_budget_remaining_ms=self.budget.frame_remaining_ms(),
            event_budget_remaining_ms=self.budget.event_remaining_ms(),
            interaction_level=self.interaction_level(),
        )

    # ---- inputs ----------------------------------------------------------

    def push_sample(self, sample: PerformanceSample) -> None:
        self.window.feed(sample)

    def interaction_event(self, kind: str = "touch") -> None:
        self.interaction.record(kind)

    # ---- control loop ----------------------------------------------------

    def step(self) -> PerformanceProfile:
        """One control tick. A no-op on an empty window."""
        if not self.config.enabled:
            self._set_rank_profile(self.catalog.select(self.device.capability))
            self._profile = self._rank_profile
            return self._profile

        stats = self.window.stats(self._clock())
        if stats is None:
            return self._profile

        score = self.score(stats)
        self.apply_score(score)
        return self._profile

    def score(self, stats: WindowStats) -> float:
        return performance_score(
            stats.avg_fps,
            stats.avg_latency_ms,
            self._rank_profile.target_fps,
            self.config.max_latency_threshold_ms,
        )

    def apply_score(self, score: float, interaction_level: Optional[float] = None) -> PerformanceProfile:
        """Step the rank for one performance score, then re-emit the profile."""
        self.last_score = score
        transition = decide_transition(score, self.config.promote_threshold, self.config.demote_threshold)
        if transition == "promote":
            target = self.catalog.next_higher(self._rank_profile)
        elif transition == "demote":
            target = self.catalog.next_lower(self._rank_profile)
        else:
            target = self._rank_profile

        if target is not self._rank_profile:
            logger.info(
                f"Profile {transition}: {self._rank_profile.name} -> {target.name} (score={score:.3f})"
            )
            self._set_rank_profile(target)
        else:
            logger.debug(f"Profile hold on {self._rank_profile.name} (score={score:.3f}, {transition})")

        level = self.interaction_level() if interaction_level is None else interaction_level
        self._profile = adjust_for_interaction(
            self._rank_profile, level, self.config.high_interaction, self.config.low_interaction
        )
        return self._profile

    def reset_to_optimal(self) -> PerformanceProfile:
        """Return to the capability-selected preset and drop telemetry."""
        self.window.clear()
        self.last_score = None
        self._set_rank_profile(self.catalog.select(self.device.capability))
        self._profile = self._rank_profile
        logger.info(f"Controller reset to '{self._profile.name}'")
        return self._profile

    def override(self, profile: PerformanceProfile) -> PerformanceProfile:
        """Install an externally chosen profile (e.g. a learned one) as the new base."""
        self._set_rank_profile(profile)
        self._profile = profile
        logger.info(f"Controller override installed '{profile.name}'")
        return profile

    # ---- internals -------------------------------------------------------

    def _set_rank_profile(self, profile: PerformanceProfile) -> None:
        changed = profile != self._rank_profile
        self._rank_profile = profile
        if changed:
            self._rebuild()

    def _rebuild(self) -> None:
        """Budget manager and limiters follow the rank profile."""
        p = self._rank_profile
        monotonic = self._clock
        self.budget = PerformanceBudgetManager(
            p.animation_frame_budget, p.touch_event_budget, clock=monotonic
        )
        self.throttler = DynamicThrottler(
            p.throttle_interval,
            min_interval_ms=THROTTLE_BOUNDS[0],
            max_interval_ms=THROTTLE_BOUNDS[1],
            dynamic=p.enable_throttling,
            clock=monotonic,
        )
        self.debouncer = DynamicDebouncer(
            p.debounce_delay,
            min_delay_ms=DEBOUNCE_BOUNDS[0],
            max_delay_ms=DEBOUNCE_BOUNDS[1],
            dynamic=p.enable_debouncing,
            clock=monotonic,
        )
