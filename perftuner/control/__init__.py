"""Closed-loop control: controller, budgets, rate limiters, interaction tracking."""

from .budget import PerformanceBudgetManager
from .controller import AdaptiveController, adjust_for_interaction, decide_transition, performance_score
from .interaction import InteractionTracker
from .limiters import DynamicDebouncer, DynamicThrottler

__all__ = [
    'PerformanceBudgetManager',
    'AdaptiveController',
    'adjust_for_interaction',
    'decide_transition',
    'performance_score',
    'InteractionTracker',
    'DynamicDebouncer',
    'DynamicThrottler',
]
