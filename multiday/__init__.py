"""
Multi-day rotation for the seating optimizer.

Seeds each day with a rotation policy, refines it with the single-day
optimizer and tracks who has already sat together.
"""

from .rotation import RotationPlanner, RotationPolicy, parse_policy
from .coordinator import DayPlan, DayResult, MultiDayCoordinator, MultiDayResult

__all__ = [
    'RotationPlanner',
    'RotationPolicy',
    'parse_policy',
    'DayPlan',
    'DayResult',
    'MultiDayCoordinator',
    'MultiDayResult',
]
