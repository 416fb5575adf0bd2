"""
Multi-day series coordination.

Runs the rotation planner and the single-day optimizer day by day, sharing
one interaction ledger across the series so that later days avoid pairs
that have already met.
"""

import dataclasses
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Sequence, Union

import numpy as np

from seating.constraints import Constraint
from seating.errors import (
    ConfigurationError,
    DayOptimizationFailure,
    InvalidDayCount,
    SeatingError,
)
from seating.ledger import InteractionLedger
from seating.models import Participant, Roster, RunStatistics, Violation
from seating.optimizer import OptimizationConfig, Optimizer

from .analytics import (
    attendance_patterns,
    coverage_report,
    interaction_distribution,
    isolated_participants,
    linear_trend,
    network_density,
    participant_connections,
    rotation_efficiency,
    trend_statistics,
)
from .rotation import RotationPlanner, parse_policy

logger = logging.getLogger(__name__)

MIN_DAYS = 2
MAX_DAYS = 10


@dataclass
class DayPlan:
    """
    Inputs for one day of a series.

    Attributes:
        day_number: Day number (1-based)
        absent_ids: Participants not attending this day
        constraints: Extra constraints for this day only
        day_config: Rotation options (custom_rules, attribute, group_attribute)
    """
    day_number: int
    absent_ids: List[Hashable] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)
    day_config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DayResult:
    """Outcome of one optimized day."""
    day_number: int
    assignment: Dict[int, List[Hashable]]
    diversity_score: float
    score: float
    violations: List[Violation]
    stats: RunStatistics
    coverage: float
    new_pairs: int
    participants: int
    absent_ids: List[Hashable] = field(default_factory=list)
    unseated: List[Hashable] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'day_number': self.day_number,
            'assignment': {str(k): v for k, v in self.assignment.items()},
            'diversity_score': self.diversity_score,
            'score': self.score,
            'violations': [v.to_dict() for v in self.violations],
            'stats': self.stats.to_dict(),
            'coverage': round(self.coverage, 2),
            'new_pairs': self.new_pairs,
            'participants': self.participants,
            'absent_ids': list(self.absent_ids),
            'unseated': list(self.unseated),
        }


@dataclass
class MultiDayResult:
    """
    Outcome of a multi-day series.

    On failure ``days`` holds the days completed before the failing one and
    ``error``/``error_kind``/``failed_day`` describe what went wrong. The
    caller decides whether to keep partial results: ``ledger`` is then a
    working copy and any ledger passed in is left as it was.
    """
    success: bool
    days: List[DayResult] = field(default_factory=list)
    overall_metrics: Dict[str, Any] = field(default_factory=dict)
    coverage_history: List[float] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    failed_day: Optional[int] = None
    total_runtime: float = 0.0
    ledger: Optional[InteractionLedger] = None

    @property
    def daily_scores(self) -> List[float]:
        return [day.diversity_score for day in self.days]

    @property
    def arrangements(self) -> Dict[int, Dict[int, List[Hashable]]]:
        return {day.day_number: day.assignment for day in self.days}

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'success': self.success,
            'days': [day.to_dict() for day in self.days],
            'overall_metrics': self.overall_metrics,
            'coverage_history': [round(c, 2) for c in self.coverage_history],
            'total_runtime': round(self.total_runtime, 4),
        }
        if not self.success:
            payload['error'] = {
                'kind': self.error_kind,
                'message': self.error,
                'day': self.failed_day,
            }
        return payload


def _failure(error: SeatingError, completed: List[DayResult], coverage_history: List[float],
             started: float, failed_day: Optional[int] = None) -> MultiDayResult:
    logger.error("Multi-day series failed (%s): %s", error.kind, error.message)
    return MultiDayResult(
        success=False,
        days=completed,
        coverage_history=coverage_history,
        error=error.message,
        error_kind=error.kind,
        failed_day=failed_day,
        total_runtime=time.time() - started,
    )


class MultiDayCoordinator:
    """
    Optimizes a sequence of days with cross-day interaction avoidance.

    Args:
        config: Single-day optimization settings reused for every day
        planner_options: Keyword arguments for RotationPlanner
            (attempts, max_random_attempts, repeat_threshold, custom_rules)
    """

    def __init__(self, config: OptimizationConfig, planner_options: Optional[Dict[str, Any]] = None):
        self.config = config
        self.planner_options = dict(planner_options or {})

    def _day_config(self, day_number: int) -> OptimizationConfig:
        """Per-day copy of the settings with a derived seed."""
        seed = self.config.random_seed
        return dataclasses.replace(
            self.config,
            random_seed=None if seed is None else seed + day_number
        )

    @staticmethod
    def build_plans(days: Union[int, Sequence[DayPlan]],
                    per_day_constraints: Optional[Dict[int, List[Constraint]]] = None) -> List[DayPlan]:
        """
        Normalise the ``days`` argument into an ordered list of plans.

        Raises:
            InvalidDayCount: If the series is not 2..10 days long
        """
        if isinstance(days, int):
            plans = [DayPlan(day_number=d) for d in range(1, days + 1)]
        else:
            plans = sorted(days, key=lambda plan: plan.day_number)
        if not MIN_DAYS <= len(plans) <= MAX_DAYS:
            raise InvalidDayCount(len(plans), MIN_DAYS, MAX_DAYS)

        per_day_constraints = per_day_constraints or {}
        return [
            dataclasses.replace(
                plan,
                constraints=list(plan.constraints) + list(per_day_constraints.get(plan.day_number) or [])
            )
            for plan in plans
        ]

    def run_series(
        self,
        participants: Sequence[Participant],
        days: Union[int, Sequence[DayPlan]],
        policy: Any = "maximum_diversity",
        per_day_constraints: Optional[Dict[int, List[Constraint]]] = None,
        max_runtime_per_day: Optional[float] = None,
        base_constraints: Sequence[Constraint] = (),
        ledger: Optional[InteractionLedger] = None
    ) -> MultiDayResult:
        """
        Optimize every day of a series in order.

        Args:
            participants: Full roster of the event
            days: Number of days, or explicit DayPlan objects
            policy: Rotation policy name or RotationPolicy
            per_day_constraints: Extra constraints keyed by day number
            max_runtime_per_day: Time budget per day (defaults to config.max_runtime)
            base_constraints: Constraints applied on every day
            ledger: Existing interaction history to continue from; updated
                only when every day succeeds

        Returns:
            MultiDayResult; failures are reported in the result, not raised
        """
        started = time.time()
        completed: List[DayResult] = []
        coverage_history: List[float] = []

        try:
            plans = self.build_plans(days, per_day_constraints)
            rotation_policy = parse_policy(policy)
            roster = Roster(participants)
        except SeatingError as e:
            return _failure(e, completed, coverage_history, started)
        except ValueError as e:
            return _failure(ConfigurationError(str(e)), completed, coverage_history, started)

        # Days are recorded into a working copy; the caller's ledger only sees a finished series
        working = ledger.copy() if ledger is not None else InteractionLedger()
        planner = RotationPlanner(
            self.config.table_count,
            self.config.table_capacity,
            np.random.default_rng(self.config.random_seed),
            **self.planner_options
        )

        logger.info("Starting %d-day series for %d participants with %s",
                    len(plans), len(roster), rotation_policy.value)

        for plan in plans:
            try:
                day_result = self._run_day(plan, roster, planner, rotation_policy, working,
                                           completed, base_constraints, max_runtime_per_day)
            except SeatingError as e:
                failure = DayOptimizationFailure(plan.day_number, e)
                result = _failure(failure, completed, coverage_history, started, plan.day_number)
                result.ledger = working
                return result
            completed.append(day_result)
            coverage_history.append(day_result.coverage)

        if ledger is None:
            ledger = working
        else:
            for day in completed:
                ledger.record(day.day_number, day.assignment)

        result = MultiDayResult(
            success=True,
            days=completed,
            coverage_history=coverage_history,
            total_runtime=time.time() - started,
            ledger=ledger,
        )
        result.overall_metrics = self.aggregate(result, roster.ids)
        logger.info(
            "Series finished in %.2fs: average score %.4f, coverage %.1f%%",
            result.total_runtime,
            result.overall_metrics['average_score'],
            result.overall_metrics['interaction_coverage']
        )
        return result

    def _run_day(self, plan: DayPlan, roster: Roster, planner: RotationPlanner, policy,
                 ledger: InteractionLedger, completed: List[DayResult],
                 base_constraints: Sequence[Constraint],
                 max_runtime: Optional[float]) -> DayResult:
        absent = set(plan.absent_ids)
        attending = roster.without(absent)
        prior = {day.day_number: day.assignment for day in completed}

        seed = planner.seed_for_day(plan.day_number, attending, prior, policy, plan.day_config)
        optimizer = Optimizer(self._day_config(plan.day_number))
        outcome = optimizer.optimize(
            attending,
            list(base_constraints) + list(plan.constraints),
            max_runtime=max_runtime,
            initial_arrangement=seed,
            ledger=ledger,
            current_day=plan.day_number,
        )

        new_pairs = ledger.record(plan.day_number, outcome.assignment)
        coverage = ledger.coverage(roster.ids)
        logger.info("Day %d: score %.4f, %d new pairs, coverage %.1f%%",
                    plan.day_number, outcome.diversity_score, new_pairs, coverage)

        return DayResult(
            day_number=plan.day_number,
            assignment=outcome.assignment,
            diversity_score=outcome.diversity_score,
            score=outcome.score,
            violations=outcome.violations,
            stats=outcome.stats,
            coverage=coverage,
            new_pairs=new_pairs,
            participants=len(attending),
            absent_ids=[pid for pid in plan.absent_ids if pid in roster],
            unseated=outcome.unseated,
        )

    def aggregate(self, result: MultiDayResult, participant_ids: List[Hashable]) -> Dict[str, Any]:
        """Cross-day metrics of a completed series."""
        scores = result.daily_scores
        arrangements = result.arrangements
        report = coverage_report(result.ledger, participant_ids)
        connections = participant_connections(result.ledger, participant_ids)
        return {
            'days_optimized': len(result.days),
            'average_score': round(sum(scores) / len(scores), 4) if scores else 0.0,
            'interaction_coverage': report['coverage_percentage'],
            'diversity_trend': round(linear_trend(scores), 4),
            'trend': trend_statistics(scores),
            'interaction_distribution': interaction_distribution(arrangements),
            'coverage_report': report,
            'rotation_efficiency': rotation_efficiency(arrangements, participant_ids),
            'network_density': network_density(result.ledger, participant_ids),
            'isolated_participants': isolated_participants(connections),
            'attendance': attendance_patterns(arrangements, self.config.table_count,
                                              self.config.table_capacity),
            'total_violations': sum(len(day.violations) for day in result.days),
        }
