"""
Problem validation.

Checks a seating problem before it is optimized: configuration sanity,
seat capacity, and whether separation/clustering rules can be satisfied
at all with the given table layout.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .config_loader import (
    build_constraints,
    build_optimization_config,
    load_config,
    load_participants,
    validate_config,
)
from .constraints import Constraint, ConstraintKind
from .errors import ConfigurationError, SeatingError
from .models import Participant, Roster
from .optimizer import OptimizationConfig

MIN_DAYS = 2
MAX_DAYS = 10


class ProblemValidator:
    """Problem validator with detailed feedback"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.recommendations: List[str] = []
        self.issues: List[Dict[str, Any]] = []

    def _reset(self):
        self.errors = []
        self.warnings = []
        self.recommendations = []
        self.issues = []

    def _issue(self, issue_type: str, message: str, blocking: bool, **extra):
        self.issues.append({'type': issue_type, 'message': message, **extra})
        (self.errors if blocking else self.warnings).append(message)

    def validate_problem(
        self,
        config: OptimizationConfig,
        participants: Sequence[Participant],
        constraints: Sequence[Constraint] = (),
        days: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Check feasibility of a typed problem.

        Args:
            config: Optimization settings
            participants: Participants to seat
            constraints: Extra constraints
            days: Day count for a multi-day series, if any

        Returns:
            Dictionary with valid, errors, warnings, recommendations,
            issues and summary
        """
        self._reset()
        roster = Roster(participants)
        self._check_capacity(config, roster)
        self._check_constraints(config, roster, constraints)
        if days is not None and not MIN_DAYS <= days <= MAX_DAYS:
            self._issue('invalid_day_count',
                        f"Day count must be between {MIN_DAYS} and {MAX_DAYS}, got {days}", True)
        return self._report(config, roster, constraints)

    def _check_capacity(self, config: OptimizationConfig, roster: Roster):
        count = len(roster)
        seats = config.total_seats
        if count < 2:
            self._issue('insufficient_participants',
                        f"At least 2 participants are required, got {count}", True)
        if count > seats:
            self._issue(
                'capacity_exceeded',
                f"{count} participants exceed capacity of {seats} seats",
                blocking=config.overflow == 'fail'
            )
            self.recommendations.append(
                f"Add {-(-(count - seats) // config.table_capacity)} table(s) "
                f"or raise capacity to seat everyone"
            )
        elif count and count < 2 * config.table_count:
            self.warnings.append(
                f"{count} participants for {config.table_count} tables leaves some tables below 2 people"
            )
            self.recommendations.append("Reduce the number of tables")
        if seats and count / seats < 0.5:
            self.recommendations.append(
                f"Low seat utilization ({count / seats * 100:.0f}%); consider fewer tables"
            )

    def _check_constraints(self, config: OptimizationConfig, roster: Roster,
                           constraints: Sequence[Constraint]):
        groups = {}
        for constraint in constraints:
            if constraint.kind in (ConstraintKind.SEPARATION, ConstraintKind.CLUSTERING):
                members = constraint.params.participants.resolve(roster, config.min_confidence)
                groups[constraint.id] = (constraint, set(members))
                if not members:
                    self.warnings.append(f"Constraint {constraint.id} matches no participants")

            if constraint.kind is ConstraintKind.SEPARATION:
                size = len(groups[constraint.id][1])
                if size > config.table_count:
                    self._issue(
                        'separation_impossible',
                        f"Separation rule {constraint.id} requires {size} tables "
                        f"but only {config.table_count} available",
                        blocking=constraint.is_hard, constraint_id=constraint.id
                    )
            elif constraint.kind is ConstraintKind.CLUSTERING:
                size = len(groups[constraint.id][1])
                if size > config.table_capacity:
                    self._issue(
                        'clustering_warning',
                        f"Clustering rule {constraint.id} affects {size} participants "
                        f"but table size is {config.table_capacity}",
                        blocking=False, constraint_id=constraint.id
                    )
            elif constraint.kind is ConstraintKind.TABLE_SIZE:
                seats = constraint.params.max_size * config.table_count
                if constraint.is_hard and seats < min(len(roster), config.total_seats):
                    self._issue(
                        'capacity_exceeded',
                        f"Table size rule {constraint.id} allows {seats} seats "
                        f"for {len(roster)} participants",
                        blocking=True, constraint_id=constraint.id
                    )
            elif constraint.kind is ConstraintKind.CUSTOM:
                self.warnings.append(
                    f"Constraint {constraint.id} is custom and will not be checked automatically"
                )

        separations = [g for g in groups.values() if g[0].kind is ConstraintKind.SEPARATION]
        clusterings = [g for g in groups.values() if g[0].kind is ConstraintKind.CLUSTERING]
        for separation, separated in separations:
            for clustering, clustered in clusterings:
                shared = separated & clustered
                if len(shared) >= 2:
                    self._issue(
                        'rule_conflict',
                        f"Rules {separation.id} and {clustering.id} both apply to "
                        f"{len(shared)} participants: they cannot be kept apart and together",
                        blocking=separation.is_hard and clustering.is_hard,
                        constraint_ids=[separation.id, clustering.id]
                    )

        if len(constraints) > 5:
            self.recommendations.append(
                f"{len(constraints)} rules may be difficult to satisfy; consider consolidating"
            )

    def _report(self, config: OptimizationConfig, roster: Roster,
                constraints: Sequence[Constraint]) -> Dict[str, Any]:
        seats = config.total_seats
        return {
            'valid': len(self.errors) == 0,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'recommendations': list(self.recommendations),
            'issues': list(self.issues),
            'summary': {
                'participants': len(roster),
                'tables': config.table_count,
                'capacity': config.table_capacity,
                'seats': seats,
                'utilization': round(min(len(roster), seats) / seats * 100, 1) if seats else 0.0,
                'constraints': len(constraints),
                'strategy': config.strategy,
            },
        }

    def validate_file(self, config_path: Union[str, Path]) -> Dict[str, Any]:
        """Load a YAML problem file and validate it end to end."""
        empty = {'valid': False, 'warnings': [], 'recommendations': [], 'issues': [], 'summary': {}}
        try:
            config = load_config(config_path)
        except ConfigurationError as e:
            return {**empty, 'errors': [f"Failed to load configuration: {e}"]}

        basic = validate_config(config)
        if basic:
            return {**empty, 'errors': basic}

        try:
            optimization = build_optimization_config(config)
            participants = load_participants(config, Path(config_path).parent)
            constraints = build_constraints(config.get('constraints'))
            roster_check = Roster(participants)
        except (SeatingError, ValueError) as e:
            return {**empty, 'errors': [str(e)]}

        days = (config.get('multi_day') or {}).get('days')
        return self.validate_problem(optimization, list(roster_check), constraints, days)
