"""
Constraint model and evaluation.

Constraints are a closed set of kinds, each with its own typed parameter
object validated at construction. ConstraintEvaluator dispatches through a
static kind -> evaluator table and turns an arrangement into a list of
violations plus a normalised constraint score.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Union

from .errors import ConstraintEvaluationError
from .models import Arrangement, Participant, Roster, Severity, Violation

logger = logging.getLogger(__name__)

HARD_PENALTY = 10.0
SOFT_PENALTY = 1.0


class ConstraintKind(Enum):
    """Supported constraint kinds."""
    TABLE_SIZE = "table_size"
    MIN_TABLE_SIZE = "min_table_size"
    BALANCE = "balance"
    SEPARATION = "separation"
    CLUSTERING = "clustering"
    ATTRIBUTE_DISTRIBUTION = "attribute_distribution"
    AVOIDANCE = "avoidance"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TableSizeParams:
    max_size: int

    def __post_init__(self):
        if self.max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {self.max_size}")


@dataclass(frozen=True)
class MinTableSizeParams:
    min_size: int = 2

    def __post_init__(self):
        if self.min_size < 1:
            raise ValueError(f"min_size must be >= 1, got {self.min_size}")


@dataclass(frozen=True)
class BalanceParams:
    max_difference: int = 2

    def __post_init__(self):
        if self.max_difference < 0:
            raise ValueError(f"max_difference must be >= 0, got {self.max_difference}")


CRITERION_TYPES = ('name', 'organization', 'attribute')


@dataclass(frozen=True)
class SelectionCriterion:
    """
    One participant filter.

    ``name`` and ``organization`` match case-insensitive substrings;
    ``attribute`` matches the named attribute's value exactly.
    """
    type: str
    value: Any
    attribute: Optional[str] = None

    def __post_init__(self):
        if self.type not in CRITERION_TYPES:
            raise ValueError(
                f"Unknown criterion type '{self.type}'. Valid types: {', '.join(CRITERION_TYPES)}"
            )
        if self.type == 'attribute' and not self.attribute:
            raise ValueError("Attribute criteria require an 'attribute' name")

    def matches(self, participant: Participant, min_confidence: float = 0.0) -> bool:
        if self.type == 'name':
            return str(self.value).lower() in (participant.name or '').lower()
        if self.type == 'organization':
            organization = participant.get('organization', min_confidence)
            return organization is not None and str(self.value).lower() in str(organization).lower()
        return values_equal(participant.get(self.attribute, min_confidence), self.value)


@dataclass(frozen=True)
class ParticipantSelector:
    """
    Selects a group of participants.

    Explicit ids are always included; criteria are combined with AND and
    only apply when at least one is given.
    """
    ids: tuple = ()
    criteria: tuple = ()

    def __post_init__(self):
        if not self.ids and not self.criteria:
            raise ValueError("A participant selector needs ids or criteria")

    def resolve(self, roster: Roster, min_confidence: float = 0.0) -> List[int]:
        """Roster indices of the selected participants (unknown ids are skipped)."""
        selected = {roster.index_of(pid) for pid in self.ids if pid in roster}
        if self.criteria:
            for idx, participant in enumerate(roster):
                if all(c.matches(participant, min_confidence) for c in self.criteria):
                    selected.add(idx)
        return sorted(selected)


@dataclass(frozen=True)
class SeparationParams:
    participants: ParticipantSelector


@dataclass(frozen=True)
class ClusteringParams:
    participants: ParticipantSelector


DISTRIBUTIONS = ('even', 'mixed')


@dataclass(frozen=True)
class AttributeDistributionParams:
    attribute: str
    distribution: str = 'mixed'

    def __post_init__(self):
        if not self.attribute:
            raise ValueError("Attribute distribution requires an attribute name")
        if self.distribution not in DISTRIBUTIONS:
            raise ValueError(
                f"Unknown distribution '{self.distribution}'. Valid: {', '.join(DISTRIBUTIONS)}"
            )


@dataclass(frozen=True)
class AttributeCondition:
    attribute: str
    value: Any


@dataclass(frozen=True)
class AvoidedCombination:
    conditions: tuple
    description: str = ""

    def __post_init__(self):
        if not self.conditions:
            raise ValueError("An avoided combination needs at least one condition")


@dataclass(frozen=True)
class AvoidanceParams:
    combinations: tuple

    def __post_init__(self):
        if not self.combinations:
            raise ValueError("Avoidance requires at least one combination")


@dataclass(frozen=True)
class CustomParams:
    data: Dict[str, Any] = field(default_factory=dict, hash=False)


ConstraintParams = Union[
    TableSizeParams, MinTableSizeParams, BalanceParams, SeparationParams,
    ClusteringParams, AttributeDistributionParams, AvoidanceParams, CustomParams
]

PARAM_TYPES = {
    ConstraintKind.TABLE_SIZE: TableSizeParams,
    ConstraintKind.MIN_TABLE_SIZE: MinTableSizeParams,
    ConstraintKind.BALANCE: BalanceParams,
    ConstraintKind.SEPARATION: SeparationParams,
    ConstraintKind.CLUSTERING: ClusteringParams,
    ConstraintKind.ATTRIBUTE_DISTRIBUTION: AttributeDistributionParams,
    ConstraintKind.AVOIDANCE: AvoidanceParams,
    ConstraintKind.CUSTOM: CustomParams,
}


@dataclass(frozen=True)
class Constraint:
    """
    A placement rule.

    Attributes:
        id: Unique identifier
        kind: ConstraintKind
        params: Parameter object matching the kind
        severity: HARD or SOFT
        description: Human-readable description
    """
    id: str
    kind: ConstraintKind
    params: ConstraintParams
    severity: Severity = Severity.SOFT
    description: str = ""

    def __post_init__(self):
        if isinstance(self.severity, str):
            object.__setattr__(self, 'severity', Severity(self.severity.lower()))
        expected = PARAM_TYPES[self.kind]
        if not isinstance(self.params, expected):
            raise TypeError(
                f"Constraint '{self.id}' of kind {self.kind.value} needs "
                f"{expected.__name__}, got {type(self.params).__name__}"
            )

    @property
    def is_hard(self) -> bool:
        return self.severity is Severity.HARD


def default_constraints(capacity: int, max_difference: int = 2) -> List[Constraint]:
    """System constraints present in every run."""
    return [
        Constraint(
            id='table_size_limit',
            kind=ConstraintKind.TABLE_SIZE,
            params=TableSizeParams(max_size=capacity),
            severity=Severity.HARD,
            description='Tables must not exceed maximum size'
        ),
        Constraint(
            id='minimum_table_size',
            kind=ConstraintKind.MIN_TABLE_SIZE,
            params=MinTableSizeParams(min_size=2),
            severity=Severity.SOFT,
            description='Tables should have at least 2 participants'
        ),
        Constraint(
            id='balanced_tables',
            kind=ConstraintKind.BALANCE,
            params=BalanceParams(max_difference=max_difference),
            severity=Severity.SOFT,
            description='Tables should be reasonably balanced in size'
        ),
    ]


def merge_constraints(defaults: Sequence[Constraint], supplied: Iterable[Constraint]) -> List[Constraint]:
    """Defaults followed by supplied constraints; a supplied id replaces a default."""
    supplied = list(supplied)
    overridden = {c.id for c in supplied}
    seen = set()
    merged = [c for c in defaults if c.id not in overridden]
    for constraint in supplied:
        if constraint.id in seen:
            raise ValueError(f"Duplicate constraint id: {constraint.id}")
        seen.add(constraint.id)
        merged.append(constraint)
    return merged


def values_equal(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, str) and isinstance(expected, str):
        return actual.strip().casefold() == expected.strip().casefold()
    return actual == expected


def _violation(constraint: Constraint, kind: str, description: str, **extra) -> Violation:
    return Violation(
        constraint_id=constraint.id,
        severity=constraint.severity,
        kind=kind,
        description=description,
        **extra
    )


def _evaluate_table_size(constraint, arrangement, evaluator):
    max_size = constraint.params.max_size
    violations = []
    for table_id in arrangement.table_ids():
        seats = arrangement.tables[table_id]
        if len(seats) > max_size:
            violations.append(_violation(
                constraint, 'table_size',
                f"Table {table_id} has {len(seats)} participants (max: {max_size})",
                table_id=table_id,
                participant_ids=evaluator.ids(seats),
                details={'current_size': len(seats), 'max_allowed': max_size,
                         'excess': len(seats) - max_size}
            ))
    return violations


def _evaluate_min_table_size(constraint, arrangement, evaluator):
    min_size = constraint.params.min_size
    violations = []
    for table_id in arrangement.table_ids():
        seats = arrangement.tables[table_id]
        if 0 < len(seats) < min_size:
            violations.append(_violation(
                constraint, 'min_table_size',
                f"Table {table_id} has only {len(seats)} participant(s) (recommended: {min_size}+)",
                table_id=table_id,
                participant_ids=evaluator.ids(seats),
                details={'current_size': len(seats), 'recommended_min': min_size,
                         'shortage': min_size - len(seats)}
            ))
    return violations


def _evaluate_balance(constraint, arrangement, evaluator):
    sizes = [size for size in arrangement.sizes().values() if size > 0]
    if len(sizes) <= 1:
        return []
    smallest, largest = min(sizes), max(sizes)
    max_difference = constraint.params.max_difference
    if largest - smallest <= max_difference:
        return []
    return [_violation(
        constraint, 'balance',
        f"Tables are imbalanced: sizes range from {smallest} to {largest} participants",
        details={'min_table_size': smallest, 'max_table_size': largest,
                 'difference': largest - smallest,
                 'max_allowed_difference': max_difference,
                 'table_sizes': arrangement.sizes()}
    )]


def _evaluate_separation(constraint, arrangement, evaluator):
    group = set(evaluator.selection(constraint))
    violations = []
    for table_id in arrangement.table_ids():
        together = [idx for idx in arrangement.tables[table_id] if idx in group]
        if len(together) > 1:
            names = ', '.join(evaluator.roster[idx].name or str(evaluator.roster.id_of(idx))
                              for idx in together)
            violations.append(_violation(
                constraint, 'separation',
                f"Table {table_id} has participants that should be separated: {names}",
                table_id=table_id,
                participant_ids=evaluator.ids(together)
            ))
    return violations


def _evaluate_clustering(constraint, arrangement, evaluator):
    group = set(evaluator.selection(constraint))
    if len(group) < 2:
        return []
    tables = sorted({
        table_id for table_id, seats in arrangement.tables.items()
        if any(idx in group for idx in seats)
    })
    if len(tables) <= 1:
        return []
    return [_violation(
        constraint, 'clustering',
        "Participants that should be grouped are spread across multiple tables",
        participant_ids=evaluator.ids(sorted(group)),
        details={'tables_affected': tables}
    )]


def _evaluate_attribute_distribution(constraint, arrangement, evaluator):
    attribute = constraint.params.attribute
    distribution = constraint.params.distribution
    violations = []
    for table_id in arrangement.table_ids():
        seats = arrangement.tables[table_id]
        if len(seats) < 2:
            continue
        values = [v for v in (evaluator.value(idx, attribute) for idx in seats) if v is not None]
        distinct = len(set(values))
        issue = None
        if distribution == 'even' and distinct < min(len(values) // 2, 2):
            issue = 'lacks diversity'
        elif distribution == 'mixed' and distinct <= 1 and len(values) > 1:
            issue = 'not mixed'
        if issue:
            violations.append(_violation(
                constraint, 'distribution',
                f"Table {table_id} {issue} in {attribute} distribution",
                table_id=table_id,
                participant_ids=evaluator.ids(seats),
                details={'attribute': attribute, 'issue': issue,
                         'desired_distribution': distribution}
            ))
    return violations


def _evaluate_avoidance(constraint, arrangement, evaluator):
    violations = []
    for table_id in arrangement.table_ids():
        seats = arrangement.tables[table_id]
        for combination in constraint.params.combinations:
            present = all(
                any(values_equal(evaluator.value(idx, c.attribute), c.value) for idx in seats)
                for c in combination.conditions
            )
            if not present:
                continue
            involved = [
                idx for idx in seats
                if any(values_equal(evaluator.value(idx, c.attribute), c.value)
                       for c in combination.conditions)
            ]
            label = combination.description or ' + '.join(
                f"{c.attribute}={c.value}" for c in combination.conditions
            )
            violations.append(_violation(
                constraint, 'avoidance',
                f"Table {table_id} contains avoided combination: {label}",
                table_id=table_id,
                participant_ids=evaluator.ids(involved),
                details={'conditions': [
                    {'attribute': c.attribute, 'value': c.value} for c in combination.conditions
                ]}
            ))
    return violations


def _evaluate_custom(constraint, arrangement, evaluator):
    return []


EvaluatorFn = Callable[[Constraint, Arrangement, "ConstraintEvaluator"], List[Violation]]

EVALUATORS: Dict[ConstraintKind, EvaluatorFn] = {
    ConstraintKind.TABLE_SIZE: _evaluate_table_size,
    ConstraintKind.MIN_TABLE_SIZE: _evaluate_min_table_size,
    ConstraintKind.BALANCE: _evaluate_balance,
    ConstraintKind.SEPARATION: _evaluate_separation,
    ConstraintKind.CLUSTERING: _evaluate_clustering,
    ConstraintKind.ATTRIBUTE_DISTRIBUTION: _evaluate_attribute_distribution,
    ConstraintKind.AVOIDANCE: _evaluate_avoidance,
    ConstraintKind.CUSTOM: _evaluate_custom,
}


class ConstraintEvaluator:
    """Evaluates one constraint set against arrangements of one roster."""

    def __init__(
        self,
        roster: Roster,
        constraints: Iterable[Constraint] = (),
        capacity: int = 8,
        table_count: int = 1,
        max_difference: int = 2,
        min_confidence: float = 0.0
    ):
        self.roster = roster
        self.capacity = capacity
        self.table_count = table_count
        self.min_confidence = min_confidence
        self.constraints = merge_constraints(
            default_constraints(capacity, max_difference), constraints
        )
        self._selections: Dict[str, List[int]] = {}

    def ids(self, seats: Iterable[int]) -> List[Hashable]:
        return [self.roster.id_of(idx) for idx in seats]

    def value(self, index: int, attribute: str) -> Any:
        participant = self.roster[index]
        if attribute == 'name':
            return participant.name
        return participant.get(attribute, self.min_confidence)

    def selection(self, constraint: Constraint) -> List[int]:
        """Resolved participant group for a separation/clustering constraint."""
        if constraint.id not in self._selections:
            self._selections[constraint.id] = constraint.params.participants.resolve(
                self.roster, self.min_confidence
            )
        return self._selections[constraint.id]

    @property
    def unchecked_constraints(self) -> List[Constraint]:
        """Constraints recorded but not mechanically checked."""
        return [c for c in self.constraints if c.kind is ConstraintKind.CUSTOM]

    def evaluate(self, arrangement: Arrangement,
                 constraints: Optional[Sequence[Constraint]] = None) -> List[Violation]:
        """
        Evaluate every constraint against an arrangement.

        A constraint whose evaluator raises is reported as a soft
        'evaluation_error' violation and does not stop the others.

        Args:
            arrangement: Arrangement to check
            constraints: Constraints to evaluate (defaults to this evaluator's set)

        Returns:
            List of violations
        """
        violations = []
        for constraint in (self.constraints if constraints is None else constraints):
            try:
                violations.extend(EVALUATORS[constraint.kind](constraint, arrangement, self))
            except Exception as e:
                error = ConstraintEvaluationError(constraint.id, e)
                logger.error("Error evaluating constraint %s: %s", constraint.id, e)
                violations.append(Violation(
                    constraint_id=constraint.id,
                    severity=Severity.SOFT,
                    kind='evaluation_error',
                    description=f"Failed to evaluate constraint: {e}",
                    details=error.to_dict()
                ))
        return violations

    @staticmethod
    def penalty(violations: Iterable[Violation]) -> float:
        """Raw penalty: 10 per hard violation, 1 per soft violation."""
        return sum(HARD_PENALTY if v.is_hard else SOFT_PENALTY for v in violations)

    def max_possible_penalty(self, constraints: Optional[Sequence[Constraint]] = None) -> float:
        constraints = self.constraints if constraints is None else constraints
        hard = sum(1 for c in constraints if c.is_hard)
        soft = len(constraints) - hard
        return hard * self.table_count * HARD_PENALTY + soft * self.table_count * SOFT_PENALTY

    def score(self, violations: Iterable[Violation],
              constraints: Optional[Sequence[Constraint]] = None) -> float:
        """Constraint score in [0, 1]; 1.0 when nothing is violated."""
        maximum = self.max_possible_penalty(constraints)
        if maximum == 0:
            return 1.0
        return max(0.0, 1.0 - self.penalty(violations) / maximum)
