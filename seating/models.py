"""
Data models for the seating engine.

Participants are stored once in a Roster and arrangements refer to them by
roster index, so swap and move operations never alias participant objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, Iterable, Iterator, Optional


class Severity(Enum):
    """Constraint severity levels."""
    HARD = "hard"
    SOFT = "soft"


@dataclass(frozen=True)
class AttributeValue:
    """
    A participant attribute together with the confidence it was recorded with.

    Attributes:
        value: Attribute value (usually a string)
        confidence: Confidence in [0, 1]
    """
    value: Any
    confidence: float = 1.0

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be in [0, 1], got {self.confidence}")


@dataclass
class Participant:
    """
    A person to be seated.

    Attributes:
        id: Unique, hashable identifier
        name: Display name
        attributes: Mapping attribute name -> AttributeValue. Plain values and
            (value, confidence) tuples are accepted and converted.
    """
    id: Hashable
    name: str = ""
    attributes: dict[str, AttributeValue] = field(default_factory=dict)

    def __post_init__(self):
        converted = {}
        for key, raw in self.attributes.items():
            if isinstance(raw, AttributeValue):
                converted[key] = raw
            elif isinstance(raw, tuple) and len(raw) == 2:
                converted[key] = AttributeValue(raw[0], float(raw[1]))
            elif isinstance(raw, dict) and 'value' in raw:
                converted[key] = AttributeValue(raw['value'], float(raw.get('confidence', 1.0)))
            else:
                converted[key] = AttributeValue(raw)
        self.attributes = converted

    def get(self, attribute: str, min_confidence: float = 0.0) -> Optional[Any]:
        """
        Get an attribute value, or None when it is absent.

        A value is absent when it is missing, empty, or recorded with a
        confidence below ``min_confidence``.

        Args:
            attribute: Attribute name
            min_confidence: Minimum confidence for the value to count

        Returns:
            The attribute value or None
        """
        entry = self.attributes.get(attribute)
        if entry is None or entry.value is None:
            return None
        if isinstance(entry.value, str) and not entry.value.strip():
            return None
        if entry.confidence < min_confidence:
            return None
        return entry.value

    def confidence(self, attribute: str) -> float:
        """Confidence of an attribute, 0.0 when missing."""
        entry = self.attributes.get(attribute)
        return entry.confidence if entry is not None else 0.0


class Roster:
    """Ordered arena of participants addressed by index."""

    def __init__(self, participants: Iterable[Participant]):
        self.participants: list[Participant] = list(participants)
        self._index: dict[Hashable, int] = {}
        for idx, participant in enumerate(self.participants):
            if participant.id in self._index:
                raise ValueError(f"Duplicate participant id: {participant.id!r}")
            self._index[participant.id] = idx

    def __len__(self) -> int:
        return len(self.participants)

    def __iter__(self) -> Iterator[Participant]:
        return iter(self.participants)

    def __getitem__(self, index: int) -> Participant:
        return self.participants[index]

    def __contains__(self, participant_id: Hashable) -> bool:
        return participant_id in self._index

    def index_of(self, participant_id: Hashable) -> int:
        """Roster index for a participant id (KeyError if unknown)."""
        return self._index[participant_id]

    def id_of(self, index: int) -> Hashable:
        """Participant id stored at a roster index."""
        return self.participants[index].id

    @property
    def ids(self) -> list[Hashable]:
        return [p.id for p in self.participants]

    def without(self, absent_ids: Iterable[Hashable]) -> "Roster":
        """New roster with the given participant ids removed."""
        absent = set(absent_ids)
        return Roster(p for p in self.participants if p.id not in absent)


@dataclass
class Arrangement:
    """
    Assignment of roster indices to tables for one day.

    Attributes:
        tables: Mapping table id (1..N) -> ordered list of roster indices
    """
    tables: dict[int, list[int]]

    @classmethod
    def empty(cls, table_count: int) -> "Arrangement":
        return cls({table_id: [] for table_id in range(1, table_count + 1)})

    @classmethod
    def from_assignment(cls, assignment: dict[int, Iterable[Hashable]],
                        roster: Roster) -> "Arrangement":
        """
        Build an arrangement from a table id -> participant ids mapping.

        Raises:
            KeyError: If an id is not in the roster
        """
        return cls({
            int(table_id): [roster.index_of(pid) for pid in ids]
            for table_id, ids in assignment.items()
        })

    def copy(self) -> "Arrangement":
        return Arrangement({table_id: seats.copy() for table_id, seats in self.tables.items()})

    def table_ids(self) -> list[int]:
        return sorted(self.tables)

    def size(self, table_id: int) -> int:
        return len(self.tables.get(table_id, []))

    def sizes(self) -> dict[int, int]:
        return {table_id: len(seats) for table_id, seats in self.tables.items()}

    def seated(self) -> list[int]:
        """All seated roster indices, in table order."""
        return [idx for table_id in self.table_ids() for idx in self.tables[table_id]]

    def seated_count(self) -> int:
        return sum(len(seats) for seats in self.tables.values())

    def table_of(self, index: int) -> Optional[int]:
        for table_id, seats in self.tables.items():
            if index in seats:
                return table_id
        return None

    def pairs(self) -> Iterator[tuple[int, int, int]]:
        """Yield (table_id, a, b) for every co-seated pair."""
        for table_id in self.table_ids():
            seats = self.tables[table_id]
            for i in range(len(seats)):
                for j in range(i + 1, len(seats)):
                    yield table_id, seats[i], seats[j]

    def validate(self, expected: Iterable[int], table_count: int) -> list[str]:
        """
        Check structural invariants against the expected seated indices.

        Args:
            expected: Roster indices that must each be seated exactly once
            table_count: Number of tables (ids 1..table_count)

        Returns:
            List of problem descriptions (empty when valid)
        """
        problems = []
        wanted_tables = set(range(1, table_count + 1))
        actual_tables = set(self.tables)
        if actual_tables != wanted_tables:
            missing = sorted(wanted_tables - actual_tables)
            extra = sorted(actual_tables - wanted_tables)
            if missing:
                problems.append(f"missing tables {missing}")
            if extra:
                problems.append(f"unexpected tables {extra}")

        seen = set()
        duplicates = set()
        for idx in self.seated():
            if idx in seen:
                duplicates.add(idx)
            seen.add(idx)
        if duplicates:
            problems.append(f"duplicated participants {sorted(duplicates)}")

        expected_set = set(expected)
        missing_people = expected_set - seen
        unknown_people = seen - expected_set
        if missing_people:
            problems.append(f"missing participants {sorted(missing_people)}")
        if unknown_people:
            problems.append(f"unknown participants {sorted(unknown_people)}")
        return problems

    def to_assignment(self, roster: Roster) -> dict[int, list[Hashable]]:
        """Convert to table id -> participant ids."""
        return {
            table_id: [roster.id_of(idx) for idx in self.tables[table_id]]
            for table_id in self.table_ids()
        }


@dataclass
class Violation:
    """
    A single constraint violation.

    Attributes:
        constraint_id: Id of the violated constraint
        severity: HARD or SOFT
        kind: Short tag naming the violation type
        description: Human-readable description
        table_id: Table involved, if any
        participant_ids: Participants involved
        details: Extra values (sizes, limits, ...)
    """
    constraint_id: str
    severity: Severity
    kind: str
    description: str
    table_id: Optional[int] = None
    participant_ids: list[Hashable] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_hard(self) -> bool:
        return self.severity is Severity.HARD

    def to_dict(self) -> dict[str, Any]:
        return {
            'constraint_id': self.constraint_id,
            'severity': self.severity.value,
            'kind': self.kind,
            'description': self.description,
            'table_id': self.table_id,
            'participant_ids': list(self.participant_ids),
            'details': dict(self.details),
        }


@dataclass
class RunStatistics:
    """Statistics collected during one optimization run."""
    strategy: str
    iterations: int = 0
    improvements: int = 0
    accepted: int = 0
    rejected: int = 0
    invalid_neighbors: int = 0
    elapsed: float = 0.0
    initial_score: float = 0.0
    final_score: float = 0.0
    early_termination: bool = False
    strategy_info: dict[str, Any] = field(default_factory=dict)

    @property
    def improvement_percent(self) -> float:
        if self.initial_score <= 0:
            return 0.0
        return round((self.final_score - self.initial_score) / self.initial_score * 100, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            'strategy': self.strategy,
            'iterations': self.iterations,
            'improvements': self.improvements,
            'accepted': self.accepted,
            'rejected': self.rejected,
            'invalid_neighbors': self.invalid_neighbors,
            'elapsed': round(self.elapsed, 4),
            'initial_score': self.initial_score,
            'final_score': self.final_score,
            'improvement_percent': self.improvement_percent,
            'early_termination': self.early_termination,
            'strategy_info': self.strategy_info,
        }


@dataclass
class OptimizationResult:
    """
    Outcome of a single-day optimization.

    Attributes:
        arrangement: Best arrangement (roster indices)
        assignment: Best arrangement as table id -> participant ids
        diversity_score: Diversity score of the best arrangement in [0, 1]
        score: Adjusted score (diversity minus constraint penalty)
        constraint_score: ConstraintEvaluator score of the best arrangement
        violations: Violations of the best arrangement
        diversity_metrics: Detailed per-table/overall diversity breakdown
        stats: Run statistics
        unseated: Participant ids that did not fit in any table
        history: Best adjusted score sampled during the run
    """
    arrangement: Arrangement
    assignment: dict[int, list[Hashable]]
    diversity_score: float
    score: float
    constraint_score: float
    violations: list[Violation]
    diversity_metrics: dict[str, Any]
    stats: RunStatistics
    unseated: list[Hashable] = field(default_factory=list)
    history: list[float] = field(default_factory=list)

    @property
    def hard_violations(self) -> list[Violation]:
        return [v for v in self.violations if v.is_hard]

    def to_dict(self) -> dict[str, Any]:
        return {
            'assignment': {str(k): v for k, v in self.assignment.items()},
            'diversity_score': self.diversity_score,
            'score': self.score,
            'constraint_score': self.constraint_score,
            'violations': [v.to_dict() for v in self.violations],
            'diversity_metrics': self.diversity_metrics,
            'stats': self.stats.to_dict(),
            'unseated': list(self.unseated),
            'history': list(self.history),
        }
