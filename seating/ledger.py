"""
Cross-day interaction ledger.

Records which participant pairs have shared a table and on which day, and
turns that history into the repeat-interaction penalty used by the
diversity scorer and the rotation planner.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Hashable, Iterable, Optional

PairKey = tuple[Hashable, Hashable]

BASE_PAIR_PENALTY = 0.1
OCCURRENCE_WEIGHT = 0.1
MAX_PAIR_PENALTY = 1.0


def _sort_key(value: Hashable) -> tuple[str, str]:
    return type(value).__name__, str(value)


def pair_key(a: Hashable, b: Hashable) -> PairKey:
    """Order-independent key for a pair of participant ids."""
    if a == b:
        raise ValueError(f"A participant cannot interact with itself: {a!r}")
    first, second = sorted((a, b), key=_sort_key)
    return first, second


def interaction_strength(count: int) -> str:
    """Bucket a co-seating count into low / medium / high."""
    if count <= 1:
        return "low"
    if count <= 3:
        return "medium"
    return "high"


@dataclass
class InteractionRecord:
    """Co-seating history for one unordered pair."""
    count: int = 0
    occurrences: list[tuple[int, int]] = field(default_factory=list)

    @property
    def days(self) -> list[int]:
        return sorted({day for day, _ in self.occurrences})

    @property
    def last_day(self) -> Optional[int]:
        days = self.days
        return days[-1] if days else None

    def has_consecutive_days(self) -> bool:
        days = self.days
        return any(b - a == 1 for a, b in zip(days, days[1:]))

    def frequency_score(self) -> float:
        score = self.count / 10
        if self.has_consecutive_days():
            score *= 1.5
        return min(score, 1.0)


class InteractionLedger:
    """Accumulates pairwise co-placements across days. Never shrinks."""

    def __init__(self):
        self._records: dict[PairKey, InteractionRecord] = {}
        self._days: set[int] = set()

    @classmethod
    def from_history(cls, history: dict[int, dict[int, Iterable[Hashable]]]) -> "InteractionLedger":
        """
        Build a ledger from prior days.

        Args:
            history: Mapping day number -> (table id -> participant ids)

        Returns:
            Populated ledger
        """
        ledger = cls()
        for day in sorted(history):
            ledger.record(day, history[day])
        return ledger

    def copy(self) -> "InteractionLedger":
        """Independent copy; recording into it leaves this ledger untouched."""
        clone = InteractionLedger()
        clone._records = {
            key: InteractionRecord(record.count, list(record.occurrences))
            for key, record in self._records.items()
        }
        clone._days = set(self._days)
        return clone

    def __len__(self) -> int:
        return len(self._records)

    @property
    def days(self) -> list[int]:
        return sorted(self._days)

    def record(self, day: int, assignment: dict[int, Iterable[Hashable]]) -> int:
        """
        Append a (day, table) occurrence for every co-seated pair.

        Args:
            day: Day number
            assignment: Mapping table id -> participant ids

        Returns:
            Number of pairs seen for the first time
        """
        new_pairs = 0
        self._days.add(day)
        for table_id, ids in assignment.items():
            for a, b in combinations(list(ids), 2):
                key = pair_key(a, b)
                record = self._records.get(key)
                if record is None:
                    record = InteractionRecord()
                    self._records[key] = record
                    new_pairs += 1
                record.count += 1
                record.occurrences.append((day, int(table_id)))
        return new_pairs

    def get(self, a: Hashable, b: Hashable) -> Optional[InteractionRecord]:
        return self._records.get(pair_key(a, b))

    def count_for(self, a: Hashable, b: Hashable) -> int:
        record = self.get(a, b)
        return record.count if record else 0

    def penalty_for(self, a: Hashable, b: Hashable, current_day: Optional[int] = None) -> float:
        """
        Repeat-interaction penalty for a pair, in [0, 1].

        Each prior occurrence contributes ``0.1 * recency * frequency`` with
        ``recency = max(2 - days_since / 30, 0.1)`` and
        ``frequency = min(count / 5, 2)``. Pairs that have met get a base
        penalty of 0.1 and the total is capped at 1.0. Pairs that never met
        have no penalty.

        Args:
            a: First participant id
            b: Second participant id
            current_day: Day being planned (defaults to the day after the
                latest recorded day)

        Returns:
            Penalty value
        """
        record = self.get(a, b)
        if record is None or record.count == 0:
            return 0.0
        if current_day is None:
            current_day = (max(self._days) if self._days else 0) + 1

        frequency = min(record.count / 5, 2.0)
        penalty = BASE_PAIR_PENALTY
        for day, _table in record.occurrences:
            days_since = max(current_day - day, 0)
            recency = max(2.0 - days_since / 30, 0.1)
            penalty += OCCURRENCE_WEIGHT * recency * frequency
        return min(penalty, MAX_PAIR_PENALTY)

    def pairs(self) -> list[PairKey]:
        return list(self._records)

    def unique_pairs(self) -> int:
        return len(self._records)

    def coverage(self, participant_ids: Iterable[Hashable]) -> float:
        """
        Percentage of all possible pairs among ``participant_ids`` that have met.
        """
        ids = list(dict.fromkeys(participant_ids))
        possible = len(ids) * (len(ids) - 1) // 2
        if possible == 0:
            return 0.0
        members = set(ids)
        observed = sum(1 for a, b in self._records if a in members and b in members)
        return observed / possible * 100

    def matrix(self) -> dict[PairKey, dict[str, Any]]:
        """Aggregate view of every recorded pair."""
        return {
            key: {
                'count': record.count,
                'days': record.days,
                'tables': [table for _, table in record.occurrences],
                'last_day': record.last_day,
                'strength': interaction_strength(record.count),
                'frequency_score': round(record.frequency_score(), 4),
            }
            for key, record in self._records.items()
        }

    def strength_distribution(self) -> dict[str, int]:
        distribution = {'low': 0, 'medium': 0, 'high': 0}
        for record in self._records.values():
            distribution[interaction_strength(record.count)] += 1
        return distribution

    def to_dict(self) -> dict[str, Any]:
        return {
            'days': self.days,
            'unique_pairs': self.unique_pairs(),
            'pairs': [
                {'a': a, 'b': b, **info}
                for (a, b), info in self.matrix().items()
            ],
        }
