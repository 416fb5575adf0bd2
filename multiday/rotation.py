"""
Rotation planning for multi-day events.

Produces the seed arrangement for each day from the arrangements of the
days before it. The seed is refined afterwards by the single-day optimizer.
"""

import logging
from enum import Enum
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np

from seating.errors import ConfigurationError, UnknownRotationPolicy
from seating.ledger import pair_key
from seating.models import Arrangement, Roster

from .analytics import interaction_distribution, rotation_efficiency, rotation_predictability

logger = logging.getLogger(__name__)

Assignment = Dict[int, List[Hashable]]

APART_PENALTY = 1000.0


class RotationPolicy(Enum):
    """Algorithms for seeding the next day."""
    MAXIMUM_DIVERSITY = "maximum_diversity"
    STRUCTURED_ROTATION = "structured_rotation"
    RANDOM_ROTATION = "random_rotation"
    CUSTOM_PATTERN = "custom_pattern"
    PROGRESSIVE_MIXING = "progressive_mixing"
    GEOGRAPHIC_ROTATION = "geographic_rotation"


def parse_policy(policy: Any) -> RotationPolicy:
    """
    Resolve a policy name or enum member.

    Raises:
        UnknownRotationPolicy: If the name is not a known policy
    """
    if isinstance(policy, RotationPolicy):
        return policy
    try:
        return RotationPolicy(str(policy))
    except ValueError:
        raise UnknownRotationPolicy(str(policy), [p.value for p in RotationPolicy])


def mixing_intensity(day_number: int) -> float:
    """Share of participants re-seated by progressive mixing on a given day."""
    return min(0.3 + 0.2 * (day_number - 1), 1.0)


def pair_counts(arrangements: Iterable[Assignment]) -> Dict[Tuple[Hashable, Hashable], int]:
    """How often each pair shared a table across the given days."""
    counts: Dict[Tuple[Hashable, Hashable], int] = {}
    for assignment in arrangements:
        for ids in assignment.values():
            ids = list(ids)
            for i in range(len(ids)):
                for j in range(i + 1, len(ids)):
                    key = pair_key(ids[i], ids[j])
                    counts[key] = counts.get(key, 0) + 1
    return counts


def assignment_pairs(assignment: Assignment) -> Set[Tuple[Hashable, Hashable]]:
    return set(pair_counts([assignment]))


class RotationPlanner:
    """
    Seeds one day's arrangement under a rotation policy.

    Args:
        table_count: Number of tables
        capacity: Seats per table
        rng: Random number generator
        attempts: Greedy fills tried by maximum_diversity
        max_random_attempts: Random fills tried by random_rotation
        repeat_threshold: Maximum share of repeated pairs accepted by random_rotation
        custom_rules: Default rules for custom_pattern (overridden per day)
    """

    def __init__(
        self,
        table_count: int,
        capacity: int,
        rng: np.random.Generator,
        attempts: int = 20,
        max_random_attempts: int = 100,
        repeat_threshold: float = 0.3,
        custom_rules: Optional[Dict[str, Any]] = None
    ):
        if table_count < 1 or capacity < 1:
            raise ConfigurationError("table_count and capacity must be positive")
        self.table_count = table_count
        self.capacity = capacity
        self.rng = rng
        self.attempts = attempts
        self.max_random_attempts = max_random_attempts
        self.repeat_threshold = repeat_threshold
        self.custom_rules = custom_rules or {}

    def seed_for_day(
        self,
        day_number: int,
        roster: Roster,
        prior_arrangements: Dict[int, Assignment],
        policy: Any = RotationPolicy.MAXIMUM_DIVERSITY,
        day_config: Optional[Dict[str, Any]] = None
    ) -> Arrangement:
        """
        Seed arrangement for ``day_number``.

        Args:
            day_number: Day being planned (1-based)
            roster: Participants attending this day
            prior_arrangements: Mapping day -> (table id -> participant ids)
            policy: RotationPolicy or its name
            day_config: Per-day options (attribute, custom_rules, ...)

        Returns:
            Seed arrangement over ``roster`` indices, never above capacity

        Raises:
            UnknownRotationPolicy: If the policy is not recognised
        """
        policy = parse_policy(policy)
        day_config = day_config or {}
        prior = {day: a for day, a in prior_arrangements.items() if day < day_number}
        logger.info("Seeding day %d with %s", day_number, policy.value)

        if policy is RotationPolicy.PROGRESSIVE_MIXING:
            return self._progressive_mixing(day_number, roster, prior, day_config)
        if policy is RotationPolicy.GEOGRAPHIC_ROTATION:
            return self._geographic_rotation(day_number, roster, day_config)
        if not prior:
            if policy is RotationPolicy.CUSTOM_PATTERN and (day_config.get('custom_rules') or self.custom_rules):
                logger.debug("Day %d has no prior days, custom rules skipped for a balanced seed", day_number)
            return self.balanced_fill(self._shuffled(range(len(roster))))

        if policy is RotationPolicy.MAXIMUM_DIVERSITY:
            return self._maximum_diversity(roster, prior)
        if policy is RotationPolicy.STRUCTURED_ROTATION:
            return self._structured_rotation(day_number, roster, prior)
        if policy is RotationPolicy.RANDOM_ROTATION:
            return self._random_rotation(roster, prior)
        return self._custom_pattern(day_number, roster, prior, day_config)

    # Building blocks

    def _shuffled(self, items: Iterable[int]) -> List[int]:
        items = list(items)
        return [items[int(i)] for i in self.rng.permutation(len(items))]

    def balanced_fill(self, order: Sequence[int]) -> Arrangement:
        """Deal participants round-robin, diverting to the emptiest table when one is full."""
        arrangement = Arrangement.empty(self.table_count)
        for position, idx in enumerate(order):
            table_id = position % self.table_count + 1
            if len(arrangement.tables[table_id]) >= self.capacity:
                open_tables = [t for t in arrangement.table_ids()
                               if len(arrangement.tables[t]) < self.capacity]
                if not open_tables:
                    break
                table_id = min(open_tables, key=lambda t: (len(arrangement.tables[t]), t))
            arrangement.tables[table_id].append(idx)
        return arrangement

    def chunk(self, order: Sequence[int]) -> Arrangement:
        """Cut an ordered list into consecutive, evenly sized tables."""
        arrangement = Arrangement.empty(self.table_count)
        seated = list(order)[:self.table_count * self.capacity]
        base, extra = divmod(len(seated), self.table_count)
        position = 0
        for table_id in arrangement.table_ids():
            size = base + (1 if table_id <= extra else 0)
            arrangement.tables[table_id] = seated[position:position + size]
            position += size
        return arrangement

    def _previous(self, prior: Dict[int, Assignment], day_number: int) -> Assignment:
        return prior.get(day_number - 1) or prior[max(prior)]

    @staticmethod
    def _previous_order(roster: Roster, previous: Assignment) -> List[int]:
        """Previous day's seating order restricted to today's roster, newcomers last."""
        order = [
            roster.index_of(pid)
            for table_id in sorted(previous)
            for pid in previous[table_id]
            if pid in roster
        ]
        placed = set(order)
        order.extend(idx for idx in range(len(roster)) if idx not in placed)
        return order

    def _greedy_fill(
        self,
        arrangement: Arrangement,
        order: Sequence[int],
        roster: Roster,
        counts: Dict[Tuple[Hashable, Hashable], int],
        apart_groups: Sequence[Set[Hashable]] = ()
    ) -> float:
        """
        Seat each participant at the open table with the lowest cumulative
        penalty (ties go to the emptier, then lower-numbered table).

        Returns:
            Total penalty of the pairs created
        """
        total = 0.0
        for idx in order:
            pid = roster.id_of(idx)
            best = None
            for table_id in arrangement.table_ids():
                seats = arrangement.tables[table_id]
                if len(seats) >= self.capacity:
                    continue
                penalty = 0.0
                for other in seats:
                    other_id = roster.id_of(other)
                    penalty += counts.get(pair_key(pid, other_id), 0)
                    if any(pid in group and other_id in group for group in apart_groups):
                        penalty += APART_PENALTY
                key = (penalty, len(seats), table_id)
                if best is None or key < best:
                    best = key
            if best is None:
                break
            arrangement.tables[best[2]].append(idx)
            total += best[0]
        return total

    # Policies

    def _maximum_diversity(self, roster: Roster, prior: Dict[int, Assignment],
                           apart_groups: Sequence[Set[Hashable]] = ()) -> Arrangement:
        counts = pair_counts(prior.values())
        best, best_penalty = None, float('inf')
        for _ in range(max(self.attempts, 1)):
            candidate = Arrangement.empty(self.table_count)
            penalty = self._greedy_fill(candidate, self._shuffled(range(len(roster))),
                                        roster, counts, apart_groups)
            if penalty < best_penalty:
                best, best_penalty = candidate, penalty
        logger.debug("Maximum diversity seed repeats %.0f prior pairings", best_penalty)
        return best

    def _structured_rotation(self, day_number: int, roster: Roster,
                             prior: Dict[int, Assignment]) -> Arrangement:
        order = self._previous_order(roster, self._previous(prior, day_number))
        count = len(order)
        if count == 0:
            return Arrangement.empty(self.table_count)
        offset = ((day_number - 1) * self.capacity) % count + int(self.rng.integers(0, self.capacity))
        offset %= count
        return self.chunk(order[offset:] + order[:offset])

    def repeat_ratio(self, assignment: Assignment, previous: Assignment) -> float:
        """Share of today's pairs that also sat together on the previous day."""
        pairs = assignment_pairs(assignment)
        if not pairs:
            return 0.0
        return len(pairs & assignment_pairs(previous)) / len(pairs)

    def _random_rotation(self, roster: Roster, prior: Dict[int, Assignment]) -> Arrangement:
        previous = prior[max(prior)]
        for attempt in range(self.max_random_attempts):
            candidate = self.balanced_fill(self._shuffled(range(len(roster))))
            if self.repeat_ratio(candidate.to_assignment(roster), previous) < self.repeat_threshold:
                logger.debug("Random rotation accepted after %d attempt(s)", attempt + 1)
                return candidate
        logger.info("Random rotation found no fill under %.0f%% repeats, using maximum diversity",
                    self.repeat_threshold * 100)
        return self._maximum_diversity(roster, prior)

    def _custom_pattern(self, day_number: int, roster: Roster, prior: Dict[int, Assignment],
                        day_config: Dict[str, Any]) -> Arrangement:
        rules = day_config.get('custom_rules') or self.custom_rules
        if not rules:
            return self._maximum_diversity(roster, prior)
        return self.apply_custom_rules(roster, prior, rules)

    def apply_custom_rules(self, roster: Roster, prior: Dict[int, Assignment],
                           rules: Dict[str, Any]) -> Arrangement:
        """
        Seat participants following structured rules.

        Rules format:
            pin: [{participants: [ids], table: n}, ...]
            together: [[ids], ...]
            apart: [[ids], ...]

        Pinned participants go first, then each 'together' group is placed
        at the table with the most free seats, then everyone else is placed
        greedily, avoiding prior pairings and 'apart' groups.

        The first day of a series always gets a balanced seed, so rules
        only take effect from the second day on.
        """
        arrangement = Arrangement.empty(self.table_count)
        placed: Set[int] = set()

        for pin in rules.get('pin') or []:
            table_id = int(pin.get('table', 0))
            if table_id not in arrangement.tables:
                raise ConfigurationError(f"Pinned table {table_id} does not exist")
            for pid in pin.get('participants') or []:
                if pid in roster and roster.index_of(pid) not in placed:
                    if len(arrangement.tables[table_id]) >= self.capacity:
                        logger.warning("Table %d is full, cannot pin %s", table_id, pid)
                        continue
                    arrangement.tables[table_id].append(roster.index_of(pid))
                    placed.add(roster.index_of(pid))

        for group in rules.get('together') or []:
            members = [roster.index_of(pid) for pid in group
                       if pid in roster and roster.index_of(pid) not in placed]
            for idx in members:
                open_tables = [t for t in arrangement.table_ids()
                               if len(arrangement.tables[t]) < self.capacity]
                if not open_tables:
                    break
                group_tables = [t for t in open_tables
                                if any(roster.id_of(s) in group for s in arrangement.tables[t])]
                candidates = group_tables or open_tables
                target = min(candidates, key=lambda t: (len(arrangement.tables[t]), t))
                arrangement.tables[target].append(idx)
                placed.add(idx)

        apart_groups = [set(group) for group in rules.get('apart') or []]
        remaining = self._shuffled(idx for idx in range(len(roster)) if idx not in placed)
        self._greedy_fill(arrangement, remaining, roster, pair_counts(prior.values()), apart_groups)
        return arrangement

    def _grouped_order(self, roster: Roster, attribute: str) -> List[List[int]]:
        """Participants grouped by attribute value, largest groups first, missing values last."""
        groups: Dict[Any, List[int]] = {}
        for idx, participant in enumerate(roster):
            groups.setdefault(participant.get(attribute), []).append(idx)
        keys = sorted((k for k in groups if k is not None), key=lambda k: (-len(groups[k]), str(k)))
        if None in groups:
            keys.append(None)
        return [self._shuffled(groups[k]) for k in keys]

    def _progressive_mixing(self, day_number: int, roster: Roster, prior: Dict[int, Assignment],
                            day_config: Dict[str, Any]) -> Arrangement:
        if day_number == 1 or not prior:
            attribute = day_config.get('group_attribute', 'organization')
            grouped = [idx for group in self._grouped_order(roster, attribute) for idx in group]
            return self.chunk(grouped)

        previous = self._previous(prior, day_number)
        arrangement = Arrangement.empty(self.table_count)
        origin: Dict[int, int] = {}
        for table_id, ids in previous.items():
            if int(table_id) not in arrangement.tables:
                continue
            for pid in ids:
                if pid in roster and len(arrangement.tables[int(table_id)]) < self.capacity:
                    idx = roster.index_of(pid)
                    arrangement.tables[int(table_id)].append(idx)
                    origin[idx] = int(table_id)

        count = len(roster)
        seated = arrangement.seated()
        mover_count = min(int(round(mixing_intensity(day_number) * count)), len(seated))
        movers = []
        if mover_count:
            picks = self.rng.choice(len(seated), size=mover_count, replace=False)
            movers = [seated[int(i)] for i in picks]
        movers += [idx for idx in range(count) if idx not in origin]

        for idx in movers:
            table_id = origin.get(idx)
            if table_id is not None:
                arrangement.tables[table_id].remove(idx)
        for idx in movers:
            open_tables = [t for t in arrangement.table_ids()
                           if len(arrangement.tables[t]) < self.capacity]
            if not open_tables:
                break
            elsewhere = [t for t in open_tables if t != origin.get(idx)] or open_tables
            smallest = min(len(arrangement.tables[t]) for t in elsewhere)
            candidates = [t for t in elsewhere if len(arrangement.tables[t]) == smallest]
            target = candidates[int(self.rng.integers(0, len(candidates)))]
            arrangement.tables[target].append(idx)
        return arrangement

    def _geographic_rotation(self, day_number: int, roster: Roster,
                             day_config: Dict[str, Any]) -> Arrangement:
        attribute = day_config.get('attribute', 'location')
        arrangement = Arrangement.empty(self.table_count)
        table_ids = arrangement.table_ids()
        pointer = (day_number - 1) % self.table_count

        for group in self._grouped_order(roster, attribute):
            for idx in group:
                for step in range(self.table_count):
                    table_id = table_ids[(pointer + step) % self.table_count]
                    if len(arrangement.tables[table_id]) < self.capacity:
                        arrangement.tables[table_id].append(idx)
                        pointer = (pointer + step + 1) % self.table_count
                        break
        return arrangement

    def preview(self, roster: Roster, policy: Any, days_count: int,
                day_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Generate seeds for several days without optimization and analyse them.

        Returns:
            Dictionary with the seeded arrangements and rotation analytics
        """
        policy = parse_policy(policy)
        arrangements: Dict[int, Assignment] = {}
        for day in range(1, days_count + 1):
            seed = self.seed_for_day(day, roster, arrangements, policy, day_config)
            arrangements[day] = seed.to_assignment(roster)

        return {
            'policy': policy.value,
            'days_previewed': days_count,
            'participants': len(roster),
            'arrangements': arrangements,
            'efficiency': rotation_efficiency(arrangements, roster.ids),
            'interaction_distribution': interaction_distribution(arrangements),
            'predictability': rotation_predictability(arrangements),
        }
