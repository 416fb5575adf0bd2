"""
Neighbourhood moves on arrangements.

Every operator copies its input, never mutates it, and returns
(new_arrangement, operation_log) like the GA mutation operators do.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

from .models import Arrangement

MoveResult = Tuple[Arrangement, List[str]]

MUTATION_OPERATIONS = ('swap', 'move', 'shuffle', 'redistribute')


def _non_empty_tables(arrangement: Arrangement, min_size: int = 1) -> List[int]:
    return [t for t in arrangement.table_ids() if len(arrangement.tables[t]) >= min_size]


def _pick(items: List[int], rng: np.random.Generator) -> int:
    return items[int(rng.integers(0, len(items)))]


def swap_between_tables(
    arrangement: Arrangement,
    table_a: int,
    table_b: int,
    rng: np.random.Generator
) -> MoveResult:
    """
    Swap one random participant of table_a with one of table_b.

    Args:
        arrangement: Arrangement to modify
        table_a: First table id
        table_b: Second table id
        rng: Random number generator

    Returns:
        Tuple of (new_arrangement, operation_log)
    """
    result = arrangement.copy()
    seats_a = result.tables[table_a]
    seats_b = result.tables[table_b]
    if table_a == table_b or not seats_a or not seats_b:
        return result, [f"swap: tables {table_a}/{table_b} cannot swap"]

    i = int(rng.integers(0, len(seats_a)))
    j = int(rng.integers(0, len(seats_b)))
    seats_a[i], seats_b[j] = seats_b[j], seats_a[i]
    return result, [f"swap: {seats_b[j]} (table {table_a}) <-> {seats_a[i]} (table {table_b})"]


def swap_participants(arrangement: Arrangement, rng: np.random.Generator) -> MoveResult:
    """Swap two participants sitting at two different random tables."""
    tables = _non_empty_tables(arrangement)
    if len(tables) < 2:
        return arrangement.copy(), [f"swap: only {len(tables)} non-empty table(s)"]
    first, second = rng.choice(len(tables), size=2, replace=False)
    return swap_between_tables(arrangement, tables[int(first)], tables[int(second)], rng)


def multi_swap(
    arrangement: Arrangement,
    rng: np.random.Generator,
    min_swaps: int = 2,
    max_swaps: int = 3
) -> MoveResult:
    """Several swaps between the same pair of tables."""
    tables = _non_empty_tables(arrangement)
    if len(tables) < 2:
        return arrangement.copy(), [f"multi_swap: only {len(tables)} non-empty table(s)"]
    first, second = rng.choice(len(tables), size=2, replace=False)
    table_a, table_b = tables[int(first)], tables[int(second)]

    result = arrangement
    log = []
    for _ in range(int(rng.integers(min_swaps, max_swaps + 1))):
        result, op_log = swap_between_tables(result, table_a, table_b, rng)
        log.extend(op_log)
    return result, log


def move_participant(
    arrangement: Arrangement,
    rng: np.random.Generator,
    capacity: Optional[int] = None
) -> MoveResult:
    """
    Move one participant from a table with more than one person to a
    different table with free space.
    """
    sources = _non_empty_tables(arrangement, min_size=2)
    if not sources:
        return arrangement.copy(), ["move: no table can give up a participant"]
    source = _pick(sources, rng)
    targets = [
        t for t in arrangement.table_ids()
        if t != source and (capacity is None or len(arrangement.tables[t]) < capacity)
    ]
    if not targets:
        return arrangement.copy(), [f"move: no table has space for table {source}"]
    target = _pick(targets, rng)

    result = arrangement.copy()
    seats = result.tables[source]
    person = seats.pop(int(rng.integers(0, len(seats))))
    result.tables[target].append(person)
    return result, [f"move: {person} table {source} -> table {target}"]


def shuffle_table(arrangement: Arrangement, rng: np.random.Generator) -> MoveResult:
    """Shuffle the seat order of one table with more than two people."""
    eligible = _non_empty_tables(arrangement, min_size=3)
    if not eligible:
        return arrangement.copy(), ["shuffle: no table with more than 2 participants"]
    table_id = _pick(eligible, rng)
    result = arrangement.copy()
    seats = result.tables[table_id]
    result.tables[table_id] = [seats[int(i)] for i in rng.permutation(len(seats))]
    return result, [f"shuffle: table {table_id}"]


def redistribute(
    arrangement: Arrangement,
    rng: np.random.Generator,
    capacity: Optional[int] = None
) -> MoveResult:
    """Scatter a third of one large table across other tables with space."""
    eligible = _non_empty_tables(arrangement, min_size=4)
    if not eligible:
        return arrangement.copy(), ["redistribute: no table with more than 3 participants"]
    table_id = _pick(eligible, rng)

    result = arrangement.copy()
    seats = result.tables[table_id]
    count = max(len(seats) // 3, 1)
    picked = sorted((int(i) for i in rng.choice(len(seats), size=count, replace=False)), reverse=True)
    moving = [seats.pop(i) for i in picked]

    log = []
    for person in moving:
        targets = [
            t for t in result.table_ids()
            if t != table_id and (capacity is None or len(result.tables[t]) < capacity)
        ]
        if targets:
            target = _pick(targets, rng)
            result.tables[target].append(person)
            log.append(f"redistribute: {person} table {table_id} -> table {target}")
        else:
            seats.append(person)
            log.append(f"redistribute: {person} stays at table {table_id}, no space")
    return result, log


def mutate(
    arrangement: Arrangement,
    rng: np.random.Generator,
    capacity: Optional[int] = None,
    weights: Optional[Dict[str, float]] = None
) -> MoveResult:
    """
    Apply one mutation operator chosen by weight (uniform by default).

    Args:
        arrangement: Arrangement to mutate
        rng: Random number generator
        capacity: Table capacity for moves that need free seats
        weights: Optional operation -> weight mapping

    Returns:
        Tuple of (mutated_arrangement, operation_log)
    """
    names = list(weights) if weights else list(MUTATION_OPERATIONS)
    probs = np.array([weights[n] for n in names], dtype=float) if weights else np.ones(len(names))
    probs = probs / probs.sum()
    operation = names[int(rng.choice(len(names), p=probs))]

    if operation == 'swap':
        return swap_participants(arrangement, rng)
    if operation == 'move':
        return move_participant(arrangement, rng, capacity)
    if operation == 'shuffle':
        return shuffle_table(arrangement, rng)
    if operation == 'redistribute':
        return redistribute(arrangement, rng, capacity)
    raise ValueError(f"Unknown mutation operation: {operation}")
