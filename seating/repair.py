"""
Arrangement repair.

Restores the structural invariants of an arrangement after crossover:
every table id present, every expected participant seated exactly once.
"""

from typing import Iterable, List, Optional, Tuple

import numpy as np

from .models import Arrangement


def repair_arrangement(
    arrangement: Arrangement,
    expected: Iterable[int],
    table_count: int,
    rng: np.random.Generator,
    capacity: Optional[int] = None
) -> Tuple[Arrangement, List[str]]:
    """
    Fix duplicated, unknown and missing participants.

    Algorithm:
    1. Add any missing table ids and drop ids outside 1..table_count
    2. Keep the first occurrence of a duplicated participant
    3. Drop participants that are not expected
    4. Seat each missing participant at a random table with space, or at
       the smallest table when every table is full

    Args:
        arrangement: Arrangement to repair
        expected: Roster indices that must be seated
        table_count: Number of tables
        rng: Random number generator
        capacity: Table capacity (None means unlimited)

    Returns:
        Tuple of (repaired_arrangement, repair_notes)
    """
    notes = []
    expected_set = set(expected)
    repaired = Arrangement.empty(table_count)
    seen = set()
    displaced = []

    for table_id in arrangement.table_ids():
        if table_id not in repaired.tables:
            displaced.extend(arrangement.tables[table_id])
            notes.append(f"repair: dropped unknown table {table_id}")
            continue
        for idx in arrangement.tables[table_id]:
            if idx in seen:
                notes.append(f"repair: removed duplicate {idx} from table {table_id}")
                continue
            if idx not in expected_set:
                notes.append(f"repair: removed unexpected {idx} from table {table_id}")
                continue
            seen.add(idx)
            repaired.tables[table_id].append(idx)

    missing = [idx for idx in dict.fromkeys(displaced) if idx in expected_set and idx not in seen]
    missing += sorted(expected_set - seen - set(missing))

    for idx in missing:
        with_space = [
            t for t in repaired.table_ids()
            if capacity is None or len(repaired.tables[t]) < capacity
        ]
        if with_space:
            target = with_space[int(rng.integers(0, len(with_space)))]
        else:
            target = min(repaired.table_ids(), key=lambda t: (len(repaired.tables[t]), t))
        repaired.tables[target].append(idx)
        seen.add(idx)
        notes.append(f"repair: placed missing {idx} at table {target}")

    if not notes:
        notes.append("repair: no changes needed")
    return repaired, notes
