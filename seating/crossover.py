"""
Crossover operators for the genetic algorithm.

Children inherit whole tables from one parent or the other; the resulting
child may miss participants, which repair_arrangement fills back in.
"""

from typing import Dict, Tuple

import numpy as np

from .models import Arrangement


def tablewise_crossover(
    parent_a: Arrangement,
    parent_b: Arrangement,
    rng: np.random.Generator,
    inherit_probability: float = 0.5
) -> Tuple[Arrangement, Dict[int, str]]:
    """
    Combine two parents table by table.

    For each table id, take that table's participants from parent A with
    ``inherit_probability``, otherwise from parent B. Participants already
    placed by an earlier table are skipped, so the child never contains
    duplicates but may be missing participants.

    Args:
        parent_a: First parent
        parent_b: Second parent
        rng: Random number generator
        inherit_probability: Probability of inheriting a table from parent A

    Returns:
        Tuple of (child_arrangement, crossover_mask)
        where crossover_mask maps table_id -> "A"|"B"

    Note:
        Child must be passed through repair_arrangement before use.
    """
    crossover_mask = {}
    used = set()
    child_tables = {}

    for table_id in parent_a.table_ids():
        if rng.random() < inherit_probability or table_id not in parent_b.tables:
            source = parent_a.tables[table_id]
            crossover_mask[table_id] = "A"
        else:
            source = parent_b.tables[table_id]
            crossover_mask[table_id] = "B"

        seats = [idx for idx in source if idx not in used]
        used.update(seats)
        child_tables[table_id] = seats

    return Arrangement(child_tables), crossover_mask
