"""
Multi-day analytics.

Coverage, trend and rotation statistics computed from an interaction
ledger and the per-day assignments of a series.
"""

import statistics
from typing import Any, Dict, Hashable, List, Sequence

import numpy as np

from seating.ledger import InteractionLedger

Assignment = Dict[int, List[Hashable]]


def efficiency_grade(efficiency: float) -> str:
    """Letter grade for a coverage ratio in [0, 1]."""
    if efficiency >= 0.8:
        return 'A'
    if efficiency >= 0.6:
        return 'B'
    if efficiency >= 0.4:
        return 'C'
    if efficiency >= 0.2:
        return 'D'
    return 'F'


def coverage_report(ledger: InteractionLedger, participant_ids: Sequence[Hashable]) -> Dict[str, Any]:
    """
    How many of the possible pairs have met, and how often.

    Args:
        ledger: Interaction ledger of the series
        participant_ids: Everyone in the series

    Returns:
        Dictionary with pair totals, coverage percentage, strength buckets,
        the count -> pairs distribution and an efficiency grade
    """
    ids = list(dict.fromkeys(participant_ids))
    members = set(ids)
    possible = len(ids) * (len(ids) - 1) // 2
    matrix = {
        key: info for key, info in ledger.matrix().items()
        if key[0] in members and key[1] in members
    }

    by_strength = {'high': 0, 'medium': 0, 'low': 0}
    distribution: Dict[int, int] = {}
    for info in matrix.values():
        by_strength[info['strength']] += 1
        distribution[info['count']] = distribution.get(info['count'], 0) + 1
    by_strength['none'] = possible - len(matrix)

    efficiency = len(matrix) / possible if possible else 0.0
    return {
        'total_possible_pairs': possible,
        'actual_interactions': len(matrix),
        'coverage_percentage': round(efficiency * 100, 2),
        'coverage_by_strength': by_strength,
        'interaction_distribution': dict(sorted(distribution.items())),
        'coverage_efficiency': {
            'raw_efficiency': efficiency,
            'normalized_efficiency': min(efficiency * 2, 1.0),
            'efficiency_grade': efficiency_grade(efficiency),
        },
    }


def linear_trend(values: Sequence[float]) -> float:
    """Least-squares slope of values against 1..n (0 for fewer than two values)."""
    if len(values) < 2:
        return 0.0
    x = np.arange(1, len(values) + 1, dtype=float)
    slope, _intercept = np.polyfit(x, np.asarray(values, dtype=float), 1)
    return float(slope)


def coefficient_of_variation(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = statistics.mean(values)
    if mean == 0:
        return 0.0
    return statistics.pstdev(values) / mean


def trend_statistics(scores: Sequence[float]) -> Dict[str, Any]:
    """Slope, r-squared, direction and volatility of a daily score series."""
    if len(scores) < 2:
        return {}
    slope = linear_trend(scores)
    x = np.arange(1, len(scores) + 1, dtype=float)
    y = np.asarray(scores, dtype=float)
    intercept = y.mean() - slope * x.mean()
    residual = float(((y - (slope * x + intercept)) ** 2).sum())
    total = float(((y - y.mean()) ** 2).sum())
    r_squared = 1.0 - residual / total if total > 0 else 0.0

    if slope > 0.01:
        direction = 'improving'
    elif slope < -0.01:
        direction = 'declining'
    else:
        direction = 'stable'

    return {
        'slope': round(slope, 4),
        'r_squared': round(r_squared, 4),
        'direction': direction,
        'volatility': round(coefficient_of_variation(list(scores)), 4),
    }


def _pair_occurrences(arrangements: Dict[int, Assignment]) -> Dict[tuple, int]:
    ledger = InteractionLedger.from_history(arrangements)
    return {key: info['count'] for key, info in ledger.matrix().items()}


def rotation_efficiency(arrangements: Dict[int, Assignment],
                        participant_ids: Sequence[Hashable]) -> Dict[str, float]:
    """
    Coverage, repetition rate and efficiency of a rotation.

    repetition_rate is the share of all table pairings that repeated an
    earlier pairing; efficiency_score is the share that were new.
    """
    occurrences = _pair_occurrences(arrangements)
    total = sum(occurrences.values())
    unique = len(occurrences)
    count = len(set(participant_ids))
    possible = count * (count - 1) // 2
    return {
        'interaction_coverage': round(unique / possible * 100, 2) if possible else 0.0,
        'repetition_rate': round((total - unique) / total * 100, 2) if total else 0.0,
        'efficiency_score': round(unique / total * 100, 2) if total else 0.0,
    }


def interaction_distribution(arrangements: Dict[int, Assignment]) -> Dict[str, Any]:
    """How many pairs met once, twice, ..."""
    occurrences = _pair_occurrences(arrangements)
    frequency: Dict[int, int] = {}
    for count in occurrences.values():
        frequency[count] = frequency.get(count, 0) + 1
    return {
        'total_unique_pairs': len(occurrences),
        'frequency_distribution': dict(sorted(frequency.items())),
        'most_frequent_interactions': max(occurrences.values()) if occurrences else 0,
        'least_frequent_interactions': min(occurrences.values()) if occurrences else 0,
    }


def rotation_predictability(arrangements: Dict[int, Assignment]) -> float:
    """
    Mean share of participants who stay at the same table from one day to
    the next (0 = everyone moves, 1 = nobody moves).
    """
    days = sorted(arrangements)
    if len(days) < 2:
        return 0.0
    shares = []
    for previous_day, day in zip(days, days[1:]):
        before = {pid: t for t, ids in arrangements[previous_day].items() for pid in ids}
        after = {pid: t for t, ids in arrangements[day].items() for pid in ids}
        common = [pid for pid in after if pid in before]
        if common:
            shares.append(sum(1 for pid in common if before[pid] == after[pid]) / len(common))
    return round(statistics.mean(shares), 4) if shares else 0.0


def network_density(ledger: InteractionLedger, participant_ids: Sequence[Hashable]) -> float:
    """Share of possible pairs that are connected in the interaction graph."""
    return round(ledger.coverage(participant_ids) / 100, 4)


def participant_connections(ledger: InteractionLedger,
                            participant_ids: Sequence[Hashable]) -> Dict[Hashable, Dict[str, Any]]:
    """Per-participant connection counts and centrality."""
    ids = list(dict.fromkeys(participant_ids))
    stats = {pid: {'connections': 0, 'strong_connections': 0} for pid in ids}
    for (a, b), info in ledger.matrix().items():
        for pid in (a, b):
            if pid in stats:
                stats[pid]['connections'] += 1
                if info['strength'] == 'high':
                    stats[pid]['strong_connections'] += 1
    others = max(len(ids) - 1, 1)
    for values in stats.values():
        values['centrality'] = round(values['connections'] / others, 4)
    return stats


def isolated_participants(connections: Dict[Hashable, Dict[str, Any]]) -> List[Hashable]:
    """Participants with fewer than half the average number of connections."""
    if not connections:
        return []
    threshold = statistics.mean(v['connections'] for v in connections.values()) / 2
    return [pid for pid, v in connections.items() if v['connections'] < threshold]


def attendance_patterns(arrangements: Dict[int, Assignment], table_count: int,
                        capacity: int) -> List[Dict[str, Any]]:
    """Per-day attendance, tables in use and seat utilization."""
    patterns = []
    seats = table_count * capacity
    for day in sorted(arrangements):
        sizes = [len(ids) for ids in arrangements[day].values()]
        present = sum(sizes)
        used = sum(1 for size in sizes if size > 0)
        patterns.append({
            'day': day,
            'participants_present': present,
            'tables_used': used,
            'average_table_size': round(present / used, 2) if used else 0.0,
            'utilization': round(present / seats * 100, 1) if seats else 0.0,
        })
    return patterns
