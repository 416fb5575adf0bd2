"""
Diversity Scoring

Scores an arrangement by how evenly participant attributes are spread
across tables. Each table is scored on six dimensions built from Simpson
diversity indices; the table scores are averaged into overall dimension
scores and combined with configurable weights.
"""

import re
import statistics
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence

from .errors import ConfigurationError
from .ledger import InteractionLedger
from .models import Arrangement, Roster

DEFAULT_WEIGHTS = {
    'organizational': 0.25,
    'geographic': 0.20,
    'role': 0.20,
    'gender': 0.15,
    'experience': 0.10,
    'interaction': 0.10,
}

DIMENSIONS = tuple(DEFAULT_WEIGHTS)

_STATE_PATTERNS = (
    re.compile(r",\s*([A-Z]{2})(?:\s|$)"),
    re.compile(r",\s*([A-Z]{2,})\s*$"),
)

_ROLE_CATEGORIES = (
    ('executive', re.compile(r"chief|ceo|coo|cfo|president|executive|director")),
    ('management', re.compile(r"manager|supervisor|lead|coordinator")),
    ('professional', re.compile(r"analyst|specialist|officer|agent")),
    ('support', re.compile(r"assistant|admin|support|clerk")),
    ('technical', re.compile(r"engineer|developer|architect|scientist")),
)

_EXPERIENCE_LEVELS = (
    ('senior', re.compile(r"senior|sr\.|lead|principal|chief|director")),
    ('junior', re.compile(r"junior|jr\.|associate|assistant")),
)


def simpson_index(values: Sequence[Any]) -> float:
    """
    Simpson diversity index ``1 - sum(p_i^2)`` over present values.

    None entries are ignored. An empty input has no diversity and scores 0.
    """
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    total = len(present)
    counts: Dict[Any, int] = {}
    for value in present:
        counts[value] = counts.get(value, 0) + 1
    return 1.0 - sum((count / total) ** 2 for count in counts.values())


def extract_region(location: Optional[str]) -> Optional[str]:
    """Extract a state/region code from a "City, ST" location string."""
    if not location:
        return None
    for pattern in _STATE_PATTERNS:
        match = pattern.search(str(location))
        if match:
            return match.group(1)
    return None


def categorize_role(title: Optional[str]) -> Optional[str]:
    """Map a job title onto a coarse role category."""
    if not title:
        return None
    lowered = str(title).lower()
    for category, pattern in _ROLE_CATEGORIES:
        if pattern.search(lowered):
            return category
    return 'other'


def infer_experience(title: Optional[str], seniority: Optional[str] = None) -> Optional[str]:
    """Experience level: seniority when known, otherwise inferred from the title."""
    if seniority:
        return seniority
    if not title:
        return None
    lowered = str(title).lower()
    for level, pattern in _EXPERIENCE_LEVELS:
        if pattern.search(lowered):
            return level
    return 'mid'


def validate_weights(weights: Optional[Dict[str, float]]) -> Dict[str, float]:
    """
    Merge user weights over the defaults and check them.

    Raises:
        ConfigurationError: On unknown dimensions, negative weights, or a
            total that is not 1.0
    """
    merged = dict(DEFAULT_WEIGHTS)
    for name, value in (weights or {}).items():
        if name not in DEFAULT_WEIGHTS:
            raise ConfigurationError(
                f"Unknown diversity dimension '{name}'. "
                f"Valid dimensions: {', '.join(DIMENSIONS)}"
            )
        merged[name] = float(value)

    negative = [name for name, value in merged.items() if value < 0]
    if negative:
        raise ConfigurationError(f"Diversity weights must be non-negative: {negative}")

    total = sum(merged.values())
    if abs(total - 1.0) > 1e-6:
        raise ConfigurationError(f"Diversity weights must sum to 1.0, got {total:.4f}")
    return merged


class DiversityScorer:
    """Scores arrangements of one roster."""

    def __init__(
        self,
        roster: Roster,
        weights: Optional[Dict[str, float]] = None,
        ledger: Optional[InteractionLedger] = None,
        current_day: Optional[int] = None,
        min_confidence: float = 0.0
    ):
        self.roster = roster
        self.weights = validate_weights(weights)
        self.ledger = ledger
        self.current_day = current_day
        self.min_confidence = min_confidence
        self._features = self._extract_features()
        self._pair_penalties: Dict[tuple, float] = {}

    def _extract_features(self) -> Dict[str, List[Optional[str]]]:
        """Normalised per-participant values for every sub-index."""
        features: Dict[str, List[Optional[str]]] = {
            name: [] for name in (
                'org_level', 'organization', 'location', 'region', 'title',
                'role_category', 'seniority', 'gender', 'experience'
            )
        }

        def text(participant, attribute):
            value = participant.get(attribute, self.min_confidence)
            return str(value).strip() if value is not None else None

        for participant in self.roster:
            location = text(participant, 'location')
            title = text(participant, 'title')
            seniority = text(participant, 'seniority')
            features['org_level'].append(text(participant, 'org_level'))
            features['organization'].append(text(participant, 'organization'))
            features['location'].append(location)
            features['region'].append(text(participant, 'region') or extract_region(location))
            features['title'].append(title)
            features['role_category'].append(
                text(participant, 'role_category') or categorize_role(title)
            )
            features['seniority'].append(seniority)
            features['gender'].append(text(participant, 'gender'))
            features['experience'].append(infer_experience(title, seniority))
        return features

    def _simpson(self, feature: str, seats: Sequence[int]) -> float:
        column = self._features[feature]
        return simpson_index([column[idx] for idx in seats])

    def pair_penalty(self, a: int, b: int) -> float:
        """Ledger penalty for two roster indices (cached for the scorer's lifetime)."""
        if self.ledger is None:
            return 0.0
        key = (a, b) if a < b else (b, a)
        cached = self._pair_penalties.get(key)
        if cached is None:
            cached = self.ledger.penalty_for(
                self.roster.id_of(a), self.roster.id_of(b), self.current_day
            )
            self._pair_penalties[key] = cached
        return cached

    def interaction_score(self, seats: Sequence[int]) -> float:
        """1 - (summed pair penalty / number of pairs), floored at 0."""
        if self.ledger is None or len(seats) < 2:
            return 1.0
        pairs = list(combinations(seats, 2))
        total = sum(self.pair_penalty(a, b) for a, b in pairs)
        return max(1.0 - total / len(pairs), 0.0)

    def table_scores(self, seats: Sequence[int]) -> Dict[str, float]:
        """Six dimension scores for one table with at least two people."""
        return {
            'organizational': 0.3 * self._simpson('org_level', seats)
                              + 0.7 * self._simpson('organization', seats),
            'geographic': 0.6 * self._simpson('location', seats)
                          + 0.4 * self._simpson('region', seats),
            'role': 0.4 * self._simpson('title', seats)
                    + 0.4 * self._simpson('role_category', seats)
                    + 0.2 * self._simpson('seniority', seats),
            'gender': self._simpson('gender', seats),
            'experience': 0.6 * self._simpson('seniority', seats)
                          + 0.4 * self._simpson('experience', seats),
            'interaction': self.interaction_score(seats),
        }

    def _by_table(self, arrangement: Arrangement) -> Dict[int, Dict[str, float]]:
        return {
            table_id: self.table_scores(arrangement.tables[table_id])
            for table_id in arrangement.table_ids()
            if len(arrangement.tables[table_id]) >= 2
        }

    @staticmethod
    def _overall(by_table: Dict[int, Dict[str, float]]) -> Dict[str, Dict[str, float]]:
        overall = {}
        if not by_table:
            return overall
        for dimension in DIMENSIONS:
            scores = [metrics[dimension] for metrics in by_table.values()]
            overall[dimension] = {
                'score': statistics.mean(scores),
                'min': min(scores),
                'max': max(scores),
                'std_dev': statistics.pstdev(scores) if len(scores) > 1 else 0.0,
            }
        return overall

    def _combine(self, overall: Dict[str, Dict[str, float]]) -> float:
        if not overall:
            return 0.0
        total = sum(self.weights[d] * overall[d]['score'] for d in DIMENSIONS)
        return min(max(total, 0.0), 1.0)

    def score(self, arrangement: Arrangement) -> float:
        """Weighted diversity score in [0, 1]; 0 when no table seats two people."""
        return self._combine(self._overall(self._by_table(arrangement)))

    def detailed_metrics(self, arrangement: Arrangement) -> Dict[str, Any]:
        """
        Per-table and aggregate breakdown.

        Returns:
            Dictionary with 'overall' (per-dimension score/min/max/std_dev),
            'by_table' (per-dimension scores keyed by table id), 'summary'
            and the weighted 'score'
        """
        by_table = self._by_table(arrangement)
        overall = self._overall(by_table)
        sizes = arrangement.sizes()
        seated = sum(sizes.values())

        summary: Dict[str, Any] = {
            'total_participants': seated,
            'total_tables': len(sizes),
            'scored_tables': len(by_table),
            'average_table_size': round(seated / len(sizes), 1) if sizes else 0.0,
        }
        if overall:
            summary['mean_dimension_score'] = statistics.mean(
                m['score'] for m in overall.values()
            )
            summary['score_distribution'] = {
                'min': min(m['min'] for m in overall.values()),
                'max': max(m['max'] for m in overall.values()),
                'avg_std_dev': statistics.mean(m['std_dev'] for m in overall.values()),
            }

        return {
            'score': self._combine(overall),
            'overall': overall,
            'by_table': by_table,
            'summary': summary,
        }
