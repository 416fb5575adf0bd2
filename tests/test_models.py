"""
Tests for data models and the error taxonomy.
"""

import unittest

from seating.errors import (
    CapacityOverflow,
    DayOptimizationFailure,
    InsufficientParticipants,
    SeatingError,
    UnknownStrategy,
)
from seating.models import (
    Arrangement,
    AttributeValue,
    Participant,
    Roster,
    RunStatistics,
    Severity,
    Violation,
)


def make_roster(count):
    return Roster(Participant(id=f"p{i}", name=f"Person {i}") for i in range(count))


class TestParticipant(unittest.TestCase):
    """Test participant attribute handling."""

    def test_attribute_conversion(self):
        """Plain values, tuples and mappings become AttributeValues."""
        participant = Participant(
            id="p1",
            attributes={
                'gender': 'female',
                'location': ('Denver, CO', 0.7),
                'title': {'value': 'Engineer', 'confidence': 0.4},
            }
        )

        self.assertEqual(participant.attributes['gender'], AttributeValue('female', 1.0))
        self.assertEqual(participant.confidence('location'), 0.7)
        self.assertEqual(participant.get('title'), 'Engineer')

    def test_low_confidence_counts_as_missing(self):
        participant = Participant(id="p1", attributes={'title': ('Engineer', 0.4)})

        self.assertEqual(participant.get('title', min_confidence=0.3), 'Engineer')
        self.assertIsNone(participant.get('title', min_confidence=0.5))

    def test_empty_and_missing_values(self):
        participant = Participant(id="p1", attributes={'organization': '   '})

        self.assertIsNone(participant.get('organization'))
        self.assertIsNone(participant.get('gender'))
        self.assertEqual(participant.confidence('gender'), 0.0)

    def test_invalid_confidence(self):
        with self.assertRaises(ValueError):
            AttributeValue('x', 1.5)


class TestRoster(unittest.TestCase):
    """Test the participant arena."""

    def test_index_lookup(self):
        roster = make_roster(3)

        self.assertEqual(len(roster), 3)
        self.assertEqual(roster.index_of("p2"), 2)
        self.assertEqual(roster.id_of(0), "p0")
        self.assertIn("p1", roster)
        self.assertNotIn("p9", roster)
        self.assertEqual(roster.ids, ["p0", "p1", "p2"])

    def test_duplicate_ids_rejected(self):
        with self.assertRaises(ValueError):
            Roster([Participant(id="a"), Participant(id="a")])

    def test_without(self):
        roster = make_roster(4).without(["p1", "p3", "unknown"])
        self.assertEqual(roster.ids, ["p0", "p2"])


class TestArrangement(unittest.TestCase):
    """Test arrangement structure and invariants."""

    def setUp(self):
        self.roster = make_roster(6)
        self.arrangement = Arrangement({1: [0, 1, 2], 2: [3, 4, 5]})

    def test_seated_count_matches_table_sizes(self):
        self.assertEqual(self.arrangement.seated_count(), sum(self.arrangement.sizes().values()))
        self.assertEqual(len(set(self.arrangement.seated())), 6)

    def test_copy_is_independent(self):
        copy = self.arrangement.copy()
        copy.tables[1].append(99)
        self.assertEqual(self.arrangement.tables[1], [0, 1, 2])

    def test_assignment_round_trip(self):
        assignment = self.arrangement.to_assignment(self.roster)
        self.assertEqual(assignment[2], ["p3", "p4", "p5"])

        rebuilt = Arrangement.from_assignment(assignment, self.roster)
        self.assertEqual(rebuilt.tables, self.arrangement.tables)

    def test_pairs(self):
        pairs = list(self.arrangement.pairs())
        self.assertEqual(len(pairs), 6)
        self.assertIn((1, 0, 1), pairs)

    def test_table_of(self):
        self.assertEqual(self.arrangement.table_of(4), 2)
        self.assertIsNone(self.arrangement.table_of(42))

    def test_validate_valid(self):
        self.assertEqual(self.arrangement.validate(range(6), 2), [])

    def test_validate_detects_problems(self):
        broken = Arrangement({1: [0, 1, 1], 3: [3, 4, 7]})
        problems = broken.validate(range(6), 2)

        joined = " | ".join(problems)
        self.assertIn("missing tables [2]", joined)
        self.assertIn("unexpected tables [3]", joined)
        self.assertIn("duplicated participants [1]", joined)
        self.assertIn("missing participants", joined)
        self.assertIn("unknown participants [7]", joined)


class TestResults(unittest.TestCase):
    """Test result serialization."""

    def test_violation_to_dict(self):
        violation = Violation("rule", Severity.HARD, "table_size", "too big", table_id=2,
                              participant_ids=["a", "b"])
        data = violation.to_dict()

        self.assertTrue(violation.is_hard)
        self.assertEqual(data['severity'], 'hard')
        self.assertEqual(data['table_id'], 2)

    def test_improvement_percent(self):
        stats = RunStatistics(strategy="random_swap", initial_score=0.5, final_score=0.6)
        self.assertAlmostEqual(stats.improvement_percent, 20.0)

        stats = RunStatistics(strategy="random_swap", initial_score=-0.5, final_score=0.6)
        self.assertEqual(stats.improvement_percent, 0.0)


class TestErrors(unittest.TestCase):
    """Test the error taxonomy."""

    def test_kinds_and_details(self):
        error = InsufficientParticipants(1)
        self.assertIsInstance(error, SeatingError)
        self.assertEqual(error.to_dict(), {
            'kind': 'insufficient_participants',
            'message': 'At least 2 participants are required, got 1',
            'count': 1,
        })

    def test_unknown_strategy_lists_available(self):
        error = UnknownStrategy("tabu", ["random_swap", "genetic_algorithm"])
        self.assertIn("random_swap", error.message)
        self.assertEqual(error.to_dict()['strategy'], "tabu")

    def test_day_failure_wraps_cause(self):
        cause = CapacityOverflow(30, 24)
        error = DayOptimizationFailure(3, cause)

        self.assertEqual(error.day, 3)
        self.assertIs(error.cause, cause)
        self.assertEqual(error.to_dict()['cause_kind'], 'capacity_overflow')
        self.assertIn("Day 3", error.message)


if __name__ == '__main__':
    unittest.main()
