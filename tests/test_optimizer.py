"""
Tests for the single-day optimizer.
"""

import unittest

from seating.constraints import Constraint, ConstraintKind, ParticipantSelector, SeparationParams
from seating.errors import (
    CapacityOverflow,
    ConfigurationError,
    InsufficientParticipants,
    InvalidArrangement,
    UnknownStrategy,
)
from seating.ledger import InteractionLedger
from seating.models import Participant, Severity
from seating.optimizer import OptimizationConfig, Optimizer, OptimizerState, round_robin_arrangement


PEOPLE = [
    ("p0", "Acme", "Denver, CO", "Software Engineer", "female", "senior"),
    ("p1", "Acme", "Denver, CO", "Data Analyst", "male", "junior"),
    ("p2", "Acme", "Boise, ID", "Program Manager", "female", "mid"),
    ("p3", "Globex", "Austin, TX", "Software Engineer", "male", "mid"),
    ("p4", "Globex", "Austin, TX", "Chief Financial Officer", "female", "senior"),
    ("p5", "Initech", "Boise, ID", "Administrative Assistant", "male", "junior"),
    ("p6", "Initech", "Denver, CO", "Data Analyst", "female", "mid"),
    ("p7", "Globex", "Austin, TX", "Program Manager", "male", "senior"),
]


def make_participants(count=6):
    return [
        Participant(id=pid, name=pid.upper(), attributes={
            'organization': org, 'location': location, 'title': title,
            'gender': gender, 'seniority': seniority,
        })
        for pid, org, location, title, gender, seniority in PEOPLE[:count]
    ]


def make_config(**overrides):
    settings = dict(table_count=2, table_capacity=3, strategy='random_swap',
                    max_iterations=200, max_runtime=10.0, random_seed=11)
    settings.update(overrides)
    return OptimizationConfig(**settings)


class TestOptimizationConfig(unittest.TestCase):
    """Test settings validation."""

    def test_total_seats(self):
        self.assertEqual(make_config().total_seats, 6)

    def test_invalid_values(self):
        for overrides in ({'table_count': 0}, {'table_capacity': 0}, {'max_runtime': 0},
                          {'overflow': 'squeeze'}, {'min_confidence': 2.0},
                          {'weights': {'gender': 0.9}}):
            with self.assertRaises(ConfigurationError):
                make_config(**overrides)


class TestOptimizer(unittest.TestCase):
    """Test optimization runs."""

    def test_round_robin(self):
        arrangement = round_robin_arrangement(range(5), 2)
        self.assertEqual(arrangement.tables, {1: [0, 2, 4], 2: [1, 3]})

    def test_result_is_valid_and_not_worse(self):
        optimizer = Optimizer(make_config())
        result = optimizer.optimize(make_participants())

        self.assertIs(optimizer.state, OptimizerState.COMPLETED)
        seated = sorted(pid for ids in result.assignment.values() for pid in ids)
        self.assertEqual(seated, [f"p{i}" for i in range(6)])
        self.assertTrue(all(len(ids) <= 3 for ids in result.assignment.values()))
        self.assertGreaterEqual(result.score, result.stats.initial_score)
        self.assertGreaterEqual(result.diversity_score, 0.0)
        self.assertLessEqual(result.diversity_score, 1.0)
        self.assertEqual(result.stats.iterations, 200)
        self.assertEqual(result.history[-1], result.score)
        self.assertEqual(result.unseated, [])

    def test_seeded_runs_are_reproducible(self):
        first = Optimizer(make_config()).optimize(make_participants())
        second = Optimizer(make_config()).optimize(make_participants())
        self.assertEqual(first.assignment, second.assignment)
        self.assertEqual(first.score, second.score)

    def test_each_strategy_runs(self):
        for name in ('random_swap', 'simulated_annealing', 'genetic_algorithm'):
            result = Optimizer(make_config(max_iterations=10)).optimize(make_participants(), strategy=name)
            self.assertEqual(result.stats.strategy, name)
            self.assertEqual(result.arrangement.validate(range(6), 2), [])

    def test_zero_iterations_keeps_initial(self):
        result = Optimizer(make_config(max_iterations=0)).optimize(make_participants())
        self.assertEqual(result.stats.iterations, 0)
        self.assertEqual(result.score, result.stats.initial_score)
        self.assertEqual(result.assignment, {1: ["p0", "p2", "p4"], 2: ["p1", "p3", "p5"]})
        self.assertEqual(result.violations, [])
        self.assertEqual(result.constraint_score, 1.0)

    def test_early_termination(self):
        result = Optimizer(make_config(early_stop_score=0.0)).optimize(make_participants())
        self.assertTrue(result.stats.early_termination)
        self.assertEqual(result.stats.iterations, 0)

    def test_insufficient_participants(self):
        optimizer = Optimizer(make_config())
        with self.assertRaises(InsufficientParticipants):
            optimizer.optimize(make_participants(1))
        self.assertIs(optimizer.state, OptimizerState.FAILED)

    def test_unknown_strategy(self):
        with self.assertRaises(UnknownStrategy):
            Optimizer(make_config()).optimize(make_participants(), strategy='tabu_search')

    def test_overflow_unseats_extra_participants(self):
        optimizer = Optimizer(make_config())
        with self.assertLogs('seating.optimizer', level='WARNING'):
            result = optimizer.optimize(make_participants(8))

        self.assertEqual(result.unseated, ["p6", "p7"])
        self.assertEqual(sum(len(ids) for ids in result.assignment.values()), 6)

    def test_overflow_fail(self):
        optimizer = Optimizer(make_config(overflow='fail'))
        with self.assertRaises(CapacityOverflow):
            optimizer.optimize(make_participants(8))
        self.assertIs(optimizer.state, OptimizerState.FAILED)

    def test_seed_arrangement(self):
        seed = {1: ["p0", "p1", "p3"], 2: ["p2", "p4", "p5"]}
        result = Optimizer(make_config(max_iterations=0)).optimize(
            make_participants(), initial_arrangement=seed
        )
        self.assertEqual(result.assignment, seed)

    def test_partial_seed_is_completed(self):
        result = Optimizer(make_config(max_iterations=0)).optimize(
            make_participants(), initial_arrangement={1: ["p0"], 2: ["p1"]}
        )
        self.assertEqual(result.assignment, {1: ["p0", "p2", "p4"], 2: ["p1", "p3", "p5"]})

    def test_invalid_seed(self):
        with self.assertRaises(InvalidArrangement):
            Optimizer(make_config()).optimize(make_participants(), initial_arrangement={1: ["zz"], 2: []})
        with self.assertRaises(InvalidArrangement):
            Optimizer(make_config()).optimize(
                make_participants(), initial_arrangement={1: ["p0"], 2: ["p1"], 3: ["p2"]}
            )

    def test_hard_constraint_reported(self):
        split = Constraint(
            id='split_acme', kind=ConstraintKind.SEPARATION, severity=Severity.HARD,
            params=SeparationParams(participants=ParticipantSelector(ids=("p0", "p1", "p2")))
        )
        result = Optimizer(make_config(max_iterations=0)).optimize(
            make_participants(), [split], initial_arrangement={1: ["p0", "p1", "p3"], 2: ["p2", "p4", "p5"]}
        )
        self.assertEqual([v.constraint_id for v in result.hard_violations], ['split_acme'])
        self.assertLess(result.score, result.diversity_score)

    def test_ledger_discourages_repeat_pairs(self):
        ledger = InteractionLedger()
        ledger.record(1, {1: ["p0", "p2", "p4"], 2: ["p1", "p3", "p5"]})

        result = Optimizer(make_config(max_iterations=0)).optimize(
            make_participants(), ledger=ledger, current_day=2
        )
        fresh = Optimizer(make_config(max_iterations=0)).optimize(make_participants())
        self.assertLess(result.diversity_score, fresh.diversity_score)

    def test_result_serialises(self):
        result = Optimizer(make_config(max_iterations=5)).optimize(make_participants())
        data = result.to_dict()
        self.assertEqual(set(data['assignment']), {"1", "2"})
        self.assertIn('stats', data)


if __name__ == '__main__':
    unittest.main()
