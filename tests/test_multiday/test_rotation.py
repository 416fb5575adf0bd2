"""
Tests for rotation policies.
"""

import unittest

import numpy as np

from multiday.rotation import (
    RotationPlanner,
    RotationPolicy,
    mixing_intensity,
    pair_counts,
    parse_policy,
)
from seating.errors import ConfigurationError, UnknownRotationPolicy
from seating.models import Participant, Roster

ORGANIZATIONS = ["Acme", "Globex", "Initech"]
LOCATIONS = ["Denver, CO", "Austin, TX", "Boise, ID", "Reno, NV"]


def make_roster(count=12):
    return Roster(
        Participant(id=f"p{i:02d}", name=f"Person {i}", attributes={
            'organization': ORGANIZATIONS[i // 4],
            'location': LOCATIONS[i % 4],
        })
        for i in range(count)
    )


class RotationTestCase(unittest.TestCase):

    def setUp(self):
        self.roster = make_roster()
        self.planner = RotationPlanner(3, 4, np.random.default_rng(21))
        self.day_one = {1: ["p00", "p01", "p02", "p03"],
                        2: ["p04", "p05", "p06", "p07"],
                        3: ["p08", "p09", "p10", "p11"]}

    def assertSeated(self, arrangement, roster=None):
        roster = roster or self.roster
        self.assertEqual(arrangement.validate(range(len(roster)), 3), [])
        self.assertTrue(all(len(seats) <= 4 for seats in arrangement.tables.values()))


class TestPolicyHelpers(unittest.TestCase):

    def test_parse_policy(self):
        self.assertIs(parse_policy("random_rotation"), RotationPolicy.RANDOM_ROTATION)
        self.assertIs(parse_policy(RotationPolicy.CUSTOM_PATTERN), RotationPolicy.CUSTOM_PATTERN)
        with self.assertRaises(UnknownRotationPolicy) as ctx:
            parse_policy("musical_chairs")
        self.assertIn("maximum_diversity", ctx.exception.message)

    def test_mixing_intensity(self):
        self.assertAlmostEqual(mixing_intensity(1), 0.3)
        self.assertAlmostEqual(mixing_intensity(3), 0.7)
        self.assertEqual(mixing_intensity(5), 1.0)

    def test_pair_counts(self):
        counts = pair_counts([{1: ["a", "b", "c"]}, {1: ["b", "a"], 2: ["c"]}])
        self.assertEqual(counts[("a", "b")], 2)
        self.assertEqual(counts[("a", "c")], 1)
        self.assertEqual(len(counts), 3)

    def test_planner_rejects_bad_sizes(self):
        with self.assertRaises(ConfigurationError):
            RotationPlanner(0, 4, np.random.default_rng(0))


class TestMaximumDiversity(RotationTestCase):

    def test_first_day_is_balanced(self):
        seed = self.planner.seed_for_day(1, self.roster, {})
        self.assertSeated(seed)
        self.assertEqual(sorted(seed.sizes().values()), [4, 4, 4])

    def test_avoids_prior_pairs(self):
        seed = self.planner.seed_for_day(2, self.roster, {1: self.day_one}, "maximum_diversity")
        self.assertSeated(seed)

        repeated = self.planner.repeat_ratio(seed.to_assignment(self.roster), self.day_one)
        self.assertLess(repeated, 0.5)

    def test_ignores_later_days(self):
        later = {5: self.day_one}
        seed = self.planner.seed_for_day(2, self.roster, later, "maximum_diversity")
        self.assertSeated(seed)
        self.assertEqual(sorted(seed.sizes().values()), [4, 4, 4])


class TestStructuredRotation(RotationTestCase):

    def test_balanced_tables(self):
        seed = self.planner.seed_for_day(2, self.roster, {1: self.day_one}, "structured_rotation")
        self.assertSeated(seed)
        self.assertEqual(sorted(seed.sizes().values()), [4, 4, 4])

    def test_absent_participants_skipped(self):
        roster = self.roster.without(["p01", "p05"])
        seed = self.planner.seed_for_day(2, roster, {1: self.day_one}, "structured_rotation")
        self.assertSeated(seed, roster)
        self.assertEqual(sorted(seed.sizes().values()), [3, 3, 4])

    def test_chunk(self):
        arrangement = self.planner.chunk(list(range(10)))
        self.assertEqual(arrangement.tables, {1: [0, 1, 2, 3], 2: [4, 5, 6], 3: [7, 8, 9]})


class TestRandomRotation(RotationTestCase):

    def test_respects_threshold(self):
        with self.assertLogs('multiday.rotation', level='DEBUG') as logs:
            seed = self.planner.seed_for_day(2, self.roster, {1: self.day_one}, "random_rotation")
        self.assertSeated(seed)
        self.assertTrue(any("accepted" in line for line in logs.output))

        repeated = self.planner.repeat_ratio(seed.to_assignment(self.roster), self.day_one)
        self.assertLess(repeated, self.planner.repeat_threshold)

    def test_falls_back_to_maximum_diversity(self):
        planner = RotationPlanner(3, 4, np.random.default_rng(21),
                                  max_random_attempts=3, repeat_threshold=0.0)
        with self.assertLogs('multiday.rotation', level='INFO') as logs:
            seed = planner.seed_for_day(2, self.roster, {1: self.day_one}, "random_rotation")
        self.assertSeated(seed)
        self.assertTrue(any("using maximum diversity" in line for line in logs.output))

    def test_accepts_first_fill_under_loose_threshold(self):
        planner = RotationPlanner(3, 4, np.random.default_rng(21), repeat_threshold=1.01)
        seed = planner.seed_for_day(2, self.roster, {1: self.day_one}, "random_rotation")
        self.assertSeated(seed)

    def test_repeat_ratio(self):
        self.assertEqual(self.planner.repeat_ratio(self.day_one, self.day_one), 1.0)
        self.assertEqual(self.planner.repeat_ratio({1: ["p00"]}, self.day_one), 0.0)


class TestCustomPattern(RotationTestCase):

    def test_rules(self):
        rules = {
            'pin': [{'participants': ["p00"], 'table': 3}],
            'together': [["p01", "p02"]],
            'apart': [["p03", "p04"]],
        }
        roster = make_roster(8)
        seed = self.planner.seed_for_day(2, roster, {1: self.day_one}, "custom_pattern",
                                         {'custom_rules': rules})
        assignment = seed.to_assignment(roster)
        table_of = {pid: t for t, ids in assignment.items() for pid in ids}

        self.assertSeated(seed, roster)
        self.assertEqual(table_of["p00"], 3)
        self.assertEqual(table_of["p01"], table_of["p02"])
        self.assertNotEqual(table_of["p03"], table_of["p04"])

    def test_planner_default_rules(self):
        planner = RotationPlanner(3, 4, np.random.default_rng(4),
                                  custom_rules={'pin': [{'participants': ["p11"], 'table': 1}]})
        seed = planner.seed_for_day(2, self.roster, {1: self.day_one}, "custom_pattern")
        self.assertIn(self.roster.index_of("p11"), seed.tables[1])

    def test_first_day_skips_rules(self):
        rules = {'pin': [{'participants': ["p00", "p01", "p02", "p03"], 'table': 3}]}
        with self.assertLogs('multiday.rotation', level='DEBUG') as logs:
            seed = self.planner.seed_for_day(1, self.roster, {}, "custom_pattern", {'custom_rules': rules})
        self.assertSeated(seed)
        self.assertEqual(sorted(seed.sizes().values()), [4, 4, 4])
        self.assertTrue(any("custom rules skipped" in line for line in logs.output))

    def test_without_rules_falls_back(self):
        seed = self.planner.seed_for_day(2, self.roster, {1: self.day_one}, "custom_pattern")
        self.assertSeated(seed)

    def test_bad_pin(self):
        with self.assertRaises(ConfigurationError):
            self.planner.seed_for_day(2, self.roster, {1: self.day_one}, "custom_pattern",
                                      {'custom_rules': {'pin': [{'participants': ["p00"], 'table': 9}]}})


class TestProgressiveMixing(RotationTestCase):

    def test_day_one_groups_by_organization(self):
        seed = self.planner.seed_for_day(1, self.roster, {}, "progressive_mixing")
        self.assertSeated(seed)
        for seats in seed.tables.values():
            organizations = {self.roster[idx].get('organization') for idx in seats}
            self.assertEqual(len(organizations), 1)

    def test_later_days_mix(self):
        seed = self.planner.seed_for_day(2, self.roster, {1: self.day_one}, "progressive_mixing")
        self.assertSeated(seed)

        before = {pid: t for t, ids in self.day_one.items() for pid in ids}
        after = seed.to_assignment(self.roster)
        moved = sum(1 for t, ids in after.items() for pid in ids if before[pid] != t)
        self.assertGreater(moved, 0)


class TestGeographicRotation(RotationTestCase):

    def test_locations_spread_across_tables(self):
        for day in (1, 2):
            seed = self.planner.seed_for_day(day, self.roster, {}, "geographic_rotation")
            self.assertSeated(seed)
            for seats in seed.tables.values():
                locations = [self.roster[idx].get('location') for idx in seats]
                self.assertEqual(len(set(locations)), len(locations))

    def test_start_table_rotates(self):
        roster = make_roster(3)
        day_one = self.planner.seed_for_day(1, roster, {}, "geographic_rotation")
        day_two = self.planner.seed_for_day(2, roster, {}, "geographic_rotation")

        self.assertEqual(day_one.to_assignment(roster), {1: ["p01"], 2: ["p02"], 3: ["p00"]})
        self.assertEqual(day_two.to_assignment(roster), {1: ["p00"], 2: ["p01"], 3: ["p02"]})


class TestPreview(RotationTestCase):

    def test_preview(self):
        preview = self.planner.preview(self.roster, "maximum_diversity", 3)

        self.assertEqual(preview['policy'], "maximum_diversity")
        self.assertEqual(sorted(preview['arrangements']), [1, 2, 3])
        self.assertGreater(preview['efficiency']['interaction_coverage'], 0)
        self.assertGreaterEqual(preview['predictability'], 0.0)
        self.assertLessEqual(preview['predictability'], 1.0)

    def test_unknown_policy(self):
        with self.assertRaises(UnknownRotationPolicy):
            self.planner.seed_for_day(1, self.roster, {}, "musical_chairs")


if __name__ == '__main__':
    unittest.main()
