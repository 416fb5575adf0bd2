"""
Tests for configuration loading, I/O utilities and problem validation.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path

import yaml

from seating.config_loader import (
    build_constraints,
    build_optimization_config,
    load_config,
    load_participants,
    parse_constraint,
    parse_seed,
    validate_config,
)
from seating.constraints import ConstraintKind
from seating.errors import ConfigurationError
from seating.io_utils import load_roster_csv, save_arrangement_csv, save_result_json
from seating.models import Participant, Roster, Severity
from seating.validation import ProblemValidator

ROSTER_CSV = """id,name,organization,gender,location,location_confidence
p1,Ada,Acme,female,"Denver, CO",0.9
p2,Ben,Acme,,"Austin, TX",
p3,Cy,Globex,male,"Boise, ID",0.4
p4,Di,Globex,female,"Reno, NV",1.0
"""


def base_config():
    return {
        'tables': {'count': 2, 'capacity': 3},
        'participants': [
            {'id': 'a', 'name': 'A', 'organization': 'Acme'},
            {'id': 'b', 'name': 'B', 'organization': 'Globex'},
            {'id': 'c', 'name': 'C', 'organization': 'Acme'},
            {'id': 'd', 'name': 'D', 'organization': 'Initech'},
        ],
        'optimization': {
            'strategy': 'random_swap',
            'max_runtime': 5,
            'max_iterations': 50,
            'random_seed': 3,
            'weights': {'organizational': 0.35, 'interaction': 0.0},
        },
        'constraints': [],
    }


class TempDirTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def write_yaml(self, config, name="config.yaml"):
        path = self.temp_dir / name
        with open(path, 'w') as f:
            yaml.safe_dump(config, f)
        return path


class TestLoadConfig(TempDirTestCase):
    """Test YAML loading and typed config building."""

    def test_load_and_build(self):
        config = load_config(self.write_yaml(base_config()))
        optimization = build_optimization_config(config)

        self.assertEqual(optimization.table_count, 2)
        self.assertEqual(optimization.total_seats, 6)
        self.assertEqual(optimization.strategy, 'random_swap')
        self.assertEqual(optimization.max_iterations, 50)
        self.assertEqual(optimization.random_seed, 3)

    def test_missing_and_empty_files(self):
        with self.assertRaises(ConfigurationError):
            load_config(self.temp_dir / "missing.yaml")

        empty = self.temp_dir / "empty.yaml"
        empty.write_text("")
        with self.assertRaises(ConfigurationError):
            load_config(empty)

    def test_invalid_yaml(self):
        broken = self.temp_dir / "broken.yaml"
        broken.write_text("tables: [unclosed\n")
        with self.assertRaises(ConfigurationError):
            load_config(broken)

    def test_missing_tables(self):
        with self.assertRaises(ConfigurationError):
            build_optimization_config({'optimization': {}})

    def test_bad_optimization_value(self):
        config = base_config()
        config['optimization']['overflow'] = 'squeeze'
        with self.assertRaises(ConfigurationError):
            build_optimization_config(config)

    def test_parse_seed(self):
        self.assertIsNone(parse_seed('random'))
        self.assertIsNone(parse_seed(None))
        self.assertEqual(parse_seed('7'), 7)
        with self.assertRaises(ConfigurationError):
            parse_seed('lucky')


class TestParticipants(TempDirTestCase):
    """Test participant loading from YAML records and CSV."""

    def test_inline_records(self):
        config = {'participants': [
            {'id': 'a', 'name': 'A', 'gender': 'female',
             'attributes': {'title': {'value': 'Engineer', 'confidence': 0.5}}},
        ]}
        participant = load_participants(config)[0]

        self.assertEqual(participant.get('gender'), 'female')
        self.assertEqual(participant.confidence('title'), 0.5)

    def test_record_without_id(self):
        with self.assertRaises(ConfigurationError):
            load_participants({'participants': [{'name': 'nobody'}]})

    def test_missing_section(self):
        with self.assertRaises(ConfigurationError):
            load_participants({})

    def test_csv_relative_to_config(self):
        (self.temp_dir / "roster.csv").write_text(ROSTER_CSV)
        participants = load_participants({'participants': {'csv': 'roster.csv'}}, self.temp_dir)

        self.assertEqual([p.id for p in participants], ['p1', 'p2', 'p3', 'p4'])
        self.assertIsNone(participants[1].get('gender'))
        self.assertEqual(participants[0].confidence('location'), 0.9)
        self.assertEqual(participants[1].confidence('location'), 1.0)
        self.assertIsNone(participants[2].get('location', min_confidence=0.5))

    def test_csv_without_id_column(self):
        path = self.temp_dir / "bad.csv"
        path.write_text("name,gender\nAda,female\n")
        with self.assertRaises(ValueError):
            load_roster_csv(path)

    def test_missing_csv(self):
        with self.assertRaises(ConfigurationError):
            load_participants({'participants': {'csv': 'nowhere.csv'}}, self.temp_dir)


class TestConstraintParsing(unittest.TestCase):
    """Test constraint records."""

    def test_aliases(self):
        constraint = parse_constraint({
            'id': 'apart', 'type': 'separate', 'severity': 'HARD',
            'parameters': {'ids': ['a', 'b']},
        })
        self.assertIs(constraint.kind, ConstraintKind.SEPARATION)
        self.assertIs(constraint.severity, Severity.HARD)
        self.assertEqual(constraint.params.participants.ids, ('a', 'b'))

    def test_criteria_selector(self):
        constraint = parse_constraint({
            'type': 'clustering',
            'parameters': {'criteria': [{'type': 'attribute', 'attribute': 'org_level', 'value': 'executive'}]},
        }, index=4)
        self.assertEqual(constraint.id, 'constraint_4')
        self.assertEqual(constraint.params.participants.criteria[0].attribute, 'org_level')

    def test_avoidance(self):
        constraint = parse_constraint({
            'id': 'avoid',
            'type': 'avoid_combination',
            'parameters': {'combinations': [{
                'conditions': [{'attribute': 'organization', 'value': 'Acme'}],
                'description': 'no Acme',
            }]},
        })
        self.assertIs(constraint.kind, ConstraintKind.AVOIDANCE)
        self.assertEqual(constraint.params.combinations[0].description, 'no Acme')

    def test_unknown_type_becomes_custom(self):
        with self.assertLogs('seating.config_loader', level='WARNING'):
            constraint = parse_constraint({'id': 'vibes', 'type': 'good_vibes', 'parameters': {'x': 1}})
        self.assertIs(constraint.kind, ConstraintKind.CUSTOM)
        self.assertEqual(constraint.params.data, {'type': 'good_vibes', 'x': 1})

    def test_invalid_records(self):
        with self.assertRaises(ConfigurationError):
            parse_constraint({'id': 'x', 'type': 'table_size', 'parameters': {}})
        with self.assertRaises(ConfigurationError):
            parse_constraint({'id': 'x', 'type': 'table_size', 'severity': 'medium',
                              'parameters': {'max_size': 3}})

    def test_build_constraints_numbers_from_one(self):
        constraints = build_constraints([{'type': 'balance'}, {'type': 'min_table_size'}])
        self.assertEqual([c.id for c in constraints], ['constraint_1', 'constraint_2'])


class TestValidateConfig(unittest.TestCase):
    """Test configuration issue reporting."""

    def test_valid(self):
        self.assertEqual(validate_config(base_config()), [])

    def test_issues(self):
        config = base_config()
        del config['participants']
        config['tables']['count'] = 0
        config['optimization']['strategy'] = 'tabu_search'
        config['optimization']['weights'] = {'height': 0.2}
        config['constraints'] = [{'id': 'bad', 'type': 'table_size'}]

        issues = " | ".join(validate_config(config))
        self.assertIn("Missing required section: participants", issues)
        self.assertIn("tables.count", issues)
        self.assertIn("Unknown strategy", issues)
        self.assertIn("Unknown diversity dimensions: height", issues)
        self.assertIn("Constraint bad", issues)

    def test_weights_must_sum_to_one(self):
        config = base_config()
        config['optimization']['weights'] = {'gender': 0.5}
        self.assertTrue(any("sum to 1.0" in issue for issue in validate_config(config)))


class TestExport(TempDirTestCase):
    """Test CSV and JSON export."""

    def test_arrangement_csv(self):
        roster = Roster([Participant(id='a', name='Ada'), Participant(id='b', name='Ben')])
        path = save_arrangement_csv({2: ['b'], 1: ['a']}, roster, self.temp_dir / "out" / "day.csv")

        lines = path.read_text().splitlines()
        self.assertEqual(lines[0], "table,seat,participant_id,name")
        self.assertEqual(lines[1], "1,1,a,Ada")
        self.assertEqual(lines[2], "2,1,b,Ben")

    def test_result_json(self):
        path = save_result_json({'score': 0.5}, self.temp_dir / "result.json", {'config': 'x.yaml'})
        with open(path) as f:
            data = json.load(f)

        self.assertEqual(data['score'], 0.5)
        self.assertEqual(data['metadata']['config'], 'x.yaml')
        self.assertIn('generated_at', data['metadata'])


class TestProblemValidator(TempDirTestCase):
    """Test feasibility checks."""

    def setUp(self):
        super().setUp()
        self.config = build_optimization_config(base_config())
        self.participants = load_participants(base_config())

    def test_valid_problem(self):
        report = ProblemValidator().validate_problem(self.config, self.participants)
        self.assertTrue(report['valid'])
        self.assertEqual(report['summary']['seats'], 6)

    def test_impossible_separation(self):
        rule = parse_constraint({'id': 'spread', 'type': 'separation', 'severity': 'hard',
                                 'parameters': {'ids': ['a', 'b', 'c']}})
        report = ProblemValidator().validate_problem(self.config, self.participants, [rule])

        self.assertFalse(report['valid'])
        self.assertEqual(report['issues'][0]['type'], 'separation_impossible')

    def test_conflicting_rules(self):
        apart = parse_constraint({'id': 'apart', 'type': 'separation', 'parameters': {'ids': ['a', 'b']}})
        together = parse_constraint({'id': 'together', 'type': 'clustering', 'parameters': {'ids': ['a', 'b']}})
        report = ProblemValidator().validate_problem(self.config, self.participants, [apart, together])

        self.assertTrue(report['valid'])
        self.assertEqual([i['type'] for i in report['issues']], ['rule_conflict'])

    def test_capacity(self):
        crowd = [Participant(id=f"x{i}") for i in range(8)]
        report = ProblemValidator().validate_problem(self.config, crowd)
        self.assertTrue(report['valid'])
        self.assertTrue(any("exceed capacity" in w for w in report['warnings']))

        strict = build_optimization_config({**base_config(), 'optimization': {'overflow': 'fail'}})
        self.assertFalse(ProblemValidator().validate_problem(strict, crowd)['valid'])

    def test_day_count(self):
        report = ProblemValidator().validate_problem(self.config, self.participants, days=12)
        self.assertFalse(report['valid'])

    def test_validate_file(self):
        report = ProblemValidator().validate_file(self.write_yaml(base_config()))
        self.assertTrue(report['valid'])

        broken = base_config()
        broken['tables'] = {'count': 2}
        report = ProblemValidator().validate_file(self.write_yaml(broken, "broken.yaml"))
        self.assertFalse(report['valid'])
        self.assertTrue(report['errors'])


if __name__ == '__main__':
    unittest.main()
