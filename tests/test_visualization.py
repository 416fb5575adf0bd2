"""
Tests for plots and text reports.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

from seating.models import Participant, Roster
from seating.optimizer import OptimizationConfig, Optimizer
from seating.report import print_optimization_report
from seating.visualization import ArrangementVisualizer, plot_multiday_series


def run_small_problem(**overrides):
    participants = [
        Participant(id=f"p{i}", name=f"Person {i}", attributes={
            'organization': ['Acme', 'Globex', 'Initech'][i % 3],
            'gender': 'female' if i % 2 else 'male',
        })
        for i in range(6)
    ]
    settings = dict(table_count=2, table_capacity=3, strategy='random_swap',
                    max_iterations=20, random_seed=1)
    settings.update(overrides)
    result = Optimizer(OptimizationConfig(**settings)).optimize(participants)
    return result, Roster(participants)


class TestVisualization(unittest.TestCase):
    """Plots render and save without a display."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.result, _ = run_small_problem()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_comprehensive_analysis_saved(self):
        path = self.temp_dir / "analysis.png"
        fig = ArrangementVisualizer(3).plot_comprehensive_analysis(
            self.result, save_path=str(path), show=False
        )
        self.assertTrue(path.exists())
        self.assertEqual(len(fig.axes), 5)

    def test_multiday_series_saved(self):
        path = self.temp_dir / "series.png"
        plot_multiday_series([0.6, 0.65, 0.7], [45.0, 70.0, 85.0], save_path=str(path), show=False)
        self.assertTrue(path.exists())

    def test_single_day_series(self):
        fig = plot_multiday_series([0.6], [45.0], show=False)
        self.assertEqual(len(fig.axes), 2)


class TestReport(unittest.TestCase):
    """Text report content."""

    def test_report_sections(self):
        result, roster = run_small_problem()
        report = print_optimization_report(result, roster)

        self.assertIn("SEATING OPTIMIZATION REPORT", report)
        self.assertIn("Strategy: random_swap", report)
        self.assertIn("Table 1 (3)", report)
        self.assertIn("Person", report)
        self.assertIn("organizational", report)

    def test_summary_report_omits_tables(self):
        result, _ = run_small_problem()
        report = print_optimization_report(result, detailed=False)
        self.assertNotIn("TABLES:", report)

    def test_unseated_listed(self):
        result, roster = run_small_problem(table_count=1, table_capacity=4)
        report = print_optimization_report(result, roster)
        self.assertIn("UNSEATED (2): p4, p5", report)


if __name__ == '__main__':
    unittest.main()
