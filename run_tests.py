#!/usr/bin/env python3
"""
Test runner for the seating optimizer
"""

import unittest
import sys
from pathlib import Path

# Add current directory to path for imports
sys.path.append(str(Path(__file__).parent))


def run_all_tests():
    """Discover and run every test module under tests/"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    tests_dir = Path(__file__).parent / 'tests'
    suite.addTests(loader.discover(str(tests_dir), pattern='test_*.py', top_level_dir=str(tests_dir)))
    suite.addTests(loader.discover(str(tests_dir / 'test_multiday'), pattern='test_*.py',
                                   top_level_dir=str(tests_dir / 'test_multiday')))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


def run_integration_test():
    """Run a short optimization and a short series on the sample configuration"""
    print("\n" + "=" * 50)
    print("INTEGRATION TEST")
    print("=" * 50)

    from seating.config_loader import (
        build_constraints,
        build_optimization_config,
        load_config,
        load_participants,
    )
    from seating.errors import SeatingError
    from seating.optimizer import Optimizer
    from multiday.coordinator import MultiDayCoordinator

    config_path = Path(__file__).parent / 'config.yaml'

    try:
        config = load_config(config_path)
        optimization = build_optimization_config(config)
        optimization.max_iterations = 300
        participants = load_participants(config, config_path.parent)
        constraints = build_constraints(config.get('constraints'))

        print("Running single-day optimization...")
        result = Optimizer(optimization).optimize(participants, constraints)
        seated = sum(len(ids) for ids in result.assignment.values())
        print(f"Participants seated: {seated}/{len(participants)}")
        print(f"Diversity score: {result.diversity_score:.3f}")
        print(f"Violations: {len(result.violations)}")

        print("Running 3-day series...")
        series = MultiDayCoordinator(optimization).run_series(participants, 3, base_constraints=constraints)
        print(f"Coverage history: {[round(c, 1) for c in series.coverage_history]}")

        success = (
            seated == len(participants) and
            0.0 <= result.diversity_score <= 1.0 and
            not result.hard_violations and
            series.success and
            series.coverage_history == sorted(series.coverage_history)
        )
    except SeatingError as e:
        print(f"✗ Integration test FAILED [{e.kind}]: {e.message}")
        return False

    if success:
        print("✓ Integration test PASSED")
    else:
        print("✗ Integration test FAILED")

    return success


if __name__ == "__main__":
    print("Running Seating Optimizer Tests")
    print("=" * 60)

    print("Running unit tests...")
    unit_success = run_all_tests()

    integration_success = run_integration_test()

    print("\n" + "=" * 60)
    print("TEST SUMMARY")
    print("=" * 60)
    print(f"Unit tests: {'PASSED' if unit_success else 'FAILED'}")
    print(f"Integration test: {'PASSED' if integration_success else 'FAILED'}")

    overall_success = unit_success and integration_success
    print(f"Overall: {'PASSED' if overall_success else 'FAILED'}")

    sys.exit(0 if overall_success else 1)
