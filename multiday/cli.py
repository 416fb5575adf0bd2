"""
CLI module for multi-day runs.

Handles run configuration loading, validation, and mode dispatching.
"""

import time
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

from seating.config_loader import (
    build_constraints,
    build_optimization_config,
    load_config,
    load_participants,
    validate_config,
)
from seating.errors import ConfigurationError
from seating.io_utils import save_arrangement_csv, save_result_json
from seating.models import Roster

from .coordinator import MAX_DAYS, MIN_DAYS, DayPlan, MultiDayCoordinator, MultiDayResult
from .rotation import RotationPlanner, parse_policy

MODES = ('run', 'preview')
PLANNER_KEYS = ('attempts', 'max_random_attempts', 'repeat_threshold', 'custom_rules')


def load_run_config(config_path: str) -> Dict[str, Any]:
    """
    Load run configuration from YAML file.

    Raises:
        ConfigurationError: If the file is missing or not valid YAML
    """
    return load_config(config_path)


def validate_run_config(config: Dict[str, Any]) -> None:
    """
    Validate run configuration structure.

    Args:
        config: Run configuration dictionary

    Raises:
        ConfigurationError: If configuration is invalid
    """
    issues = validate_config(config)
    if issues:
        raise ConfigurationError("; ".join(issues))

    if 'multi_day' not in config:
        raise ConfigurationError("Missing required section: 'multi_day'")

    section = config['multi_day']
    if not isinstance(section, dict):
        raise ConfigurationError("'multi_day' must be a dictionary")

    days = section.get('days')
    if not isinstance(days, int) or not MIN_DAYS <= days <= MAX_DAYS:
        raise ConfigurationError(
            f"'multi_day.days' must be an integer between {MIN_DAYS} and {MAX_DAYS}, got: {days}"
        )

    mode = section.get('mode', 'run')
    if mode not in MODES:
        raise ConfigurationError(f"Invalid mode: '{mode}'. Must be 'run' or 'preview'")

    parse_policy(section.get('policy', 'maximum_diversity'))

    for key in ('absences', 'day_constraints', 'day_options'):
        value = section.get(key)
        if value is None:
            continue
        if not isinstance(value, dict):
            raise ConfigurationError(f"'multi_day.{key}' must map day numbers to values")
        for day in value:
            if not isinstance(day, int) or not 1 <= day <= days:
                raise ConfigurationError(f"'multi_day.{key}' refers to unknown day: {day}")


def build_day_plans(config: Dict[str, Any]) -> List[DayPlan]:
    """Per-day plans from the 'multi_day' section."""
    section = config['multi_day']
    absences = section.get('absences') or {}
    day_constraints = section.get('day_constraints') or {}
    day_options = section.get('day_options') or {}

    return [
        DayPlan(
            day_number=day,
            absent_ids=list(absences.get(day) or []),
            constraints=build_constraints(day_constraints.get(day)),
            day_config=dict(day_options.get(day) or {}),
        )
        for day in range(1, section['days'] + 1)
    ]


def print_series_report(result: MultiDayResult) -> None:
    """Print a human-readable summary of a series."""
    print("=" * 60)
    print("MULTI-DAY SERIES REPORT")
    print("=" * 60)

    if not result.success:
        print(f"Series FAILED on day {result.failed_day} ({result.error_kind})")
        print(f"  {result.error}")
        print(f"  Days completed before failure: {len(result.days)}")
        return

    print("Day | Present | Score  | Violations | New pairs | Coverage")
    print("----|---------|--------|------------|-----------|---------")
    for day in result.days:
        print(f"{day.day_number:3} | {day.participants:7} | {day.diversity_score:6.3f} | "
              f"{len(day.violations):10} | {day.new_pairs:9} | {day.coverage:7.1f}%")

    metrics = result.overall_metrics
    trend = metrics.get('trend', {})
    report = metrics.get('coverage_report', {})
    efficiency = report.get('coverage_efficiency', {})

    print(f"\nAverage score: {metrics['average_score']:.3f}")
    print(f"Interaction coverage: {metrics['interaction_coverage']:.1f}% "
          f"(grade {efficiency.get('efficiency_grade', '-')})")
    print(f"Diversity trend: {metrics['diversity_trend']:+.4f}/day ({trend.get('direction', 'n/a')})")
    print(f"Pairs by strength: {report.get('coverage_by_strength', {})}")
    print(f"Network density: {metrics['network_density']:.2f}")
    isolated = metrics['isolated_participants']
    if isolated:
        print(f"Few connections ({len(isolated)}): {', '.join(str(pid) for pid in isolated)}")
    for day in metrics['attendance']:
        print(f"  Day {day['day']}: {day['participants_present']} present, "
              f"{day['tables_used']} tables, {day['utilization']:.0f}% seats used")
    print(f"Total runtime: {result.total_runtime:.2f}s")


def print_preview_report(preview: Dict[str, Any]) -> None:
    print("=" * 60)
    print(f"ROTATION PREVIEW: {preview['policy']}")
    print("=" * 60)
    for day, assignment in preview['arrangements'].items():
        print(f"Day {day}:")
        for table_id in sorted(assignment):
            print(f"  Table {table_id}: {', '.join(str(pid) for pid in assignment[table_id])}")

    efficiency = preview['efficiency']
    print(f"\nCoverage: {efficiency['interaction_coverage']:.1f}%")
    print(f"Repetition rate: {efficiency['repetition_rate']:.1f}%")
    print(f"Efficiency: {efficiency['efficiency_score']:.1f}%")
    print(f"Predictability: {preview['predictability']:.2f}")


def run_series_mode(config: Dict[str, Any], base_dir: Path) -> MultiDayResult:
    """Optimize every day of the configured series and export the results."""
    section = config['multi_day']
    optimization = build_optimization_config(config)
    participants = load_participants(config, base_dir)
    planner_options = {k: section['planner'][k] for k in PLANNER_KEYS if k in (section.get('planner') or {})}

    coordinator = MultiDayCoordinator(optimization, planner_options)
    result = coordinator.run_series(
        participants,
        build_day_plans(config),
        policy=section.get('policy', 'maximum_diversity'),
        max_runtime_per_day=section.get('max_runtime_per_day'),
        base_constraints=build_constraints(config.get('constraints')),
    )
    print_series_report(result)

    output = config.get('output') or {}
    root = Path(output.get('root', 'output'))
    name = output.get('name') or f"series_{int(time.time())}"
    if result.success or output.get('save_partial', False):
        json_path = save_result_json(result, root / f"{name}.json",
                                     {'policy': section.get('policy', 'maximum_diversity')})
        print(f"\n  ✓ JSON: {json_path}")
        roster = Roster(participants)
        for day in result.days:
            csv_path = save_arrangement_csv(day.assignment, roster, root / f"{name}_day{day.day_number}.csv")
            print(f"  ✓ CSV: {csv_path}")

    if result.success and output.get('save_plots', False):
        import matplotlib
        matplotlib.use('Agg')
        from seating.visualization import plot_multiday_series

        plot_path = root / f"{name}_series.png"
        plot_multiday_series(result.daily_scores, result.coverage_history,
                             save_path=str(plot_path), show=False)
        print(f"  ✓ Plot: {plot_path}")

    return result


def run_preview_mode(config: Dict[str, Any], base_dir: Path) -> Dict[str, Any]:
    """Generate rotation seeds without optimization and report on them."""
    section = config['multi_day']
    optimization = build_optimization_config(config)
    roster = Roster(load_participants(config, base_dir))
    planner_options = {k: section['planner'][k] for k in PLANNER_KEYS if k in (section.get('planner') or {})}
    planner = RotationPlanner(optimization.table_count, optimization.table_capacity,
                              np.random.default_rng(optimization.random_seed), **planner_options)
    preview = planner.preview(roster, section.get('policy', 'maximum_diversity'), section['days'])
    print_preview_report(preview)
    return preview


def run_from_config(config_path: str):
    """
    Load run configuration and execute appropriate mode.

    This is the main entry point called by multiday_cli.py.

    Raises:
        ConfigurationError: If config is invalid
        SeatingError: From the preview planner (series failures are
            reported in the returned result)
    """
    print(f"Loading configuration from: {config_path}")
    config = load_run_config(config_path)

    print("Validating configuration...")
    validate_run_config(config)

    mode = config['multi_day'].get('mode', 'run')
    print(f"Mode: {mode}\n")

    base_dir = Path(config_path).parent
    if mode == 'preview':
        return run_preview_mode(config, base_dir)

    result = run_series_mode(config, base_dir)
    if result.success:
        print("\n✅ Run completed successfully!")
    return result
