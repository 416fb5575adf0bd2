#!/usr/bin/env python3
"""
Multi-Day Seating CLI - Minimal entry point.

Runs a multi-day seating series (or previews a rotation policy) from a
YAML run configuration.

Usage:
    python3 multiday_cli.py run_config.yaml
    python3 multiday_cli.py --config run_config.yaml
    python3 multiday_cli.py --verbose run_config.yaml
    python3 multiday_cli.py --help

Run configuration sections:
    tables, participants, optimization, constraints   as in config.yaml
    multi_day:
        days: 2..10
        policy: maximum_diversity | structured_rotation | random_rotation |
                custom_pattern | progressive_mixing | geographic_rotation
        mode: run | preview
        absences: {day: [participant ids]}
        day_constraints: {day: [constraint records]}
        day_options: {day: {attribute, group_attribute, custom_rules}}
        planner: {attempts, max_random_attempts, repeat_threshold, custom_rules}
        max_runtime_per_day: seconds
    output:
        root, name, save_plots, save_partial
"""

import logging
import sys
from pathlib import Path

project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def main():
    """Main entry point for the multi-day CLI."""
    args = sys.argv[1:]
    if not args or args[0] in ['-h', '--help', 'help']:
        print(__doc__)
        sys.exit(0 if args else 1)

    verbose = False
    if args[0] in ('-v', '--verbose'):
        verbose = True
        args = args[1:]

    if not args:
        print("Error: missing configuration path")
        print(__doc__)
        sys.exit(1)

    config_path = args[0]
    if config_path.startswith('--config='):
        config_path = config_path.split('=', 1)[1]
    elif config_path == '--config':
        if len(args) < 2:
            print("Error: --config requires an argument")
            print(__doc__)
            sys.exit(1)
        config_path = args[1]

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s'
    )

    from seating.errors import SeatingError
    from multiday.cli import run_from_config
    from multiday.coordinator import MultiDayResult

    try:
        result = run_from_config(config_path)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)
    except SeatingError as e:
        print(f"\nError [{e.kind}]: {e.message}")
        sys.exit(1)

    if isinstance(result, MultiDayResult) and not result.success:
        sys.exit(1)


if __name__ == '__main__':
    main()
