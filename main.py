#!/usr/bin/env python3
"""
Table Rotation Seating Optimizer

Main entry point for single-day seating optimization.
Reads a YAML problem file, optimizes the seating and exports the result.
"""

import sys
import argparse
import logging
import time
from pathlib import Path

sys.path.append(str(Path(__file__).parent))

from seating.config_loader import (
    build_constraints,
    build_optimization_config,
    load_config,
    load_participants,
    print_config_summary,
)
from seating.errors import SeatingError
from seating.io_utils import save_arrangement_csv, save_result_json
from seating.models import Roster
from seating.optimizer import Optimizer
from seating.report import print_optimization_report


def run_basic_optimization(config_path="config.yaml", show_summary=True, output_name=None,
                           save_plots=False, strategy=None, max_runtime=None):
    """Run one optimization and show results"""
    if show_summary:
        print("=" * 60)
        print("TABLE ROTATION SEATING OPTIMIZER")
        print("=" * 60)
        print_config_summary(config_path)

    config = load_config(config_path)
    optimization = build_optimization_config(config)
    participants = load_participants(config, Path(config_path).parent)
    constraints = build_constraints(config.get('constraints'))
    roster = Roster(participants)

    print("\nRunning optimization...")
    start_time = time.time()

    optimizer = Optimizer(optimization)
    result = optimizer.optimize(roster, constraints, strategy=strategy, max_runtime=max_runtime)

    elapsed_time = time.time() - start_time
    print(f"Optimization completed in {elapsed_time:.3f} seconds")

    print(f"\nResults Summary:")
    print(f"  Participants seated: {len(roster) - len(result.unseated)}/{len(roster)}")
    print(f"  Diversity score: {result.diversity_score:.3f}")
    print(f"  Violations: {len(result.violations)} ({len(result.hard_violations)} hard)")
    print(f"  Iterations: {result.stats.iterations}")

    output = config.get('output') or {}
    root = Path(output.get('root', 'output'))
    if output_name is None:
        output_name = output.get('name') or f"seating_{int(time.time())}"

    print(f"\nExporting seating as '{output_name}'...")
    csv_path = save_arrangement_csv(result.assignment, roster, root / f"{output_name}.csv")
    print(f"  ✓ CSV: {csv_path}")
    json_path = save_result_json(result, root / f"{output_name}.json",
                                 {'config': str(config_path), 'strategy': result.stats.strategy})
    print(f"  ✓ JSON: {json_path}")

    if save_plots or output.get('save_plots', False):
        print(f"\nGenerating visualization plot...")
        import matplotlib
        matplotlib.use('Agg')
        from seating.visualization import ArrangementVisualizer

        plot_path = root / f"{output_name}_plot.png"
        visualizer = ArrangementVisualizer(optimization.table_capacity)
        visualizer.plot_comprehensive_analysis(
            result,
            figsize=tuple(output.get('figure_size', [14, 10])),
            save_path=str(plot_path),
            show=False
        )
        print(f"  ✓ Plot: {plot_path}")

    return roster, result


def run_detailed_analysis(config_path="config.yaml", output_name=None, save_plots=False,
                          strategy=None, max_runtime=None):
    """Run optimization with a full quality report"""
    roster, result = run_basic_optimization(config_path, output_name=output_name, save_plots=save_plots,
                                            strategy=strategy, max_runtime=max_runtime)

    report = print_optimization_report(result, roster)
    print("\n" + report)

    return roster, result


def run_multiple_random_trials(num_trials=5, config_path="config.yaml", strategy=None, max_runtime=None):
    """Run multiple trials with different random seeds for comparison"""
    print("=" * 60)
    print(f"RUNNING {num_trials} RANDOM TRIALS")
    print("=" * 60)

    import dataclasses
    import random

    config = load_config(config_path)
    base = build_optimization_config(config)
    roster = Roster(load_participants(config, Path(config_path).parent))
    constraints = build_constraints(config.get('constraints'))

    results = []
    for trial in range(num_trials):
        random_seed = random.randint(1, 1000000)
        print(f"\n--- Trial {trial + 1}/{num_trials} (seed {random_seed}) ---")

        optimizer = Optimizer(dataclasses.replace(base, random_seed=random_seed))
        result = optimizer.optimize(roster, constraints, strategy=strategy, max_runtime=max_runtime)
        results.append({
            'trial': trial + 1,
            'seed': random_seed,
            'score': result.diversity_score,
            'violations': len(result.violations),
            'iterations': result.stats.iterations,
        })

    print("\n" + "=" * 60)
    print("TRIAL SUMMARY")
    print("=" * 60)
    print("Trial | Seed      | Score   | Violations | Iterations")
    print("------|-----------|---------|------------|-----------")

    for r in results:
        print(f"{r['trial']:5} | {r['seed']:9} | {r['score']:7.3f} | {r['violations']:10} | {r['iterations']:10}")

    if results:
        scores = [r['score'] for r in results]
        avg_score = sum(scores) / len(scores)
        print(f"\nDiversity Score Statistics:")
        print(f"  Average: {avg_score:.3f}")
        print(f"  Range: {min(scores):.3f} - {max(scores):.3f}")
        print(f"  Std Dev: {(sum((s - avg_score)**2 for s in scores) / len(scores))**0.5:.3f}")

    return results


def main():
    """Main entry point with command-line argument parsing"""
    parser = argparse.ArgumentParser(
        description="Table Rotation Seating Optimizer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 main.py                               # Optimize with config.yaml (CSV + JSON)
  python3 main.py --detailed                    # With full seating report
  python3 main.py --plot                        # Also save the analysis plot
  python3 main.py --strategy genetic_algorithm  # Override the configured strategy
  python3 main.py --trials 10                   # Multiple random trials
  python3 main.py --config event.yaml           # Custom config file
        """
    )

    parser.add_argument(
        '--config', '-c',
        default='config.yaml',
        help='Configuration file path (default: config.yaml)'
    )

    parser.add_argument(
        '--detailed', '-d',
        action='store_true',
        help='Print the detailed seating report'
    )

    parser.add_argument(
        '--plot', '-p',
        action='store_true',
        help='Save the analysis plot'
    )

    parser.add_argument(
        '--strategy', '-s',
        type=str,
        help='Strategy override (random_swap, simulated_annealing, genetic_algorithm)'
    )

    parser.add_argument(
        '--max-runtime', '-r',
        type=float,
        metavar='SECONDS',
        help='Time budget override in seconds'
    )

    parser.add_argument(
        '--trials', '-t',
        type=int,
        metavar='N',
        help='Run N random trials for comparison'
    )

    parser.add_argument(
        '--output-name', '-n',
        type=str,
        metavar='NAME',
        help='Base name for output files (default: seating_TIMESTAMP)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s'
    )

    try:
        if args.trials:
            run_multiple_random_trials(args.trials, args.config, args.strategy, args.max_runtime)
        elif args.detailed:
            run_detailed_analysis(args.config, args.output_name, args.plot, args.strategy, args.max_runtime)
        else:
            run_basic_optimization(args.config, output_name=args.output_name, save_plots=args.plot,
                                   strategy=args.strategy, max_runtime=args.max_runtime)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        sys.exit(1)
    except SeatingError as e:
        print(f"Error [{e.kind}]: {e.message}")
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
