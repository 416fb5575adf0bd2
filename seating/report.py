"""
Text reports for optimization results.
"""

from typing import Optional

from .diversity import DIMENSIONS
from .models import OptimizationResult, Roster


def print_optimization_report(result: OptimizationResult, roster: Optional[Roster] = None,
                              detailed: bool = True) -> str:
    """Generate a human-readable seating quality report"""
    lines = []
    lines.append("=" * 60)
    lines.append("SEATING OPTIMIZATION REPORT")
    lines.append("=" * 60)
    lines.append(f"Diversity Score: {result.diversity_score:.3f}")
    lines.append(f"Adjusted Score: {result.score:.3f}")
    lines.append(f"Constraint Score: {result.constraint_score:.3f}")
    lines.append("")

    stats = result.stats
    lines.append("RUN STATISTICS:")
    lines.append(f"  Strategy: {stats.strategy}")
    lines.append(f"  Iterations: {stats.iterations} ({stats.elapsed:.2f}s)")
    lines.append(f"  Improvements: {stats.improvements}, accepted {stats.accepted}, "
                 f"rejected {stats.rejected}")
    lines.append(f"  Score: {stats.initial_score:.3f} -> {stats.final_score:.3f} "
                 f"({stats.improvement_percent:+.1f}%)")
    if stats.early_termination:
        lines.append("  Stopped early: target score reached")
    lines.append("")

    overall = result.diversity_metrics.get('overall', {})
    if overall:
        lines.append("DIVERSITY BY DIMENSION:")
        for dimension in DIMENSIONS:
            if dimension in overall:
                data = overall[dimension]
                lines.append(f"  {dimension}: {data['score']:.3f} "
                             f"(min {data['min']:.3f}, max {data['max']:.3f})")
        lines.append("")

    if detailed:
        lines.append("TABLES:")
        for table_id in sorted(result.assignment):
            ids = result.assignment[table_id]
            if roster is not None:
                names = [roster[roster.index_of(pid)].name or str(pid) for pid in ids if pid in roster]
            else:
                names = [str(pid) for pid in ids]
            lines.append(f"  Table {table_id} ({len(ids)}): {', '.join(names)}")
        lines.append("")

    if result.unseated:
        lines.append(f"UNSEATED ({len(result.unseated)}): {', '.join(str(p) for p in result.unseated)}")
        lines.append("")

    if result.violations:
        lines.append("CONSTRAINT VIOLATIONS:")
        for violation in result.violations:
            lines.append(f"  [{violation.severity.value}] {violation.constraint_id}: {violation.description}")
    else:
        lines.append("CONSTRAINTS: All constraints satisfied")

    lines.append("=" * 60)

    return "\n".join(lines)
