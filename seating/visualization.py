"""
Visualization for seating results

Diagnostic plots: per-dimension diversity scores, convergence history,
table fill levels, a per-table dimension heatmap, and multi-day series.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np

from .diversity import DIMENSIONS
from .models import OptimizationResult


class ArrangementVisualizer:
    """Visualization of a single-day optimization result"""

    def __init__(self, table_capacity: int):
        self.table_capacity = table_capacity

    def plot_comprehensive_analysis(self,
                                    result: OptimizationResult,
                                    figsize: Tuple[int, int] = (14, 10),
                                    save_path: Optional[str] = None,
                                    show: bool = True):
        """
        Create a four-panel overview of a result

        Args:
            result: Optimization result to visualize
            figsize: Figure size (width, height)
            save_path: Optional path to save the figure
            show: Display the figure interactively
        """
        fig = plt.figure(figsize=figsize)
        gs = fig.add_gridspec(2, 2)

        self.plot_dimension_scores(result.diversity_metrics, fig.add_subplot(gs[0, 0]))
        self.plot_convergence(result.history, fig.add_subplot(gs[0, 1]))
        self.plot_table_sizes(result.arrangement.sizes(), fig.add_subplot(gs[1, 0]))
        self.plot_table_heatmap(result.diversity_metrics, fig.add_subplot(gs[1, 1]))

        fig.suptitle(
            f"Diversity {result.diversity_score:.3f} | "
            f"{len(result.violations)} violation(s) | {result.stats.strategy}"
        )
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')

        if show:
            plt.show()
        else:
            plt.close(fig)
        return fig

    def plot_dimension_scores(self, metrics: Dict[str, Any], ax: plt.Axes = None):
        """Bar chart of overall dimension scores with min/max whiskers"""
        if ax is None:
            fig, ax = plt.subplots(figsize=(8, 5))

        overall = metrics.get('overall', {})
        if not overall:
            ax.text(0.5, 0.5, "No scorable tables", ha='center', va='center', transform=ax.transAxes)
            return

        names = [d for d in DIMENSIONS if d in overall]
        scores = np.array([overall[d]['score'] for d in names])
        lower = scores - np.array([overall[d]['min'] for d in names])
        upper = np.array([overall[d]['max'] for d in names]) - scores

        bars = ax.bar(names, scores, yerr=[lower, upper], capsize=4, alpha=0.7, color='steelblue')
        ax.set_ylim(0, 1.1)
        ax.set_ylabel('Score')
        ax.set_title('Diversity by Dimension')
        ax.tick_params(axis='x', rotation=30)

        for bar in bars:
            height = bar.get_height()
            ax.text(bar.get_x() + bar.get_width() / 2., height + 0.02,
                    f'{height:.2f}', ha='center', va='bottom', fontsize=8)

    def plot_convergence(self, history: Sequence[float], ax: plt.Axes = None):
        """Best score over the run"""
        if ax is None:
            fig, ax = plt.subplots(figsize=(8, 5))

        if not history:
            ax.text(0.5, 0.5, "No history", ha='center', va='center', transform=ax.transAxes)
            return

        ax.plot(range(len(history)), history, marker='o', markersize=3, color='darkgreen')
        ax.set_xlabel('Sample')
        ax.set_ylabel('Best adjusted score')
        ax.set_title('Convergence')
        ax.grid(True, alpha=0.3)

    def plot_table_sizes(self, sizes: Dict[int, int], ax: plt.Axes = None):
        """Participants per table against capacity"""
        if ax is None:
            fig, ax = plt.subplots(figsize=(8, 5))

        table_ids = sorted(sizes)
        counts = [sizes[t] for t in table_ids]
        colors = ['tomato' if c > self.table_capacity else 'cornflowerblue' for c in counts]

        ax.bar([str(t) for t in table_ids], counts, color=colors, alpha=0.8)
        ax.axhline(self.table_capacity, color='black', linestyle='--', linewidth=1,
                   label=f'Capacity ({self.table_capacity})')
        ax.set_xlabel('Table')
        ax.set_ylabel('Participants')
        ax.set_title('Table Sizes')
        ax.legend()

    def plot_table_heatmap(self, metrics: Dict[str, Any], ax: plt.Axes = None):
        """Dimension scores per table"""
        if ax is None:
            fig, ax = plt.subplots(figsize=(8, 5))

        by_table = metrics.get('by_table', {})
        if not by_table:
            ax.text(0.5, 0.5, "No scorable tables", ha='center', va='center', transform=ax.transAxes)
            return

        table_ids = sorted(by_table)
        data = np.array([[by_table[t][d] for d in DIMENSIONS] for t in table_ids])

        im = ax.imshow(data, cmap='viridis', vmin=0, vmax=1, aspect='auto')
        ax.set_xticks(range(len(DIMENSIONS)))
        ax.set_xticklabels(DIMENSIONS, rotation=30, ha='right')
        ax.set_yticks(range(len(table_ids)))
        ax.set_yticklabels([f'Table {t}' for t in table_ids])
        ax.set_title('Per-Table Scores')
        plt.colorbar(im, ax=ax)


def plot_multiday_series(daily_scores: List[float],
                         coverage_history: List[float],
                         save_path: Optional[str] = None,
                         show: bool = True):
    """
    Plot daily diversity scores next to cumulative interaction coverage

    Args:
        daily_scores: Diversity score per day
        coverage_history: Cumulative coverage percentage after each day
        save_path: Optional path to save the figure
        show: Display the figure interactively
    """
    fig, (ax_scores, ax_coverage) = plt.subplots(1, 2, figsize=(12, 5))
    days = np.arange(1, len(daily_scores) + 1)

    ax_scores.plot(days, daily_scores, marker='o', color='steelblue')
    if len(daily_scores) >= 2:
        slope, intercept = np.polyfit(days, daily_scores, 1)
        ax_scores.plot(days, slope * days + intercept, linestyle='--', color='gray',
                       label=f'Trend ({slope:+.4f}/day)')
        ax_scores.legend()
    ax_scores.set_ylim(0, 1.05)
    ax_scores.set_xlabel('Day')
    ax_scores.set_ylabel('Diversity score')
    ax_scores.set_title('Daily Diversity')
    ax_scores.grid(True, alpha=0.3)

    ax_coverage.bar(np.arange(1, len(coverage_history) + 1), coverage_history,
                    color='darkorange', alpha=0.7)
    ax_coverage.set_ylim(0, 100)
    ax_coverage.set_xlabel('Day')
    ax_coverage.set_ylabel('Coverage (%)')
    ax_coverage.set_title('Interaction Coverage')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    if show:
        plt.show()
    else:
        plt.close(fig)
    return fig
