"""
Seating Optimizer

Drives the time-bounded generate -> validate -> score -> accept loop with
one search strategy, a DiversityScorer and a ConstraintEvaluator, and keeps
the best arrangement seen so far.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .constraints import Constraint, ConstraintEvaluator
from .diversity import DiversityScorer, validate_weights
from .errors import (
    CapacityOverflow,
    ConfigurationError,
    InsufficientParticipants,
    InvalidArrangement,
    SeatingError,
)
from .ledger import InteractionLedger
from .models import (
    Arrangement,
    OptimizationResult,
    Participant,
    Roster,
    RunStatistics,
    Violation,
)
from .strategies import SearchStrategy, create_strategy

logger = logging.getLogger(__name__)

OVERFLOW_POLICIES = ('unseat', 'fail')


class OptimizerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class OptimizationConfig:
    """
    Settings for one optimization run.

    Attributes:
        table_count: Number of tables (ids 1..table_count)
        table_capacity: Seats per table
        strategy: Strategy name
        strategy_params: Tunables passed to the strategy
        weights: Diversity dimension weights (merged over the defaults)
        max_runtime: Wall-clock budget in seconds
        max_iterations: Optional iteration cap (for reproducible runs)
        random_seed: Seed for the random generator (None draws one)
        balance_max_difference: Allowed table size spread for the default balance rule
        early_stop_score: Stop once the best score exceeds this with no violations
        penalty_scale: Multiplier applied to the raw constraint penalty
        min_confidence: Attribute values below this confidence count as absent
        overflow: 'unseat' leaves extra participants out, 'fail' raises
        history_interval: Iterations between convergence history samples
    """
    table_count: int
    table_capacity: int
    strategy: str = "simulated_annealing"
    strategy_params: Dict[str, Any] = field(default_factory=dict)
    weights: Dict[str, float] = field(default_factory=dict)
    max_runtime: float = 30.0
    max_iterations: Optional[int] = None
    random_seed: Optional[int] = None
    balance_max_difference: int = 2
    early_stop_score: float = 0.95
    penalty_scale: float = 1.0
    min_confidence: float = 0.0
    overflow: str = "unseat"
    history_interval: int = 10

    def __post_init__(self):
        if self.table_count < 1:
            raise ConfigurationError(f"table_count must be >= 1, got {self.table_count}")
        if self.table_capacity < 1:
            raise ConfigurationError(f"table_capacity must be >= 1, got {self.table_capacity}")
        if self.max_runtime <= 0:
            raise ConfigurationError(f"max_runtime must be positive, got {self.max_runtime}")
        if self.max_iterations is not None and self.max_iterations < 0:
            raise ConfigurationError(f"max_iterations must be >= 0, got {self.max_iterations}")
        if self.penalty_scale < 0:
            raise ConfigurationError(f"penalty_scale must be >= 0, got {self.penalty_scale}")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ConfigurationError(f"min_confidence must be in [0, 1], got {self.min_confidence}")
        if self.overflow not in OVERFLOW_POLICIES:
            raise ConfigurationError(
                f"overflow must be one of {', '.join(OVERFLOW_POLICIES)}, got '{self.overflow}'"
            )
        if self.history_interval < 1:
            raise ConfigurationError(f"history_interval must be >= 1, got {self.history_interval}")
        validate_weights(self.weights)

    @property
    def total_seats(self) -> int:
        return self.table_count * self.table_capacity


def round_robin_arrangement(indices: Sequence[int], table_count: int) -> Arrangement:
    """Deal participants across tables 1..table_count in turn."""
    arrangement = Arrangement.empty(table_count)
    for position, idx in enumerate(indices):
        arrangement.tables[position % table_count + 1].append(idx)
    return arrangement


class Optimizer:
    """Single-day seating optimizer."""

    def __init__(self, config: OptimizationConfig):
        self.config = config
        self.state = OptimizerState.IDLE

    def _resolve_strategy(self, strategy: Union[str, SearchStrategy, None],
                          rng: np.random.Generator) -> SearchStrategy:
        if isinstance(strategy, SearchStrategy):
            return strategy
        name = strategy or self.config.strategy
        params = self.config.strategy_params if name == self.config.strategy else {}
        return create_strategy(name, rng, params)

    def _initial_arrangement(
        self,
        roster: Roster,
        seed: Union[Arrangement, Dict[int, Iterable[Hashable]], None]
    ) -> Tuple[Arrangement, List[int]]:
        """Starting arrangement and the roster indices left unseated."""
        config = self.config
        if seed is None:
            indices = list(range(len(roster)))
            seated, overflow = indices[:config.total_seats], indices[config.total_seats:]
            arrangement = round_robin_arrangement(seated, config.table_count)
        else:
            if not isinstance(seed, Arrangement):
                try:
                    seed = Arrangement.from_assignment(seed, roster)
                except KeyError as e:
                    raise InvalidArrangement([f"unknown participant id {e}"])
            known = set(range(len(roster)))
            present = [idx for idx in dict.fromkeys(seed.seated()) if idx in known]
            problems = seed.validate(present, config.table_count)
            if problems:
                raise InvalidArrangement(problems)
            arrangement = seed.copy()
            overflow = []
            for idx in sorted(known - set(present)):
                open_tables = [t for t in arrangement.table_ids()
                               if len(arrangement.tables[t]) < config.table_capacity]
                if open_tables:
                    target = min(open_tables, key=lambda t: (len(arrangement.tables[t]), t))
                    arrangement.tables[target].append(idx)
                else:
                    overflow.append(idx)

        if overflow:
            if config.overflow == 'fail':
                raise CapacityOverflow(len(roster), config.total_seats)
            logger.warning(
                "Capacity overflow: %d participants exceed %d seats, %d left unseated",
                len(roster), config.total_seats, len(overflow)
            )
        return arrangement, overflow

    def optimize(
        self,
        participants: Union[Roster, Sequence[Participant]],
        constraints: Iterable[Constraint] = (),
        strategy: Union[str, SearchStrategy, None] = None,
        max_runtime: Optional[float] = None,
        initial_arrangement: Union[Arrangement, Dict[int, Iterable[Hashable]], None] = None,
        ledger: Optional[InteractionLedger] = None,
        current_day: Optional[int] = None
    ) -> OptimizationResult:
        """
        Optimize the seating of one day.

        Args:
            participants: Roster or sequence of participants
            constraints: Extra constraints (defaults are always added)
            strategy: Strategy name or instance (defaults to the configured one)
            max_runtime: Wall-clock budget override in seconds
            initial_arrangement: Optional seed (Arrangement or table -> ids)
            ledger: Interaction history used by the interaction dimension
            current_day: Day number used for ledger recency

        Returns:
            OptimizationResult for the best arrangement found

        Raises:
            InsufficientParticipants: Fewer than two participants
            UnknownStrategy: Unrecognised strategy name
            CapacityOverflow: Too many participants with overflow 'fail'
            InvalidArrangement: Seed does not match the roster
        """
        self.state = OptimizerState.RUNNING
        try:
            result = self._run(participants, list(constraints), strategy, max_runtime,
                               initial_arrangement, ledger, current_day)
        except SeatingError:
            self.state = OptimizerState.FAILED
            raise
        self.state = OptimizerState.COMPLETED
        return result

    def _run(self, participants, constraints, strategy, max_runtime,
             initial_arrangement, ledger, current_day) -> OptimizationResult:
        config = self.config
        count = len(participants)
        if count < 2:
            raise InsufficientParticipants(count)

        rng = np.random.default_rng(config.random_seed)
        search = self._resolve_strategy(strategy, rng)

        if isinstance(participants, Roster):
            roster = participants
        else:
            try:
                roster = Roster(participants)
            except ValueError as e:
                raise ConfigurationError(str(e))

        scorer = DiversityScorer(roster, config.weights, ledger, current_day, config.min_confidence)
        evaluator = ConstraintEvaluator(
            roster, constraints,
            capacity=config.table_capacity,
            table_count=config.table_count,
            max_difference=config.balance_max_difference,
            min_confidence=config.min_confidence
        )

        def evaluate(arrangement: Arrangement) -> Tuple[float, float, List[Violation]]:
            diversity = scorer.score(arrangement)
            violations = evaluator.evaluate(arrangement)
            adjusted = diversity - evaluator.penalty(violations) * config.penalty_scale
            return adjusted, diversity, violations

        current, unseated = self._initial_arrangement(roster, initial_arrangement)
        expected = current.seated()
        search.prepare(config.table_capacity, lambda arrangement: evaluate(arrangement)[0])

        current_score, best_diversity, best_violations = evaluate(current)
        best, best_score = current.copy(), current_score
        stats = RunStatistics(strategy=search.name, initial_score=current_score)
        history = [best_score]
        budget = config.max_runtime if max_runtime is None else max_runtime

        logger.info(
            "Optimizing %d participants at %d tables of %d with %s (budget %.1fs)",
            len(roster), config.table_count, config.table_capacity, search.name, budget
        )

        start = time.time()
        iteration = 0
        while True:
            if best_score > config.early_stop_score and not best_violations:
                stats.early_termination = True
                break
            if time.time() - start >= budget:
                break
            if config.max_iterations is not None and iteration >= config.max_iterations:
                break
            iteration += 1

            candidate = search.neighbor(current)
            if candidate.validate(expected, config.table_count):
                stats.invalid_neighbors += 1
                stats.rejected += 1
                search.advance(iteration)
                continue

            candidate_score, candidate_diversity, candidate_violations = evaluate(candidate)
            if search.accept(current_score, candidate_score, iteration):
                current, current_score = candidate, candidate_score
                stats.accepted += 1
            else:
                stats.rejected += 1

            if candidate_score > best_score:
                best, best_score = candidate.copy(), candidate_score
                best_diversity, best_violations = candidate_diversity, candidate_violations
                stats.improvements += 1
                logger.debug("Iteration %d: new best score %.4f", iteration, best_score)

            search.advance(iteration)
            if iteration % config.history_interval == 0:
                history.append(best_score)

        stats.iterations = iteration
        stats.elapsed = time.time() - start
        stats.final_score = best_score
        stats.strategy_info = search.info()
        if history[-1] != best_score or len(history) == 1:
            history.append(best_score)

        logger.info(
            "Optimization finished after %d iterations in %.2fs: score %.4f -> %.4f",
            stats.iterations, stats.elapsed, stats.initial_score, stats.final_score
        )

        return OptimizationResult(
            arrangement=best,
            assignment=best.to_assignment(roster),
            diversity_score=best_diversity,
            score=best_score,
            constraint_score=evaluator.score(best_violations),
            violations=best_violations,
            diversity_metrics=scorer.detailed_metrics(best),
            stats=stats,
            unseated=[roster.id_of(idx) for idx in unseated],
            history=history,
        )
