"""
Search strategies.

A strategy proposes a neighbour of the current arrangement and decides
whether the optimizer should accept it. All randomness comes from the
numpy Generator handed to the strategy, so seeded runs are reproducible.
"""

import logging
import math
import statistics
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from .crossover import tablewise_crossover
from .errors import ConfigurationError, UnknownStrategy
from .models import Arrangement
from .moves import (
    move_participant,
    multi_swap,
    mutate,
    redistribute,
    shuffle_table,
    swap_participants,
)
from .repair import repair_arrangement

logger = logging.getLogger(__name__)

FitnessFn = Callable[[Arrangement], float]


class SearchStrategy:
    """Base class for search strategies."""

    name = "base"

    def __init__(self, rng: np.random.Generator):
        self.rng = rng
        self.capacity: Optional[int] = None
        self.fitness: Optional[FitnessFn] = None
        self.last_operation: List[str] = []

    def prepare(self, capacity: int, fitness: FitnessFn) -> None:
        """Called once by the optimizer before the search loop starts."""
        self.capacity = capacity
        self.fitness = fitness

    def neighbor(self, arrangement: Arrangement) -> Arrangement:
        raise NotImplementedError

    def accept(self, current_score: float, candidate_score: float, iteration: int) -> bool:
        raise NotImplementedError

    def advance(self, iteration: int) -> None:
        """Update internal tunables after an iteration."""

    def info(self) -> Dict[str, Any]:
        return {'strategy': self.name}


class RandomPerturbation(SearchStrategy):
    """Hill climbing over random swap / move / shuffle operations."""

    name = "random_swap"

    def __init__(
        self,
        rng: np.random.Generator,
        swap_probability: float = 0.8,
        move_probability: float = 0.15,
        shuffle_probability: float = 0.05
    ):
        super().__init__(rng)
        probabilities = [swap_probability, move_probability, shuffle_probability]
        if any(p < 0 for p in probabilities) or sum(probabilities) <= 0:
            raise ConfigurationError(
                f"Operation probabilities must be non-negative with a positive sum: {probabilities}"
            )
        total = sum(probabilities)
        self.swap_probability = swap_probability / total
        self.move_probability = move_probability / total
        self.shuffle_probability = shuffle_probability / total

    def choose_operation(self) -> str:
        draw = self.rng.random()
        if draw < self.swap_probability:
            return 'swap'
        if draw < self.swap_probability + self.move_probability:
            return 'move'
        return 'shuffle'

    def neighbor(self, arrangement: Arrangement) -> Arrangement:
        operation = self.choose_operation()
        if operation == 'swap':
            candidate, self.last_operation = swap_participants(arrangement, self.rng)
        elif operation == 'move':
            candidate, self.last_operation = move_participant(arrangement, self.rng, self.capacity)
        else:
            candidate, self.last_operation = shuffle_table(arrangement, self.rng)
        return candidate

    def accept(self, current_score: float, candidate_score: float, iteration: int) -> bool:
        return candidate_score >= current_score

    def info(self) -> Dict[str, Any]:
        return {
            'strategy': self.name,
            'swap_probability': self.swap_probability,
            'move_probability': self.move_probability,
            'shuffle_probability': self.shuffle_probability,
        }


class SimulatedAnnealing(SearchStrategy):
    """
    Simulated annealing with a geometric cooling schedule.

    Hot phases favour large swaps and table reorganisation; as the
    temperature drops the neighbourhood shifts towards single swaps.
    """

    name = "simulated_annealing"

    def __init__(
        self,
        rng: np.random.Generator,
        initial_temperature: float = 100.0,
        cooling_rate: float = 0.95,
        min_temperature: float = 0.01
    ):
        super().__init__(rng)
        if initial_temperature <= 0 or min_temperature <= 0:
            raise ConfigurationError("Temperatures must be positive")
        if not 0 < cooling_rate < 1:
            raise ConfigurationError(f"cooling_rate must be in (0, 1), got {cooling_rate}")
        self.initial_temperature = initial_temperature
        self.cooling_rate = cooling_rate
        self.min_temperature = min_temperature
        self.temperature = initial_temperature
        self.temperature_history: List[float] = []

    @staticmethod
    def acceptance_probability(delta: float, temperature: float) -> float:
        """Metropolis criterion: 1 for non-negative delta, else exp(delta / T)."""
        if delta >= 0:
            return 1.0
        if temperature <= 0:
            return 0.0
        return math.exp(delta / temperature)

    def operation_weights(self) -> Dict[str, float]:
        heat = self.temperature / self.initial_temperature
        return {
            'small_swap': 0.4 + 0.2 * (1 - heat),
            'large_swap': 0.2 + 0.3 * heat,
            'move': 0.3,
            'reorganize': 0.1 + 0.2 * heat,
        }

    def neighbor(self, arrangement: Arrangement) -> Arrangement:
        weights = self.operation_weights()
        names = list(weights)
        probs = np.array([weights[n] for n in names])
        operation = names[int(self.rng.choice(len(names), p=probs / probs.sum()))]

        if operation == 'small_swap':
            candidate, self.last_operation = swap_participants(arrangement, self.rng)
        elif operation == 'large_swap':
            candidate, self.last_operation = multi_swap(arrangement, self.rng)
        elif operation == 'move':
            candidate, self.last_operation = move_participant(arrangement, self.rng, self.capacity)
        else:
            candidate, self.last_operation = redistribute(arrangement, self.rng, self.capacity)
        return candidate

    def accept(self, current_score: float, candidate_score: float, iteration: int) -> bool:
        probability = self.acceptance_probability(candidate_score - current_score, self.temperature)
        if probability >= 1.0:
            return True
        return self.rng.random() < probability

    def advance(self, iteration: int) -> None:
        self.temperature = max(self.temperature * self.cooling_rate, self.min_temperature)
        self.temperature_history.append(self.temperature)
        if iteration % 100 == 0:
            logger.debug("Simulated annealing iteration %d, temperature %.4f",
                         iteration, self.temperature)

    def info(self) -> Dict[str, Any]:
        return {
            'strategy': self.name,
            'temperature': self.temperature,
            'initial_temperature': self.initial_temperature,
            'cooling_rate': self.cooling_rate,
            'min_temperature': self.min_temperature,
            'temperature_history': self.temperature_history[-10:],
        }


@dataclass
class Candidate:
    """One member of the GA population."""
    arrangement: Arrangement
    fitness: float


SELECTION_METHODS = ('tournament', 'roulette')


class GeneticAlgorithm(SearchStrategy):
    """
    Generational genetic algorithm.

    Each neighbor() call evolves one generation and returns the best
    individual of the new population.
    """

    name = "genetic_algorithm"

    def __init__(
        self,
        rng: np.random.Generator,
        population_size: int = 20,
        mutation_rate: float = 0.1,
        crossover_rate: float = 0.8,
        elite_size: int = 4,
        selection: str = 'tournament',
        tournament_size: int = 3
    ):
        super().__init__(rng)
        if population_size < 2:
            raise ConfigurationError(f"population_size must be >= 2, got {population_size}")
        if not 0 <= elite_size < population_size:
            raise ConfigurationError(
                f"elite_size must be in [0, population_size), got {elite_size}"
            )
        for label, rate in (('mutation_rate', mutation_rate), ('crossover_rate', crossover_rate)):
            if not 0.0 <= rate <= 1.0:
                raise ConfigurationError(f"{label} must be in [0, 1], got {rate}")
        if selection not in SELECTION_METHODS:
            raise ConfigurationError(
                f"Unknown selection '{selection}'. Valid: {', '.join(SELECTION_METHODS)}"
            )
        if tournament_size < 1:
            raise ConfigurationError(f"tournament_size must be >= 1, got {tournament_size}")

        self.population_size = population_size
        self.mutation_rate = mutation_rate
        self.crossover_rate = crossover_rate
        self.elite_size = elite_size
        self.selection = selection
        self.tournament_size = tournament_size

        self.population: List[Candidate] = []
        self.generation = 0
        self.best_fitness_history: List[float] = []
        self._expected: List[int] = []
        self._table_count = 0

    def _evaluate(self, arrangement: Arrangement) -> Candidate:
        if self.fitness is None:
            raise RuntimeError("GeneticAlgorithm.prepare() must be called before neighbor()")
        return Candidate(arrangement, self.fitness(arrangement))

    def random_individual(self, base: Arrangement) -> Arrangement:
        """Deal the seated participants in random order round-robin, respecting capacity."""
        people = [self._expected[int(i)] for i in self.rng.permutation(len(self._expected))]
        table_ids = base.table_ids()
        result = Arrangement.empty(self._table_count)
        for position, idx in enumerate(people):
            table_id = table_ids[position % len(table_ids)]
            if self.capacity is not None and len(result.tables[table_id]) >= self.capacity:
                open_tables = [t for t in table_ids if len(result.tables[t]) < self.capacity]
                if open_tables:
                    table_id = open_tables[0]
            result.tables[table_id].append(idx)
        return result

    def initialize_population(self, base: Arrangement) -> None:
        self._expected = base.seated()
        self._table_count = len(base.tables)
        self.population = [self._evaluate(base.copy())]
        while len(self.population) < self.population_size:
            self.population.append(self._evaluate(self.random_individual(base)))
        self._record_best()

    def _record_best(self) -> None:
        best = max(c.fitness for c in self.population)
        if self.best_fitness_history:
            best = max(best, self.best_fitness_history[-1])
        self.best_fitness_history.append(best)

    def _tournament(self) -> Candidate:
        size = min(self.tournament_size, len(self.population))
        picks = self.rng.choice(len(self.population), size=size, replace=False)
        return max((self.population[int(i)] for i in picks), key=lambda c: c.fitness)

    def _roulette(self) -> Candidate:
        fitnesses = np.array([c.fitness for c in self.population], dtype=float)
        shifted = fitnesses - fitnesses.min() + 1e-9
        index = int(self.rng.choice(len(self.population), p=shifted / shifted.sum()))
        return self.population[index]

    def select_parent(self) -> Candidate:
        if self.selection == 'roulette':
            return self._roulette()
        return self._tournament()

    def elites(self) -> List[Candidate]:
        ranked = sorted(self.population, key=lambda c: c.fitness, reverse=True)
        return ranked[:self.elite_size]

    def make_child(self) -> Arrangement:
        parent_a = self.select_parent()
        parent_b = self.select_parent()
        if self.rng.random() < self.crossover_rate:
            child, _mask = tablewise_crossover(parent_a.arrangement, parent_b.arrangement, self.rng)
            child, _notes = repair_arrangement(
                child, self._expected, self._table_count, self.rng, self.capacity
            )
        else:
            child = parent_a.arrangement.copy()
        if self.rng.random() < self.mutation_rate:
            child, self.last_operation = mutate(child, self.rng, self.capacity)
        return child

    def evolve(self) -> None:
        """Produce the next generation."""
        next_population = [Candidate(c.arrangement.copy(), c.fitness) for c in self.elites()]
        while len(next_population) < self.population_size:
            next_population.append(self._evaluate(self.make_child()))
        self.population = next_population
        self.generation += 1
        self._record_best()

    def neighbor(self, arrangement: Arrangement) -> Arrangement:
        if not self.population:
            self.initialize_population(arrangement)
        self.evolve()
        best = max(self.population, key=lambda c: c.fitness)
        return best.arrangement.copy()

    def accept(self, current_score: float, candidate_score: float, iteration: int) -> bool:
        return candidate_score > current_score

    def advance(self, iteration: int) -> None:
        if iteration > 0 and iteration % 50 == 0 and self.mutation_rate > 0.05:
            self.mutation_rate = max(self.mutation_rate * 0.98, 0.05)
        if iteration % 20 == 0 and self.best_fitness_history:
            logger.debug("Genetic algorithm generation %d, best fitness %.4f",
                         self.generation, self.best_fitness_history[-1])

    def population_diversity(self) -> float:
        """Mean fraction of participants seated at a different table, over all pairs."""
        if len(self.population) < 2 or not self._expected:
            return 0.0
        placements = []
        for candidate in self.population:
            placements.append({
                idx: table_id
                for table_id, seats in candidate.arrangement.tables.items()
                for idx in seats
            })
        differences = []
        for i in range(len(placements)):
            for j in range(i + 1, len(placements)):
                moved = sum(1 for idx in self._expected if placements[i].get(idx) != placements[j].get(idx))
                differences.append(moved / len(self._expected))
        return statistics.mean(differences)

    def population_info(self) -> Dict[str, Any]:
        if not self.population:
            return {}
        fitnesses = [c.fitness for c in self.population]
        return {
            'generation': self.generation,
            'population_size': len(self.population),
            'best_fitness': max(fitnesses),
            'average_fitness': statistics.mean(fitnesses),
            'worst_fitness': min(fitnesses),
            'fitness_std_dev': statistics.pstdev(fitnesses),
            'mutation_rate': self.mutation_rate,
            'best_fitness_history': self.best_fitness_history[-10:],
            'population_diversity': self.population_diversity(),
        }

    def info(self) -> Dict[str, Any]:
        info = {
            'strategy': self.name,
            'population_size': self.population_size,
            'crossover_rate': self.crossover_rate,
            'elite_size': self.elite_size,
            'selection': self.selection,
        }
        info.update(self.population_info())
        return info


STRATEGIES = {
    'random_swap': RandomPerturbation,
    'random_perturbation': RandomPerturbation,
    'simulated_annealing': SimulatedAnnealing,
    'genetic_algorithm': GeneticAlgorithm,
}


def create_strategy(
    name: str,
    rng: np.random.Generator,
    params: Optional[Dict[str, Any]] = None
) -> SearchStrategy:
    """
    Instantiate a strategy by name.

    Args:
        name: Strategy name (random_swap, simulated_annealing, genetic_algorithm)
        rng: Random number generator
        params: Strategy tunables

    Returns:
        Strategy instance

    Raises:
        UnknownStrategy: If the name is not registered
        ConfigurationError: If a tunable is not accepted by the strategy
    """
    strategy_class = STRATEGIES.get(name)
    if strategy_class is None:
        raise UnknownStrategy(name, sorted(STRATEGIES))
    try:
        return strategy_class(rng, **(params or {}))
    except TypeError as e:
        raise ConfigurationError(f"Invalid parameters for strategy '{name}': {e}")
