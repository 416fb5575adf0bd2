"""
Table Rotation Seating Optimizer

Assigns participants to capacity-limited tables so that each table mixes
organizations, locations, roles, genders and experience levels, while
respecting hard and soft placement constraints.
"""

__version__ = "1.0.0"
__author__ = "Seating Optimization Team"

from .models import (
    Arrangement,
    AttributeValue,
    OptimizationResult,
    Participant,
    Roster,
    RunStatistics,
    Severity,
    Violation,
)
from .errors import SeatingError
from .ledger import InteractionLedger
from .diversity import DiversityScorer
from .constraints import Constraint, ConstraintEvaluator, ConstraintKind
from .strategies import (
    GeneticAlgorithm,
    RandomPerturbation,
    SearchStrategy,
    SimulatedAnnealing,
    create_strategy,
)
from .optimizer import OptimizationConfig, Optimizer, OptimizerState

__all__ = [
    'Arrangement',
    'AttributeValue',
    'OptimizationResult',
    'Participant',
    'Roster',
    'RunStatistics',
    'Severity',
    'Violation',
    'SeatingError',
    'InteractionLedger',
    'DiversityScorer',
    'Constraint',
    'ConstraintEvaluator',
    'ConstraintKind',
    'GeneticAlgorithm',
    'RandomPerturbation',
    'SearchStrategy',
    'SimulatedAnnealing',
    'create_strategy',
    'OptimizationConfig',
    'Optimizer',
    'OptimizerState',
]
