"""
Configuration Loading System

Loads YAML configuration files and converts them into the typed objects
used by the optimizer: OptimizationConfig, participants and constraints.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .constraints import (
    AttributeCondition,
    AttributeDistributionParams,
    AvoidanceParams,
    AvoidedCombination,
    BalanceParams,
    ClusteringParams,
    Constraint,
    ConstraintKind,
    CustomParams,
    MinTableSizeParams,
    ParticipantSelector,
    SelectionCriterion,
    SeparationParams,
    TableSizeParams,
)
from .diversity import DEFAULT_WEIGHTS
from .errors import ConfigurationError
from .io_utils import load_roster_csv
from .models import Participant, Severity
from .optimizer import OptimizationConfig
from .strategies import STRATEGIES

logger = logging.getLogger(__name__)

TYPE_ALIASES = {
    'separate_students': ConstraintKind.SEPARATION,
    'separate': ConstraintKind.SEPARATION,
    'group_students': ConstraintKind.CLUSTERING,
    'grouping': ConstraintKind.CLUSTERING,
    'avoid_combination': ConstraintKind.AVOIDANCE,
    'distribution': ConstraintKind.ATTRIBUTE_DISTRIBUTION,
}

OPTIMIZATION_KEYS = (
    'max_runtime', 'max_iterations', 'balance_max_difference', 'early_stop_score',
    'penalty_scale', 'min_confidence', 'overflow', 'history_interval',
)


def load_config(config_path: Union[str, Path] = "config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file"""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if config is None:
        raise ConfigurationError("Configuration file is empty")
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration root must be a mapping")
    return config


def parse_seed(value: Any) -> Optional[int]:
    """'random' or null -> None, otherwise an integer seed."""
    if value is None or value == 'random':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"random_seed must be an integer or 'random', got {value!r}")


def build_optimization_config(config: Dict[str, Any]) -> OptimizationConfig:
    """
    Build an OptimizationConfig from the 'tables' and 'optimization' sections.

    Raises:
        ConfigurationError: If required values are missing or invalid
    """
    tables = config.get('tables') or {}
    if 'count' not in tables or 'capacity' not in tables:
        raise ConfigurationError("'tables' section needs 'count' and 'capacity'")

    optimization = config.get('optimization') or {}
    kwargs = {key: optimization[key] for key in OPTIMIZATION_KEYS if key in optimization}

    try:
        return OptimizationConfig(
            table_count=int(tables['count']),
            table_capacity=int(tables['capacity']),
            strategy=optimization.get('strategy', 'simulated_annealing'),
            strategy_params=dict(optimization.get('strategy_params') or {}),
            weights=dict(optimization.get('weights') or {}),
            random_seed=parse_seed(optimization.get('random_seed')),
            **kwargs
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid optimization settings: {e}")


def parse_participant(record: Dict[str, Any]) -> Participant:
    """
    Parse one participant record.

    Attributes may be given under 'attributes' (values or
    {value, confidence} mappings) or as extra top-level keys.
    """
    if 'id' not in record:
        raise ConfigurationError(f"Participant record without id: {record}")
    attributes = dict(record.get('attributes') or {})
    for key, value in record.items():
        if key not in ('id', 'name', 'attributes'):
            attributes[key] = value
    try:
        return Participant(id=record['id'], name=str(record.get('name', '')), attributes=attributes)
    except ValueError as e:
        raise ConfigurationError(f"Participant {record['id']}: {e}")


def load_participants(config: Dict[str, Any], base_dir: Union[str, Path, None] = None) -> List[Participant]:
    """
    Load participants from the 'participants' section.

    The section is either a list of records or a mapping with a 'csv' path
    (relative paths resolve against ``base_dir``).
    """
    section = config.get('participants')
    if section is None:
        raise ConfigurationError("Missing required section: participants")

    if isinstance(section, dict) and 'csv' in section:
        csv_path = Path(section['csv'])
        if base_dir is not None and not csv_path.is_absolute():
            csv_path = Path(base_dir) / csv_path
        try:
            return load_roster_csv(csv_path)
        except (FileNotFoundError, ValueError) as e:
            raise ConfigurationError(str(e))

    if isinstance(section, list):
        return [parse_participant(record) for record in section]

    raise ConfigurationError("'participants' must be a list or a mapping with a 'csv' path")


def parse_selector(data: Dict[str, Any]) -> ParticipantSelector:
    ids = tuple(data.get('ids') or data.get('participants') or ())
    criteria = tuple(
        SelectionCriterion(
            type=item.get('type'),
            value=item.get('value'),
            attribute=item.get('attribute')
        )
        for item in (data.get('criteria') or ())
    )
    return ParticipantSelector(ids=ids, criteria=criteria)


def _parse_params(kind: ConstraintKind, params: Dict[str, Any]):
    if kind is ConstraintKind.TABLE_SIZE:
        return TableSizeParams(max_size=int(params['max_size']))
    if kind is ConstraintKind.MIN_TABLE_SIZE:
        return MinTableSizeParams(min_size=int(params.get('min_size', 2)))
    if kind is ConstraintKind.BALANCE:
        return BalanceParams(max_difference=int(params.get('max_difference', 2)))
    if kind is ConstraintKind.SEPARATION:
        return SeparationParams(participants=parse_selector(params))
    if kind is ConstraintKind.CLUSTERING:
        return ClusteringParams(participants=parse_selector(params))
    if kind is ConstraintKind.ATTRIBUTE_DISTRIBUTION:
        return AttributeDistributionParams(
            attribute=params.get('attribute'),
            distribution=params.get('distribution', 'mixed')
        )
    if kind is ConstraintKind.AVOIDANCE:
        return AvoidanceParams(combinations=tuple(
            AvoidedCombination(
                conditions=tuple(
                    AttributeCondition(attribute=c['attribute'], value=c['value'])
                    for c in combination.get('conditions') or ()
                ),
                description=combination.get('description', '')
            )
            for combination in params.get('combinations') or ()
        ))
    return CustomParams(data=dict(params))


def parse_constraint(record: Dict[str, Any], index: int = 0) -> Constraint:
    """
    Parse one constraint record.

    Record format:
        id: optional identifier (defaults to constraint_<index>)
        type: constraint kind
        severity: hard | soft (default soft)
        description: optional text
        parameters: kind-specific parameters

    Unknown types are kept as custom constraints.

    Raises:
        ConfigurationError: If the parameters are invalid for the kind
    """
    constraint_id = str(record.get('id', f"constraint_{index}"))
    type_name = str(record.get('type', 'custom'))
    params = record.get('parameters', record.get('params')) or {}

    if type_name in TYPE_ALIASES:
        kind = TYPE_ALIASES[type_name]
    else:
        try:
            kind = ConstraintKind(type_name)
        except ValueError:
            logger.warning("Unknown constraint type '%s' for %s, recorded as custom",
                           type_name, constraint_id)
            kind = ConstraintKind.CUSTOM
            params = {'type': type_name, **params}

    try:
        severity = Severity(str(record.get('severity', 'soft')).lower())
    except ValueError:
        raise ConfigurationError(
            f"Constraint {constraint_id}: severity must be 'hard' or 'soft'"
        )

    try:
        return Constraint(
            id=constraint_id,
            kind=kind,
            params=_parse_params(kind, params),
            severity=severity,
            description=str(record.get('description', ''))
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Constraint {constraint_id}: invalid parameters ({e})")


def build_constraints(records: Optional[List[Dict[str, Any]]]) -> List[Constraint]:
    """Parse a list of constraint records."""
    return [parse_constraint(record, index) for index, record in enumerate(records or [], start=1)]


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of issues

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    for section in ('tables', 'participants'):
        if section not in config:
            issues.append(f"Missing required section: {section}")

    tables = config.get('tables') or {}
    if 'tables' in config:
        for key in ('count', 'capacity'):
            value = tables.get(key, 0)
            if not isinstance(value, int) or value <= 0:
                issues.append(f"tables.{key} must be a positive integer")

    optimization = config.get('optimization') or {}
    strategy = optimization.get('strategy', 'simulated_annealing')
    if strategy not in STRATEGIES:
        issues.append(f"Unknown strategy: {strategy}")

    weights = optimization.get('weights') or {}
    unknown = [name for name in weights if name not in DEFAULT_WEIGHTS]
    if unknown:
        issues.append(f"Unknown diversity dimensions: {', '.join(unknown)}")
    else:
        merged = {**DEFAULT_WEIGHTS, **weights}
        if abs(sum(merged.values()) - 1.0) > 1e-6:
            issues.append(f"Diversity weights must sum to 1.0 (got {sum(merged.values()):.3f})")

    runtime = optimization.get('max_runtime', 30)
    if not isinstance(runtime, (int, float)) or runtime <= 0:
        issues.append("optimization.max_runtime must be positive")

    constraints = config.get('constraints') or []
    if not isinstance(constraints, list):
        issues.append("'constraints' must be a list")
    else:
        for index, record in enumerate(constraints, start=1):
            try:
                parse_constraint(record, index)
            except ConfigurationError as e:
                issues.append(str(e))

    return issues


def print_config_summary(config_path: Union[str, Path] = "config.yaml"):
    """Print a summary of the configuration"""
    try:
        config = load_config(config_path)

        print("=" * 50)
        print("CONFIGURATION SUMMARY")
        print("=" * 50)

        tables = config.get('tables', {})
        print(f"Tables: {tables.get('count', 'N/A')} x {tables.get('capacity', 'N/A')} seats")

        participants = config.get('participants')
        if isinstance(participants, dict):
            print(f"Participants: from {participants.get('csv', 'N/A')}")
        else:
            print(f"Participants: {len(participants or [])}")

        optimization = config.get('optimization', {})
        print(f"Strategy: {optimization.get('strategy', 'simulated_annealing')}")
        print(f"Max runtime: {optimization.get('max_runtime', 30)}s")
        print(f"Random seed: {optimization.get('random_seed', 'random')}")

        constraints = config.get('constraints') or []
        print(f"\nConstraints ({len(constraints)}):")
        for record in constraints:
            print(f"  {record.get('id', '?')}: {record.get('type', 'custom')} "
                  f"({record.get('severity', 'soft')})")

        issues = validate_config(config)
        if issues:
            print(f"\nValidation Issues ({len(issues)}):")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print("\nConfiguration is valid ✓")

        print("=" * 50)

    except ConfigurationError as e:
        print(f"Configuration Error: {e}")
