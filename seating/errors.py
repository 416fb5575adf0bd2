"""
Error taxonomy for the seating engine.

Every error raised by the engine derives from SeatingError and carries a
short ``kind`` tag so that embedding systems can report the failure
category without exposing a stack trace.
"""

from typing import Any, Optional


class SeatingError(Exception):
    """Base class for all seating engine errors."""

    kind = "seating_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize the error for callers that report failures.

        Returns:
            Dictionary with kind, message and any extra details
        """
        payload = {'kind': self.kind, 'message': self.message}
        payload.update({k: v for k, v in self.details.items() if v is not None})
        return payload


class InsufficientParticipants(SeatingError):
    """Raised when fewer than two participants are supplied."""

    kind = "insufficient_participants"

    def __init__(self, count: int):
        super().__init__(
            f"At least 2 participants are required, got {count}", count=count
        )
        self.count = count


class UnknownStrategy(SeatingError):
    """Raised when an optimization strategy name is not recognised."""

    kind = "unknown_strategy"

    def __init__(self, name: str, available: Optional[list[str]] = None):
        message = f"Unknown optimization strategy: '{name}'"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message, strategy=name)
        self.name = name


class UnknownRotationPolicy(SeatingError):
    """Raised when a rotation policy name is not recognised."""

    kind = "unknown_rotation_policy"

    def __init__(self, name: str, available: Optional[list[str]] = None):
        message = f"Unknown rotation policy: '{name}'"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message, policy=name)
        self.name = name


class InvalidDayCount(SeatingError):
    """Raised when a multi-day series is requested outside 2..10 days."""

    kind = "invalid_day_count"

    def __init__(self, days: int, minimum: int = 2, maximum: int = 10):
        super().__init__(
            f"Day count must be between {minimum} and {maximum}, got {days}",
            days=days
        )
        self.days = days


class CapacityOverflow(SeatingError):
    """Raised when participants exceed total seats and overflow is not allowed."""

    kind = "capacity_overflow"

    def __init__(self, participants: int, seats: int):
        super().__init__(
            f"{participants} participants exceed {seats} available seats",
            participants=participants,
            seats=seats
        )
        self.participants = participants
        self.seats = seats


class InvalidArrangement(SeatingError):
    """Raised when a supplied arrangement does not match the roster."""

    kind = "invalid_arrangement"

    def __init__(self, problems: list[str]):
        super().__init__(
            "Invalid arrangement: " + "; ".join(problems), problems=problems
        )
        self.problems = problems


class ConfigurationError(SeatingError):
    """Raised when configuration is invalid."""

    kind = "configuration_error"


class ConstraintEvaluationError(SeatingError):
    """Raised when a single constraint's evaluator fails."""

    kind = "constraint_evaluation_error"

    def __init__(self, constraint_id: str, cause: BaseException):
        super().__init__(
            f"Constraint '{constraint_id}' failed to evaluate: {cause}",
            constraint_id=constraint_id
        )
        self.constraint_id = constraint_id
        self.cause = cause


class DayOptimizationFailure(SeatingError):
    """Raised when one day of a multi-day series cannot be optimized."""

    kind = "day_optimization_failure"

    def __init__(self, day: int, cause: SeatingError):
        super().__init__(
            f"Day {day} failed: {cause.message}",
            day=day,
            cause_kind=cause.kind
        )
        self.day = day
        self.cause = cause
