"""Error types raised by the migration planner.

Problems found inside a plan (cycles, dangling references, empty phases) are
reported through ``ValidationResult`` and never raised. The exceptions below
cover malformed requests and broken internal invariants.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for all migration planner errors."""


class InvalidPlanRequestError(PlannerError, ValueError):
    """
    A plan request document failed schema validation.

    Attributes:
        errors: Validation messages in ``path: message`` form
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return f"{base}: {'; '.join(self.errors)}"


class GraphInvariantError(PlannerError):
    """The task set handed to the graph builder breaks a structural invariant."""
