"""
Abstract interfaces for SMT solver backends.
"""
from contextlib import AbstractContextManager
from typing import Protocol, Any, Optional, Dict
from .result import SolverResult


class SolverBackend(Protocol):
    """Protocol defining an incremental solving session.

    The BMC driver only talks to this surface, so another solver can be
    plugged in as long as it supports scoped assertions.
    """

    name: str

    def add_constraint(self, constraint: Any) -> None:
        """Add a constraint to the session.

        Args:
            constraint: Solver-specific boolean term
        """
        ...

    def check_sat(self, timeout_ms: Optional[int] = None) -> SolverResult:
        """Check satisfiability of the asserted constraints.

        Args:
            timeout_ms: Hard limit for this query, None for no limit

        Returns:
            SAT, UNSAT or UNKNOWN
        """
        ...

    def model(self) -> Any:
        """Return the solver-native model of the last SAT check."""
        ...

    def get_model(self) -> Optional[Dict[str, Any]]:
        """Get variable assignments of the last SAT check as Python values."""
        ...

    def push(self) -> None:
        """Push a new assertion scope."""
        ...

    def pop(self) -> None:
        """Pop the most recent assertion scope."""
        ...

    def scope(self) -> AbstractContextManager:
        """Context manager pairing push() with a guaranteed pop()."""
        ...

    def reset(self) -> None:
        """Reset the solver state, clearing all constraints."""
        ...


class OptimizerBackend(Protocol):
    """Protocol for a one-shot optimization session (no push/pop)."""

    name: str

    def add_constraint(self, constraint: Any) -> None:
        ...

    def minimize(self, term: Any) -> None:
        """Register a numeric term to minimize."""
        ...

    def check_sat(self, timeout_ms: Optional[int] = None) -> SolverResult:
        ...

    def model(self) -> Any:
        ...

    def objective_value(self) -> Optional[int]:
        """Value of the minimized term in the last model, if any."""
        ...
