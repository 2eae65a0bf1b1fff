"""
Z3 SMT solver backend implementation.
"""
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Dict
import z3

from .result import SolverResult


# z3 reads this value as "no timeout"
_NO_TIMEOUT = 4294967295


def _timeout_param(timeout_ms: Optional[int]) -> int:
    if timeout_ms is None:
        return _NO_TIMEOUT
    # an exhausted budget still has to stop the check, never disable the limit
    return min(max(1, int(timeout_ms)), _NO_TIMEOUT - 1)


def _to_result(status: z3.CheckSatResult) -> SolverResult:
    if status == z3.sat:
        return SolverResult.SAT
    if status == z3.unsat:
        return SolverResult.UNSAT
    return SolverResult.UNKNOWN


def _to_python(value: Any) -> Any:
    # Convert Z3 values to Python types
    if z3.is_int_value(value):
        return value.as_long()
    if z3.is_bv_value(value):
        return value.as_signed_long()
    if z3.is_true(value):
        return True
    if z3.is_false(value):
        return False
    return str(value)


class Z3Solver:
    """Incremental Z3 solving session.

    Wraps ``z3.Solver`` and keeps track of the scope depth so callers can
    check that push/pop stay balanced.
    """

    name = "z3"

    def __init__(self):
        """Initialize Z3 solver instance."""
        self.solver = z3.Solver()
        self._depth = 0
        self._last: Optional[SolverResult] = None

    @property
    def depth(self) -> int:
        """Number of currently open scopes."""
        return self._depth

    def add_constraint(self, constraint: Any) -> None:
        """Add a Z3 constraint to the solver.

        Args:
            constraint: Z3 boolean expression
        """
        self.solver.add(constraint)

    def check_sat(self, timeout_ms: Optional[int] = None) -> SolverResult:
        """Check satisfiability of constraints.

        Args:
            timeout_ms: Limit for this check in milliseconds

        Returns:
            SolverResult of the check
        """
        self.solver.set("timeout", _timeout_param(timeout_ms))
        self._last = _to_result(self.solver.check())
        return self._last

    def model(self) -> z3.ModelRef:
        """Return the Z3 model of the last satisfiable check."""
        if self._last != SolverResult.SAT:
            raise RuntimeError("no model available: last check was not SAT")
        return self.solver.model()

    def get_model(self) -> Optional[Dict[str, Any]]:
        """Extract model from Z3 solver.

        Returns:
            Dictionary mapping variable names to their values, None unless
            the last check was SAT
        """
        if self._last != SolverResult.SAT:
            return None

        model = self.solver.model()
        return {decl.name(): _to_python(model[decl]) for decl in model
                if decl.arity() == 0}

    def push(self) -> None:
        """Push a new assertion scope."""
        self.solver.push()
        self._depth += 1

    def pop(self) -> None:
        """Pop the most recent assertion scope."""
        if self._depth == 0:
            raise RuntimeError("pop() without matching push()")
        self.solver.pop()
        self._depth -= 1

    @contextmanager
    def scope(self) -> Iterator["Z3Solver"]:
        """Open an assertion scope that is always popped on exit."""
        self.push()
        try:
            yield self
        finally:
            self.pop()

    def reset(self) -> None:
        """Reset solver state."""
        self.solver.reset()
        self._depth = 0
        self._last = None


class Z3Optimizer:
    """One-shot Z3 optimization session (``z3.Optimize``).

    Optimization contexts do not support withdrawing assertions, so the
    whole problem is added up front and checked once.
    """

    name = "z3-opt"

    def __init__(self):
        self.optimizer = z3.Optimize()
        self._objectives: List[Any] = []
        self._last: Optional[SolverResult] = None

    def add_constraint(self, constraint: Any) -> None:
        self.optimizer.add(constraint)

    def minimize(self, term: Any) -> None:
        self._objectives.append(term)
        self.optimizer.minimize(term)

    def check_sat(self, timeout_ms: Optional[int] = None) -> SolverResult:
        self.optimizer.set(timeout=_timeout_param(timeout_ms))
        self._last = _to_result(self.optimizer.check())
        return self._last

    def model(self) -> z3.ModelRef:
        if self._last != SolverResult.SAT:
            raise RuntimeError("no model available: last check was not SAT")
        return self.optimizer.model()

    def objective_value(self) -> Optional[int]:
        """Evaluate the first objective in the current model."""
        if self._last != SolverResult.SAT or not self._objectives:
            return None
        value = self.optimizer.model().eval(self._objectives[0], model_completion=True)
        return _to_python(value)
