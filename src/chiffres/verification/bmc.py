"""Bounded model checking (BMC) over a transition system.

The exact phase unrolls the system one transition at a time in a single
incremental solver, checking the goal at every step inside a scope that is
withdrawn before the next transition is asserted. When no witness exists
within the bound, an optional approximate phase asks an optimizer for the
run that ends closest to the goal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional
import logging
import time

from ..solver.base import OptimizerBackend, SolverBackend
from ..solver.result import SolverResult
from ..solver.z3_solver import Z3Optimizer, Z3Solver
from .trace import Trace

if TYPE_CHECKING:
    from ..system.base import TransitionSystem

logger = logging.getLogger(__name__)


class BMCStatus(Enum):
    """Terminal verdict of a BMC run."""
    FOUND = "found"
    EXHAUSTED = "exhausted"
    INCONCLUSIVE = "inconclusive"


@dataclass
class BMCResult:
    """Result of a BMC run.

    Attributes:
        status: Terminal verdict
        steps: Unrolling step at which the verdict was reached
        trace: Rendered witness for FOUND results
        approximate: True when the trace comes from the approximate phase
            and may not reach the goal
        distance: Minimized distance to the goal (approximate phase only)
        solver_time_ms: Wall-clock time spent in the run
        solver_name: Name of the solver backend that produced the verdict
    """
    status: BMCStatus
    steps: int
    trace: Optional[Trace] = None
    approximate: bool = False
    distance: Optional[int] = None
    solver_time_ms: float = 0.0
    solver_name: str = "unknown"

    @property
    def found(self) -> bool:
        return self.status == BMCStatus.FOUND

    def __str__(self) -> str:
        if self.status == BMCStatus.FOUND:
            kind = f"approximate solution (distance {self.distance})" if self.approximate else "solution"
            head = f"Found {kind} in {self.steps} steps"
        elif self.status == BMCStatus.EXHAUSTED:
            head = f"No solution within {self.steps} steps"
        else:
            head = f"Inconclusive at step {self.steps}"
        return f"{head} ({self.solver_name}, {self.solver_time_ms:.2f}ms)"


class BMC:
    """BMC engine for a transition system.

    Args:
        system: The transition system to unroll
        max_steps: Maximum number of unrolling steps (goal checked at
            steps 0..max_steps inclusive)
        use_approx: Fall back to approximate solving when exact search
            finds no witness
        simulation: Unroll without any goal, to observe the dynamics of
            the system; approximate solving is then disabled
        solver_factory: Creates the incremental solving session
        optimizer_factory: Creates the optimization session
    """

    def __init__(self,
                 system: "TransitionSystem",
                 max_steps: int,
                 use_approx: bool = False,
                 simulation: bool = False,
                 solver_factory: Callable[[], SolverBackend] = Z3Solver,
                 optimizer_factory: Callable[[], OptimizerBackend] = Z3Optimizer):
        if max_steps < 0:
            raise ValueError(f"max_steps must be non-negative, got {max_steps}")
        self.system = system
        self.max_steps = max_steps
        self.use_approx = False if simulation else use_approx
        self.simulation = simulation
        self.solver_factory = solver_factory
        self.optimizer_factory = optimizer_factory

    def _log_params(self) -> None:
        logger.info("BMC parameters: max_steps=%d use_approx=%s simulation=%s",
                    self.max_steps, self.use_approx, self.simulation)
        for key, value in self.system.params().items():
            logger.info("  %s: %s", key, value)

    @staticmethod
    def _remaining_ms(start: float, timeout: Optional[float]) -> Optional[int]:
        if timeout is None:
            return None
        return int((timeout - (time.time() - start)) * 1000)

    def solve_exact(self, timeout: Optional[float] = None) -> BMCResult:
        """Exactly solve the BMC problem, unrolling at most max_steps
        transitions from the initial state.

        At each step the goal formula is checked in its own scope; UNSAT
        withdraws it and asserts the next transition. The transition out of
        the last step is never asserted since no goal check follows it.

        Args:
            timeout: Wall-clock budget in seconds, None for no limit
        """
        start = time.time()
        solver = self.solver_factory()
        solver.add_constraint(self.system.initial_state_formula())

        def result(status: BMCStatus, step: int, trace: Optional[Trace] = None) -> BMCResult:
            return BMCResult(status=status, steps=step, trace=trace,
                             solver_time_ms=(time.time() - start) * 1000,
                             solver_name=solver.name)

        res = SolverResult.UNKNOWN
        for step in range(self.max_steps + 1):
            remaining = self._remaining_ms(start, timeout)
            if remaining is not None and remaining <= 0:
                logger.warning("timeout reached before step %d", step)
                return result(BMCStatus.INCONCLUSIVE, step)

            goal = None if self.simulation else self.system.final_state_formula(step)
            if goal is not None:
                with solver.scope():
                    solver.add_constraint(goal)
                    res = solver.check_sat(remaining)
                    logger.info("%s at step %d", res, step)
                    if res == SolverResult.SAT:
                        trace = self.system.render(solver.model(), step)
                        return result(BMCStatus.FOUND, step, trace)
            else:
                res = solver.check_sat(remaining)
                logger.info("%s at step %d", res, step)

            if res == SolverResult.UNKNOWN:
                return result(BMCStatus.INCONCLUSIVE, step)

            if step != self.max_steps:
                solver.add_constraint(self.system.transition_formula(step))

        if self.simulation:
            trace = None
            if res == SolverResult.SAT:
                trace = self.system.render(solver.model(), self.max_steps)
            else:
                logger.warning("simulation has no run of %d steps", self.max_steps)
            return result(BMCStatus.FOUND, self.max_steps, trace)

        logger.info("UNSAT after all %d steps", self.max_steps)
        return result(BMCStatus.EXHAUSTED, self.max_steps)

    def solve_approx(self, timeout: Optional[float] = None) -> BMCResult:
        """Approximately solve the BMC problem with an optimizer.

        Optimization sessions cannot withdraw assertions, so the complete
        unrolling is built once and the distance to the goal at the last
        step is minimized.

        Args:
            timeout: Solver limit in seconds, None for no limit
        """
        start = time.time()
        opt = self.optimizer_factory()

        opt.add_constraint(self.system.initial_state_formula())
        for step in range(self.max_steps):
            opt.add_constraint(self.system.transition_formula(step))
        opt.minimize(self.system.approx_criterion(self.max_steps))

        status = opt.check_sat(None if timeout is None else int(timeout * 1000))
        elapsed_ms = (time.time() - start) * 1000

        if status == SolverResult.SAT:
            distance = opt.objective_value()
            logger.info("approximate solution found (distance %s)", distance)
            return BMCResult(status=BMCStatus.FOUND, steps=self.max_steps,
                             trace=self.system.render(opt.model(), self.max_steps),
                             approximate=True, distance=distance,
                             solver_time_ms=elapsed_ms, solver_name=opt.name)
        if status == SolverResult.UNKNOWN:
            logger.info("approximate solution status UNKNOWN")
            return BMCResult(status=BMCStatus.INCONCLUSIVE, steps=self.max_steps,
                             solver_time_ms=elapsed_ms, solver_name=opt.name)

        logger.info("no approximate solution after %d steps", self.max_steps)
        return BMCResult(status=BMCStatus.EXHAUSTED, steps=self.max_steps,
                         solver_time_ms=elapsed_ms, solver_name=opt.name)

    def solve(self, timeout: Optional[float] = None) -> BMCResult:
        """Solve using exact resolution, then approximate resolution if
        asked and no witness was found.

        Args:
            timeout: Budget in seconds, None for no limit
        """
        self._log_params()

        res = self.solve_exact(timeout)

        if self.use_approx and not res.found:
            if not getattr(self.system, "supports_approximation", False):
                logger.warning("%s has no approximate criterion, keeping exact verdict",
                               type(self.system).__name__)
                return res
            logger.info("exact search ended %s, trying approximate solving",
                        res.status.value)
            res = self.solve_approx(timeout)

        return res
