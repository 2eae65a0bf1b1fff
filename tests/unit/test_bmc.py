"""
Tests for the BMC driver.
"""
from collections import Counter

import pytest
import z3

from chiffres.solver import SolverResult
from chiffres.system import ChiffresTransitionSystem, TransitionSystem
from chiffres.verification import BMC, BMCStatus


class UnknownSolver:
    """Solver session that can never decide."""

    name = "unknown-solver"

    def __init__(self):
        self.depth = 0

    def add_constraint(self, constraint):
        pass

    def check_sat(self, timeout_ms=None):
        return SolverResult.UNKNOWN

    def push(self):
        self.depth += 1

    def pop(self):
        self.depth -= 1

    def scope(self):
        from contextlib import contextmanager

        @contextmanager
        def _scope():
            self.push()
            try:
                yield self
            finally:
                self.pop()
        return _scope()


class UnknownOptimizer:
    name = "unknown-opt"

    def add_constraint(self, constraint):
        pass

    def minimize(self, term):
        pass

    def check_sat(self, timeout_ms=None):
        return SolverResult.UNKNOWN


class CounterSystem(TransitionSystem):
    """Integer counter starting at 0, incremented at each step."""

    def __init__(self, goal):
        self.goal = goal

    def _x(self, step):
        return z3.Int(f"x@{step}")

    def initial_state_formula(self):
        return self._x(0) == 0

    def final_state_formula(self, step):
        return self._x(step) == self.goal

    def transition_formula(self, step):
        return self._x(step + 1) == self._x(step) + 1

    def render(self, model, steps):
        return [model.eval(self._x(k), model_completion=True).as_long()
                for k in range(steps + 1)]


def test_scenario_a_found():
    system = ChiffresTransitionSystem([1, 5, 6, 7, 13, 25], 200, 16)
    result = BMC(system, system.max_steps).solve()

    assert result.status == BMCStatus.FOUND
    assert result.found
    assert not result.approximate
    assert result.steps <= 11
    assert result.trace is not None
    assert result.trace.final_value == 200
    assert result.trace.reached
    assert result.trace.steps[-1].index == 1


def test_found_trace_conserves_values():
    nums = [1, 5, 6, 7, 13, 25]
    system = ChiffresTransitionSystem(nums, 200, 16)
    trace = BMC(system, system.max_steps).solve().trace

    pushed = Counter(trace.pushed_values)
    assert not pushed - Counter(nums)

    ops = sum(1 for a in trace.actions if a in ("add", "sub", "mul", "div"))
    assert len(trace.pushed_values) - ops == trace.steps[-1].index
    assert len(trace.actions) == trace.depth == len(trace.pushed_values) + ops


def test_found_at_shortest_step():
    """[5, 7] -> 12 needs exactly push, push, add."""
    system = ChiffresTransitionSystem([5, 7], 12, 8)
    result = BMC(system, system.max_steps).solve()

    assert result.status == BMCStatus.FOUND
    assert result.steps == 3
    assert result.trace.actions == ["push", "push", "add"]


def test_division_in_solution_has_nonzero_divisor():
    """Only 6 / 3 reaches 2 from [6, 3]."""
    system = ChiffresTransitionSystem([6, 3], 2, 8)
    result = BMC(system, system.max_steps).solve()

    assert result.status == BMCStatus.FOUND
    assert result.trace.actions == ["push", "push", "div"]
    before_div = result.trace.steps[2]
    divisor = before_div.stack[before_div.index - 2]
    assert divisor != 0
    assert result.trace.final_value == 2


def test_single_value_target():
    system = ChiffresTransitionSystem([3, 9], 9, 8)
    result = BMC(system, system.max_steps).solve()

    assert result.status == BMCStatus.FOUND
    assert result.steps == 1
    assert result.trace.actions == ["push"]


def test_scenario_b_exhausted():
    system = ChiffresTransitionSystem([1, 2], 10, 8, no_overflows=True)
    result = BMC(system, system.max_steps).solve()

    assert result.status == BMCStatus.EXHAUSTED
    assert result.trace is None
    assert result.steps == 3


def test_scenario_b_approximate():
    system = ChiffresTransitionSystem([1, 2], 10, 8, no_overflows=True)
    result = BMC(system, system.max_steps, use_approx=True).solve()

    assert result.status == BMCStatus.FOUND
    assert result.approximate
    assert result.distance == 7
    assert result.trace.final_value == 3
    assert not result.trace.reached
    assert result.trace.actions[-1] == "add"


@pytest.mark.parametrize("bound", [0, 1, 2, 3])
def test_exact_unrolling_monotonicity(bound):
    system = ChiffresTransitionSystem([1, 2], 10, 8)
    assert BMC(system, bound).solve().status == BMCStatus.EXHAUSTED


def test_no_starting_values():
    system = ChiffresTransitionSystem([], 0, 8)
    result = BMC(system, system.max_steps).solve()
    assert result.status == BMCStatus.EXHAUSTED
    assert result.steps == 0


def test_simulation_runs_full_bound(spy_factory):
    system = ChiffresTransitionSystem([4, 4], 1000, 16)
    result = BMC(system, system.max_steps, simulation=True,
                 solver_factory=spy_factory).solve()

    assert result.status == BMCStatus.FOUND
    assert result.steps == 3
    assert result.trace.depth == 3
    assert result.trace.actions[:2] == ["push", "push"]
    assert result.trace.pushed_values == [4, 4]

    spy = spy_factory.created[0]
    assert spy.pushes == 0
    assert spy.checks == 4


def test_simulation_disables_approximation():
    system = ChiffresTransitionSystem([4, 4], 1000, 16)
    bmc = BMC(system, system.max_steps, use_approx=True, simulation=True)
    assert bmc.use_approx is False


def test_goal_scopes_are_balanced(spy_factory):
    system = ChiffresTransitionSystem([1, 2], 10, 8)
    BMC(system, system.max_steps, solver_factory=spy_factory).solve()

    spy = spy_factory.created[0]
    assert spy.pushes == spy.pops == 4
    assert spy.max_depth == 1
    assert spy.depth == 0


def test_goal_scope_popped_when_found(spy_factory):
    system = ChiffresTransitionSystem([5, 7], 12, 8)
    result = BMC(system, system.max_steps, solver_factory=spy_factory).solve()

    assert result.found
    spy = spy_factory.created[0]
    assert spy.pushes == spy.pops
    assert spy.depth == 0


def test_unknown_is_inconclusive():
    system = ChiffresTransitionSystem([1, 2], 3, 8)
    result = BMC(system, system.max_steps, solver_factory=UnknownSolver).solve()

    assert result.status == BMCStatus.INCONCLUSIVE
    assert result.steps == 0
    assert result.trace is None


def test_unknown_is_not_replaced_by_approximation_failure():
    system = ChiffresTransitionSystem([1, 2], 3, 8)
    result = BMC(system, system.max_steps, use_approx=True,
                 solver_factory=UnknownSolver,
                 optimizer_factory=UnknownOptimizer).solve()

    assert result.status == BMCStatus.INCONCLUSIVE
    assert result.solver_name == "unknown-opt"


def test_expired_timeout_is_inconclusive():
    system = ChiffresTransitionSystem([1, 5, 6, 7, 13, 25], 200, 16)
    result = BMC(system, system.max_steps).solve(timeout=1e-9)

    assert result.status == BMCStatus.INCONCLUSIVE
    assert result.trace is None


def test_negative_bound_rejected():
    system = ChiffresTransitionSystem([1], 1, 8)
    with pytest.raises(ValueError):
        BMC(system, -1)


def test_generic_system_without_approximation():
    system = CounterSystem(goal=3)
    result = BMC(system, 5).solve()

    assert result.status == BMCStatus.FOUND
    assert result.steps == 3
    assert result.trace == [0, 1, 2, 3]


def test_generic_system_keeps_exact_verdict_without_capability():
    system = CounterSystem(goal=10)
    result = BMC(system, 4, use_approx=True).solve()

    assert result.status == BMCStatus.EXHAUSTED
    assert not result.approximate


def test_result_summary():
    system = ChiffresTransitionSystem([1, 2], 10, 8)
    exact = BMC(system, system.max_steps).solve()
    approx = BMC(system, system.max_steps, use_approx=True).solve()

    assert str(exact).startswith("No solution within 3 steps")
    assert str(approx).startswith("Found approximate solution (distance 7)")


def test_each_check_gets_remaining_budget(spy_factory):
    system = ChiffresTransitionSystem([1, 2], 10, 8)
    result = BMC(system, system.max_steps, solver_factory=spy_factory).solve(timeout=30)

    assert result.status == BMCStatus.EXHAUSTED
    spy = spy_factory.created[0]
    assert len(spy.timeouts) == 4
    assert all(t is not None and 0 < t <= 30000 for t in spy.timeouts)
    # budget only shrinks as steps are unrolled
    assert spy.timeouts == sorted(spy.timeouts, reverse=True)


def test_checks_unlimited_without_timeout(spy_factory):
    system = ChiffresTransitionSystem([1, 2], 10, 8)
    BMC(system, system.max_steps, solver_factory=spy_factory).solve()

    assert spy_factory.created[0].timeouts == [None] * 4


def test_approximate_check_gets_budget(spy_factory, spy_optimizer_factory):
    system = ChiffresTransitionSystem([1, 2], 10, 8)
    result = BMC(system, system.max_steps, use_approx=True,
                 solver_factory=spy_factory,
                 optimizer_factory=spy_optimizer_factory).solve(timeout=30)

    assert result.approximate
    assert spy_optimizer_factory.created[0].timeouts == [30000]


def test_unknown_during_budgeted_check_is_inconclusive():
    """A check stopped by the solver limit ends the run without a trace."""

    class TimingOutSolver(UnknownSolver):
        def __init__(self):
            super().__init__()
            self.timeouts = []

        def check_sat(self, timeout_ms=None):
            self.timeouts.append(timeout_ms)
            return SolverResult.UNKNOWN

    created = []

    def factory():
        created.append(TimingOutSolver())
        return created[-1]

    system = ChiffresTransitionSystem([1, 2], 3, 8)
    result = BMC(system, system.max_steps, solver_factory=factory).solve(timeout=30)

    assert result.status == BMCStatus.INCONCLUSIVE
    assert result.trace is None
    assert len(created[0].timeouts) == 1
    assert 0 < created[0].timeouts[0] <= 30000
    assert created[0].depth == 0
