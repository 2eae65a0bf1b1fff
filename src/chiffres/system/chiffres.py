"""
Transition system for the "Countdown" game, a.k.a. "des chiffres et des
lettres".

State at step k is a pair (idx@k, stack@k): the number of values on the
stack and an array of signed bit-vectors. At each step exactly one action
fires: push one of the unused starting numbers, or pop the two top values
and push the result of add, sub, mul or div.
"""
from typing import Any, Callable, Dict, List, Optional, Sequence
import z3

from ..errors import ConfigurationError
from ..verification.trace import Trace, TraceStep
from .base import TransitionSystem
from .cache import ChiffresCache

# (step, e1, e2) -> term, e1 being the top of the stack
ActionResult = Callable[[int, z3.BitVecRef, z3.BitVecRef], z3.BitVecRef]
ActionPrecondition = Callable[[int, z3.BitVecRef, z3.BitVecRef], z3.BoolRef]

# Extra bits used when computing the distance to the target
_APPROX_EXTRA_BITS = 2


class ChiffresTransitionSystem(TransitionSystem):
    """Countdown puzzle encoded over Z3 integers and bit-vectors.

    Args:
        nums: Starting numbers; equal values are distinct pushable units
        target: Number to reach
        bv_bits: Width of the stack bit-vectors
        no_overflows: Forbid arithmetic overflows and reject literals that
            do not fit in signed ``bv_bits`` bit-vectors

    Raises:
        ConfigurationError: A literal exceeds the signed range while
            ``no_overflows`` is set
    """

    supports_approximation = True

    def __init__(self, nums: Sequence[int], target: int, bv_bits: int,
                 no_overflows: bool = True, cache: Optional[ChiffresCache] = None):
        if bv_bits <= 0:
            raise ValueError(f"bit width must be positive, got {bv_bits}")

        self.nums = tuple(int(n) for n in nums)
        self.target = int(target)
        self.bv_bits = bv_bits
        self.no_overflows = no_overflows
        self.cache = cache or ChiffresCache(bv_bits)

        # minimum and maximum values for bitvectors
        self.max_bv_range = 2 ** (bv_bits - 1) - 1
        self.min_bv_range = -(2 ** (bv_bits - 1))

        self.max_steps = max(0, 2 * len(self.nums) - 1)

        # Encode literals now so that bad configurations fail before solving
        self._num_bvs = [self.to_bv_num(n) for n in self.nums]
        self._target_bv = self.to_bv_num(self.target)

    def to_bv_num(self, num: int) -> z3.BitVecNumRef:
        """Encode an integer literal as a ``bv_bits`` bit-vector numeral."""
        if self.no_overflows and not (self.min_bv_range <= num <= self.max_bv_range):
            raise ConfigurationError(
                f"the numeral {num} exceeds signed bitvectors of size {self.bv_bits}")
        return z3.BitVecVal(num, self.bv_bits)

    def params(self) -> Dict[str, Any]:
        return {
            "nums": list(self.nums),
            "target": self.target,
            "bvBits": self.bv_bits,
            "noOverflows": self.no_overflows,
        }

    # ── State formulas ────────────────────────────────────────────────

    def initial_state_formula(self) -> z3.BoolRef:
        return self.cache.idx_state_var(0) == 0

    def final_state_formula(self, step: int) -> z3.BoolRef:
        stack = self.cache.stack_state_var(step)
        return z3.And(self.cache.idx_state_var(step) == 1,
                      z3.Select(stack, 0) == self._target_bv)

    # ── Actions ───────────────────────────────────────────────────────

    def _push_vars(self, step: int) -> List[z3.BoolRef]:
        return [self.cache.push_num_var(step, num, slot)
                for slot, num in enumerate(self.nums)]

    def _action_vars(self, step: int) -> List[z3.BoolRef]:
        return self._push_vars(step) + [
            self.cache.add_var(step),
            self.cache.sub_var(step),
            self.cache.mul_var(step),
            self.cache.div_var(step),
        ]

    def push_num_formula(self, step: int, slot: int) -> z3.BoolRef:
        """True iff states at step and step + 1 are linked by pushing the
        starting number at ``slot``."""
        num = self.nums[slot]
        idx = self.cache.idx_state_var(step)
        stack = self.cache.stack_state_var(step)

        earlier = [self.cache.push_num_var(t, num, slot) for t in range(step)]
        unused = z3.Not(z3.Or(earlier)) if earlier else z3.BoolVal(True)

        effect = z3.And(
            self.cache.idx_state_var(step + 1) == idx + 1,
            self.cache.stack_state_var(step + 1) == z3.Store(stack, idx, self._num_bvs[slot]),
        )
        return z3.Implies(self.cache.push_num_var(step, num, slot), z3.And(unused, effect))

    def _action_formula(self, step: int, act_var: z3.BoolRef,
                        precond: ActionPrecondition, op_res: ActionResult) -> z3.BoolRef:
        """Shared encoding of the binary operators.

        Pops e1 (top) and e2, pushes ``op_res(step, e1, e2)``.
        """
        idx = self.cache.idx_state_var(step)
        stack = self.cache.stack_state_var(step)
        e1 = z3.Select(stack, idx - 1)
        e2 = z3.Select(stack, idx - 2)

        guard = z3.And(idx >= 2, precond(step, e1, e2))
        effect = z3.And(
            self.cache.idx_state_var(step + 1) == idx - 1,
            self.cache.stack_state_var(step + 1) == z3.Store(stack, idx - 2, op_res(step, e1, e2)),
        )
        return z3.Implies(act_var, z3.And(guard, effect))

    def add_formula(self, step: int) -> z3.BoolRef:
        def precond(_step, e1, e2):
            if not self.no_overflows:
                return z3.BoolVal(True)
            return z3.And(z3.BVAddNoOverflow(e1, e2, True),
                          z3.BVAddNoUnderflow(e1, e2))

        return self._action_formula(step, self.cache.add_var(step), precond,
                                    lambda _step, e1, e2: e1 + e2)

    def sub_formula(self, step: int) -> z3.BoolRef:
        def precond(_step, e1, e2):
            if not self.no_overflows:
                return z3.BoolVal(True)
            return z3.And(z3.BVSubNoOverflow(e1, e2),
                          z3.BVSubNoUnderflow(e1, e2, True))

        return self._action_formula(step, self.cache.sub_var(step), precond,
                                    lambda _step, e1, e2: e1 - e2)

    def mul_formula(self, step: int) -> z3.BoolRef:
        def precond(_step, e1, e2):
            if not self.no_overflows:
                return z3.BoolVal(True)
            # Checked on unbounded integers, bit-vector mul overflow
            # predicates are not portable across solvers
            product = z3.BV2Int(e1, is_signed=True) * z3.BV2Int(e2, is_signed=True)
            return z3.And(product >= self.min_bv_range, product <= self.max_bv_range)

        return self._action_formula(step, self.cache.mul_var(step), precond,
                                    lambda _step, e1, e2: e1 * e2)

    def div_formula(self, step: int) -> z3.BoolRef:
        def precond(_step, e1, e2):
            nonzero = e2 != 0
            if not self.no_overflows:
                return nonzero
            return z3.And(nonzero, z3.BVSDivNoOverflow(e1, e2))

        # "/" is signed (truncating) division on z3 bit-vectors
        return self._action_formula(step, self.cache.div_var(step), precond,
                                    lambda _step, e1, e2: e1 / e2)

    def transition_formula(self, step: int) -> z3.BoolRef:
        actions = self._action_vars(step)
        exactly_one = z3.And(z3.Or(actions), z3.AtMost(*actions, 1))

        formulas = [self.push_num_formula(step, slot) for slot in range(len(self.nums))]
        formulas += [
            self.add_formula(step),
            self.sub_formula(step),
            self.mul_formula(step),
            self.div_formula(step),
            exactly_one,
        ]
        return z3.And(formulas)

    # ── Approximate solving ───────────────────────────────────────────

    @property
    def approx_penalty(self) -> int:
        """Distance reported for an empty stack.

        Widest magnitude of the widened bit-vectors, larger than any
        reachable distance.
        """
        return 2 ** (self.bv_bits + _APPROX_EXTRA_BITS - 1) - 1

    def approx_criterion(self, step: int) -> z3.ArithRef:
        """Distance between the top of the stack and the target at ``step``.

        Operands are sign-extended before subtracting so the difference
        cannot wrap around.
        """
        width = self.bv_bits + _APPROX_EXTRA_BITS
        idx = self.cache.idx_state_var(step)
        top = z3.Select(self.cache.stack_state_var(step), idx - 1)

        diff = z3.SignExt(_APPROX_EXTRA_BITS, top) - z3.SignExt(_APPROX_EXTRA_BITS, self._target_bv)
        distance = z3.If(diff < 0, -diff, diff)
        criterion = z3.If(idx == 0, z3.BitVecVal(self.approx_penalty, width), distance)
        return z3.BV2Int(criterion, is_signed=True)

    # ── Model rendering ───────────────────────────────────────────────

    def _eval_stack(self, model: z3.ModelRef, step: int) -> List[int]:
        stack = self.cache.stack_state_var(step)
        width = max(1, len(self.nums))
        return [model.eval(z3.Select(stack, pos), model_completion=True).as_signed_long()
                for pos in range(width)]

    def _eval_index(self, model: z3.ModelRef, step: int) -> int:
        return model.eval(self.cache.idx_state_var(step), model_completion=True).as_long()

    def _fired_action(self, model: z3.ModelRef, step: int):
        for slot, num in enumerate(self.nums):
            if z3.is_true(model.eval(self.cache.push_num_var(step, num, slot), model_completion=True)):
                return "push", num
        for name, var in (("mul", self.cache.mul_var(step)),
                          ("div", self.cache.div_var(step)),
                          ("add", self.cache.add_var(step)),
                          ("sub", self.cache.sub_var(step))):
            if z3.is_true(model.eval(var, model_completion=True)):
                return name, None
        return "none", None

    def render(self, model: z3.ModelRef, steps: int) -> Trace:
        trace_steps = [TraceStep("init", None, self._eval_index(model, 0),
                                 self._eval_stack(model, 0))]
        for step in range(steps):
            action, operand = self._fired_action(model, step)
            trace_steps.append(TraceStep(action, operand,
                                         self._eval_index(model, step + 1),
                                         self._eval_stack(model, step + 1)))
        return Trace(steps=trace_steps, target=self.target)
