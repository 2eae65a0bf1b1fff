"""
Per-step symbolic variables for the Countdown transition system.
"""
from typing import Any, Dict, Optional, Tuple
import itertools
import z3

_instance_ids = itertools.count()


class ChiffresCache:
    """Memoizes the Z3 variables of each unrolling step.

    Every accessor creates its variable on first use and returns the very
    same object afterwards, so formulas built at different times talk about
    the same unknown. Names are derived from the key and ``prefix``. The
    default prefix is unique per cache, so two caches never share a Z3
    constant; pass ``prefix=""`` for bare names.

    Variables:
        idx@k        Int, stack pointer at step k
        stack@k      Array(Int, BitVec(bv_bits)), stack contents at step k
        push_v#i@k   Bool, starting value v (slot i) is pushed at step k
        add@k ...    Bool, one per binary operator
    """

    def __init__(self, bv_bits: int, prefix: Optional[str] = None):
        self.bv_bits = bv_bits
        self.prefix = f"c{next(_instance_ids)}_" if prefix is None else prefix
        self._vars: Dict[Tuple, Any] = {}

    def __len__(self) -> int:
        return len(self._vars)

    def _get(self, key: Tuple, make) -> Any:
        var = self._vars.get(key)
        if var is None:
            var = make(self._name(key))
            self._vars[key] = var
        return var

    def _name(self, key: Tuple) -> str:
        kind, step = key[0], key[1]
        if kind == "push":
            slot, num = key[2], key[3]
            return f"{self.prefix}push_{num}#{slot}@{step}"
        return f"{self.prefix}{kind}@{step}"

    def idx_state_var(self, step: int) -> z3.ArithRef:
        return self._get(("idx", step), z3.Int)

    def stack_state_var(self, step: int) -> z3.ArrayRef:
        sort = z3.BitVecSort(self.bv_bits)
        return self._get(("stack", step),
                         lambda name: z3.Array(name, z3.IntSort(), sort))

    def push_num_var(self, step: int, num: int, slot: int = 0) -> z3.BoolRef:
        """Decision variable for pushing ``num`` taken from position ``slot``."""
        return self._get(("push", step, slot, num), z3.Bool)

    def add_var(self, step: int) -> z3.BoolRef:
        return self._get(("add", step), z3.Bool)

    def sub_var(self, step: int) -> z3.BoolRef:
        return self._get(("sub", step), z3.Bool)

    def mul_var(self, step: int) -> z3.BoolRef:
        return self._get(("mul", step), z3.Bool)

    def div_var(self, step: int) -> z3.BoolRef:
        return self._get(("div", step), z3.Bool)
