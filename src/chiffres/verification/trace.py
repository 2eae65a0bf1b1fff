"""Solution trace representation and formatting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

_SETTLED_ON = "\033[7m"
_SETTLED_OFF = "\033[m"


@dataclass
class TraceStep:
    """State reached after one action.

    Attributes:
        action: "init", "push", "add", "sub", "mul" or "div"
        operand: Pushed value for "push", None otherwise
        index: Stack pointer after the action
        stack: Stack contents, only ``stack[:index]`` is meaningful
    """

    action: str
    operand: Optional[int]
    index: int
    stack: List[int]

    @property
    def settled(self) -> List[int]:
        return self.stack[:self.index]

    def label(self) -> str:
        if self.action == "push":
            return f"push {self.operand:3d}"
        return f"{self.action:<4s}    "


@dataclass
class Trace:
    """Sequence of states from the empty stack to the last action."""

    steps: List[TraceStep]
    target: Optional[int] = None

    @property
    def depth(self) -> int:
        """Number of actions (the initial state is not an action)."""
        return len(self.steps) - 1

    @property
    def actions(self) -> List[str]:
        return [s.action for s in self.steps[1:]]

    @property
    def pushed_values(self) -> List[int]:
        return [s.operand for s in self.steps[1:] if s.action == "push"]

    @property
    def reached(self) -> bool:
        """True when the run ends with the target alone on the stack."""
        last = self.steps[-1]
        return self.target is not None and last.index == 1 and last.stack[0] == self.target

    @property
    def final_value(self) -> Optional[int]:
        """Top of the stack after the last action, None if it is empty."""
        last = self.steps[-1]
        if last.index <= 0:
            return None
        return last.stack[last.index - 1]

    def _format_stack(self, step: TraceStep, color: bool) -> str:
        cells: List[str] = []
        for pos, value in enumerate(step.stack):
            cell = f"{value:4d}"
            if pos < step.index:
                cell = f"{_SETTLED_ON}{cell}{_SETTLED_OFF}" if color else f"[{value}]".rjust(4)
            cells.append(cell)
        return "|" + "|".join(cells) + "|"

    def format_trace(self, color: bool = True) -> str:
        lines: List[str] = []
        for step in self.steps:
            lines.append(f"  {step.label()} ~> {self._format_stack(step, color)}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format_trace(color=False)
