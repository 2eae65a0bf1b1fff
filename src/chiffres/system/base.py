"""
Interface between the BMC driver and a concrete transition system.
"""
from typing import Any, Dict, Optional


class TransitionSystem:
    """A system the BMC driver can unroll.

    Subclasses provide the initial state formula, a goal formula per step,
    the transition relation between step and step + 1, and a way to turn a
    solver model back into a readable trace.

    Approximate solving is an optional capability: a system advertising
    ``supports_approximation`` must implement ``approx_criterion``.
    """

    supports_approximation: bool = False

    def initial_state_formula(self) -> Any:
        raise NotImplementedError

    def final_state_formula(self, step: int) -> Optional[Any]:
        """Goal formula at ``step``, or None when no goal exists there."""
        raise NotImplementedError

    def transition_formula(self, step: int) -> Any:
        raise NotImplementedError

    def approx_criterion(self, step: int) -> Any:
        """Non-negative numeric term measuring the distance to the goal."""
        raise NotImplementedError(
            f"{type(self).__name__} does not support approximate solving")

    def render(self, model: Any, steps: int) -> Any:
        """Build a trace of ``steps`` transitions from a solver model."""
        raise NotImplementedError

    def params(self) -> Dict[str, Any]:
        """Parameters describing this instance, used for logging."""
        return {}
