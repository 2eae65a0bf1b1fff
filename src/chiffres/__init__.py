"""
Countdown ("des chiffres et des lettres") solving by bounded model checking.

The puzzle is encoded as a symbolic transition system over signed
bit-vectors and unrolled with the Z3 SMT solver.
"""

__version__ = "0.1.0"

from .errors import ConfigurationError
from .solver import (
    SolverBackend,
    OptimizerBackend,
    SolverResult,
    Z3Solver,
    Z3Optimizer,
)
from .system import TransitionSystem, ChiffresCache, ChiffresTransitionSystem
from .verification import BMC, BMCResult, BMCStatus, Trace, TraceStep

__all__ = [
    "ConfigurationError",
    "SolverBackend",
    "OptimizerBackend",
    "SolverResult",
    "Z3Solver",
    "Z3Optimizer",
    "TransitionSystem",
    "ChiffresCache",
    "ChiffresTransitionSystem",
    "BMC",
    "BMCResult",
    "BMCStatus",
    "Trace",
    "TraceStep",
]
