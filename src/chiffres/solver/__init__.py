"""Solver abstraction layer used by the BMC driver."""

from .base import SolverBackend, OptimizerBackend
from .result import SolverResult
from .z3_solver import Z3Solver, Z3Optimizer

__all__ = [
    "SolverBackend",
    "OptimizerBackend",
    "SolverResult",
    "Z3Solver",
    "Z3Optimizer",
]
