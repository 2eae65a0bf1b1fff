"""Bounded model checking driver and solution traces."""

from .trace import Trace, TraceStep
from .bmc import BMC, BMCResult, BMCStatus

__all__ = [
    "Trace",
    "TraceStep",
    "BMC",
    "BMCResult",
    "BMCStatus",
]
