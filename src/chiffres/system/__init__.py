"""
Transition systems encoded as Z3 formulas.
"""

from .base import TransitionSystem
from .cache import ChiffresCache
from .chiffres import ChiffresTransitionSystem

__all__ = [
    "TransitionSystem",
    "ChiffresCache",
    "ChiffresTransitionSystem",
]
