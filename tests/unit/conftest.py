"""
Pytest configuration and fixtures for chiffres tests.
"""
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


class SpySolver:
    """Records scope operations of the wrapped Z3 session."""

    def __init__(self):
        from chiffres.solver import Z3Solver
        self.inner = Z3Solver()
        self.name = self.inner.name
        self.pushes = 0
        self.pops = 0
        self.checks = 0
        self.timeouts = []
        self.max_depth = 0

    def __getattr__(self, item):
        return getattr(self.inner, item)

    def check_sat(self, timeout_ms=None):
        self.checks += 1
        self.timeouts.append(timeout_ms)
        return self.inner.check_sat(timeout_ms)

    def push(self):
        self.pushes += 1
        self.inner.push()
        self.max_depth = max(self.max_depth, self.inner.depth)

    def pop(self):
        self.pops += 1
        self.inner.pop()

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


@pytest.fixture
def spy_factory():
    """Solver factory whose created sessions are kept for inspection."""
    created = []

    def factory():
        spy = SpySolver()
        created.append(spy)
        return spy

    factory.created = created
    return factory


class SpyOptimizer:
    """Records the limits given to the wrapped Z3 optimizer."""

    def __init__(self):
        from chiffres.solver import Z3Optimizer
        self.inner = Z3Optimizer()
        self.name = self.inner.name
        self.timeouts = []

    def __getattr__(self, item):
        return getattr(self.inner, item)

    def check_sat(self, timeout_ms=None):
        self.timeouts.append(timeout_ms)
        return self.inner.check_sat(timeout_ms)


@pytest.fixture
def spy_optimizer_factory():
    created = []

    def factory():
        spy = SpyOptimizer()
        created.append(spy)
        return spy

    factory.created = created
    return factory
