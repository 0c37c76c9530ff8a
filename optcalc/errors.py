"""Error types raised by the solvers.

Input problems are detected before a solver starts. Everything else is raised
from inside a solve as soon as it is detected; nothing is retried.
"""

from typing import List, Optional


class SolverError(Exception):
    """Base class for every failure reported by optcalc."""


class InputError(SolverError, ValueError):
    """Malformed expression, non-numeric cell, bad dimensions or unsupported shape."""


class UnboundedError(SolverError):
    """The entering column has no positive entry: the objective grows without limit."""

    def __init__(self, message: str, entering: Optional[str] = None):
        super().__init__(message)
        self.entering = entering


class InfeasibleError(SolverError):
    """No point satisfies every constraint."""


class NonConvergenceError(SolverError):
    """An iteration cap was exceeded.

    ``steps`` holds whatever was recorded before the cap was hit. It is meant
    for display and is never a result.
    """

    def __init__(self, message: str, steps: Optional[List[object]] = None):
        super().__init__(message)
        self.steps = list(steps or [])


class StructuralError(SolverError, RuntimeError):
    """An internal invariant broke (zero pivot, missing cycle, disconnected basis)."""
