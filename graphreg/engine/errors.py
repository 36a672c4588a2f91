"""Exception hierarchy shared by the graphreg engine."""

from __future__ import annotations

__all__ = ["InvalidInputError", "SolverError", "UnsupportedOptionError"]


class InvalidInputError(ValueError):
    """Raised for malformed data, dimensions or fold specifications."""


class UnsupportedOptionError(ValueError):
    """Raised when a covariance method, criterion or penalty norm is unknown."""


class SolverError(RuntimeError):
    """Raised when a numerical primitive yields no usable candidate."""
