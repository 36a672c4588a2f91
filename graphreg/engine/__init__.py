"""Estimation engine namespace for graphreg."""

from __future__ import annotations

from . import estimates, model, selection, simulate, solvers

__all__ = ["estimates", "model", "selection", "simulate", "solvers"]
