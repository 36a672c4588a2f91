"""Top-level package for graphreg.

Robust, graph-regularized sparse linear regression for correlated predictors
in the ``p >= n`` regime. The most common entry points are re-exported here.
"""

from __future__ import annotations

from graphreg.engine.estimates import estimate_covariance
from graphreg.engine.model import FittedModel, fit, predict
from graphreg.engine.selection import select_coefficients, select_precision, select_precision_cv

__all__ = [
    "FittedModel",
    "__version__",
    "estimate_covariance",
    "fit",
    "predict",
    "select_coefficients",
    "select_precision",
    "select_precision_cv",
]

__version__ = "0.1.0"
