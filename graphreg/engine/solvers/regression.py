"""Penalized regression primitives working on second moments.

Both solvers minimise ``b'Σb/2 - b'c + penalty(b)`` for a covariance ``Σ``
and cross-covariance ``c``; they never see the raw data.
"""

from __future__ import annotations

import warnings
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import linalg
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import lars_path_gram

from graphreg.engine.errors import UnsupportedOptionError

__all__ = ["coefficient_path", "lasso_path", "ridge_path"]


def lasso_path(
    cov_xy: NDArray[np.float64],
    cov: NDArray[np.float64],
    penalties: Sequence[float],
    *,
    max_iter: int = 500,
) -> NDArray[np.float64]:
    """Lasso coefficients at ``penalties`` from the exact LARS-lasso path.

    The LARS path is piecewise linear in the penalty, so the coefficients at
    the requested values are obtained by linear interpolation between knots.

    Returns:
      Array of shape ``(len(penalties), p)``.
    """

    penalties = np.asarray(penalties, dtype=float)
    cov_xy = np.asarray(cov_xy, dtype=float).ravel()
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=ConvergenceWarning)
        alphas, _, coefs = lars_path_gram(
            Xy=cov_xy.copy(),
            Gram=np.asarray(cov, dtype=float).copy(),
            n_samples=1,
            alpha_min=float(max(penalties.min(), 0.0)),
            method="lasso",
            max_iter=max_iter,
        )
    coefs = np.atleast_2d(coefs)
    if alphas.size == 1:
        return np.tile(coefs[:, 0], (penalties.size, 1))
    knots = alphas[::-1]
    return np.column_stack([np.interp(penalties, knots, row[::-1]) for row in coefs])


def ridge_path(
    cov_xy: NDArray[np.float64],
    cov: NDArray[np.float64],
    penalties: Sequence[float],
) -> NDArray[np.float64]:
    """Ridge coefficients ``(Σ + λI)^+ c`` for every ``λ`` via one eigendecomposition."""

    cov_xy = np.asarray(cov_xy, dtype=float).ravel()
    cov = np.asarray(cov, dtype=float)
    d, V = np.linalg.eigh(0.5 * (cov + cov.T))
    projected = V.T @ cov_xy
    rows = []
    for alpha in np.asarray(penalties, dtype=float):
        shifted = d + alpha
        tol = max(np.abs(shifted).max(initial=0.0), 1.0) * 1e-12
        inv = np.divide(1.0, shifted, out=np.zeros_like(shifted), where=shifted > tol)
        rows.append(V @ (inv * projected))
    return np.vstack(rows)


def coefficient_path(
    cov_xy: NDArray[np.float64],
    cov: NDArray[np.float64],
    penalties: Sequence[float],
    norm: int | None = 1,
) -> NDArray[np.float64]:
    """Coefficient candidates, one row per penalty.

    ``norm`` of ``None``/``0`` returns the minimum-norm least-squares solution
    for every entry of ``penalties``.

    Raises:
      UnsupportedOptionError: For norms other than ``None``, 0, 1 or 2.
    """

    penalties = np.asarray(penalties, dtype=float)
    if norm in (None, 0):
        beta = linalg.pinvh(np.asarray(cov, dtype=float)) @ np.asarray(cov_xy, dtype=float).ravel()
        return np.tile(beta, (penalties.size, 1))
    if norm == 1:
        return lasso_path(cov_xy, cov, penalties)
    if norm == 2:
        return ridge_path(cov_xy, cov, penalties)
    raise UnsupportedOptionError(f"Unsupported coefficient penalty norm {norm!r}")
