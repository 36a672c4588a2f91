"""Precision-matrix primitives for the graph stage."""

from __future__ import annotations

import warnings
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import linalg
from sklearn.covariance import graphical_lasso
from sklearn.exceptions import ConvergenceWarning

from graphreg.engine.errors import SolverError, UnsupportedOptionError
from graphreg.engine.utils.arrays import is_off_diagonal_zero
from graphreg.engine.utils.logging import get_stream_logger

LOG = get_stream_logger(__name__)


@dataclass(frozen=True)
class GraphPath:
    """Candidates produced along a graph penalty path.

    ``penalties`` is the realized sequence: penalties at which the solver
    failed are absent, so callers must index candidates through it rather
    than through the sequence they requested.
    """

    penalties: NDArray[np.float64]
    precisions: tuple[NDArray[np.float64], ...]
    covariances: tuple[NDArray[np.float64], ...]

    def __len__(self) -> int:
        return len(self.precisions)


def _diagonal_solution(cov: NDArray[np.float64]) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    diag = np.diag(cov)
    inv = np.divide(1.0, diag, out=np.zeros_like(diag), where=diag > 0)
    return np.diag(diag), np.diag(inv)


def graphical_lasso_path(
    cov: NDArray[np.float64],
    penalties: Iterable[float],
    *,
    max_iter: int = 200,
    tol: float = 1e-4,
) -> GraphPath:
    """Run scikit-learn's graphical lasso once per penalty.

    A zero penalty returns the pseudo-inverse of ``cov``; a covariance with
    negligible off-diagonal has the diagonal inverse as solution for every penalty.

    Raises:
      SolverError: If no penalty produced a finite precision matrix.
    """

    cov = 0.5 * (np.asarray(cov, dtype=float) + np.asarray(cov, dtype=float).T)
    diagonal = is_off_diagonal_zero(cov)
    realized: list[float] = []
    precisions: list[NDArray[np.float64]] = []
    covariances: list[NDArray[np.float64]] = []
    for alpha in penalties:
        alpha = float(alpha)
        if diagonal:
            covariance, precision = _diagonal_solution(cov)
        elif alpha <= 0:
            covariance, precision = cov.copy(), linalg.pinvh(cov)
        else:
            try:
                with warnings.catch_warnings():
                    warnings.filterwarnings("ignore", category=ConvergenceWarning)
                    covariance, precision = graphical_lasso(
                        cov, alpha=alpha, mode="cd", max_iter=max_iter, tol=tol
                    )
            except (FloatingPointError, np.linalg.LinAlgError) as exc:
                LOG.warning("Graphical lasso failed at lambda=%.4g; dropping it: %s", alpha, exc)
                continue
        if not np.all(np.isfinite(precision)):
            LOG.warning("Graphical lasso returned a non-finite precision at lambda=%.4g", alpha)
            continue
        realized.append(alpha)
        precisions.append(np.asarray(precision, dtype=float))
        covariances.append(np.asarray(covariance, dtype=float))
    if not precisions:
        raise SolverError("Graphical lasso failed for every penalty on the path")
    return GraphPath(np.asarray(realized), tuple(precisions), tuple(covariances))


def ridge_precision_path(cov: NDArray[np.float64], penalties: Iterable[float]) -> GraphPath:
    """Closed-form ridge precision estimator along ``penalties``.

    For eigenvalues ``d`` of ``cov`` the regularized covariance has eigenvalues
    ``sqrt(lambda + d**2 / 4) + d / 2`` on the same eigenvectors; the
    precision is its (pseudo-)inverse.
    """

    cov = 0.5 * (np.asarray(cov, dtype=float) + np.asarray(cov, dtype=float).T)
    d, V = np.linalg.eigh(cov)
    realized: list[float] = []
    precisions: list[NDArray[np.float64]] = []
    covariances: list[NDArray[np.float64]] = []
    for alpha in penalties:
        alpha = max(float(alpha), 0.0)
        sigma = np.sqrt(alpha + d**2 / 4.0) + d / 2.0
        tol = max(sigma.max(initial=0.0), 1.0) * 1e-12
        inv = np.divide(1.0, sigma, out=np.zeros_like(sigma), where=sigma > tol)
        realized.append(alpha)
        covariances.append((V * sigma) @ V.T)
        precisions.append((V * inv) @ V.T)
    return GraphPath(np.asarray(realized), tuple(precisions), tuple(covariances))


def graph_path(cov: NDArray[np.float64], penalties: Iterable[float], norm: int | None = 1) -> GraphPath:
    """Dispatch to the graph primitive matching ``norm`` (0/None, 1 or 2)."""

    if norm in (None, 0):
        return graphical_lasso_path(cov, [0.0])
    if norm == 1:
        return graphical_lasso_path(cov, penalties)
    if norm == 2:
        return ridge_precision_path(cov, penalties)
    raise UnsupportedOptionError(f"Unsupported graph penalty norm {norm!r}")


__all__ = ["GraphPath", "graph_path", "graphical_lasso_path", "ridge_precision_path"]
