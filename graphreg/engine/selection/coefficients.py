"""Coefficient-stage selection at a fixed graph penalty."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray
from scipy import linalg

from graphreg.engine.estimates import CovarianceEstimator, create_estimator, resolve_center
from graphreg.engine.estimates.robust import CenterFn
from graphreg.engine.solvers import coefficient_path, graph_path
from graphreg.engine.utils import as_matrix, as_vector, check_paired
from graphreg.engine.utils.logging import get_stream_logger

from .paths import build_coefficient_path

LOG = get_stream_logger(__name__)

__all__ = ["CoefficientSelection", "graph_covariance", "rmspe", "select_coefficients"]


@dataclass(frozen=True)
class CoefficientSelection:
    """Result of a coefficient penalty selection on one train/validation split."""

    coefficients: NDArray[np.float64]
    best_penalty: float
    path: NDArray[np.float64]
    errors: NDArray[np.float64]
    candidates: NDArray[np.float64]


def rmspe(y: ArrayLike, y_hat: ArrayLike) -> float | NDArray[np.float64]:
    """Root-mean-squared prediction error.

    ``y_hat`` may hold one prediction vector per column, in which case one
    error per column is returned.
    """

    y = np.asarray(y, dtype=float)
    y_hat = np.asarray(y_hat, dtype=float)
    if y_hat.ndim == 2:
        return np.sqrt(np.mean((y[:, None] - y_hat) ** 2, axis=0))
    return float(np.sqrt(np.mean((y - y_hat) ** 2)))


def graph_covariance(
    X: NDArray[np.float64],
    graph: float | NDArray[np.float64],
    estimator: CovarianceEstimator,
    norm: int | None = 1,
) -> NDArray[np.float64]:
    """Covariance implied by the graph stage.

    ``graph`` is either a precision matrix, which is inverted, or a graph
    penalty at which the graph primitive is run on ``estimator``'s covariance
    of ``X``.
    """

    if np.ndim(graph) == 2:
        return linalg.pinvh(np.asarray(graph, dtype=float))
    cov = estimator.estimate(X)
    return graph_path(cov, [float(graph)], norm).covariances[0]


def select_coefficients(
    X_train: ArrayLike | pd.DataFrame,
    Y_train: ArrayLike | pd.Series,
    X_val: ArrayLike | pd.DataFrame,
    Y_val: ArrayLike | pd.Series,
    graph: float | NDArray[np.float64],
    *,
    cov_method: str | CovarianceEstimator = "default",
    graph_cov_method: str | CovarianceEstimator | None = None,
    graph_norm: int | None = 1,
    norm: int | None = 1,
    nlambda: int = 10,
    lambda_min_ratio: float = 0.01,
    lambdas: Sequence[float] | None = None,
    center: str | CenterFn = "mean",
) -> CoefficientSelection:
    """Fit coefficient candidates on the training split and score them on validation.

    The regression primitive works on the covariance implied by ``graph`` and
    the cross-covariance of the training split. Validation predictions are
    ``center(Y_train) + (X_val - center(X_train)) @ b`` and the error is their
    RMSPE. The first (largest-penalty) minimiser wins ties.

    ``graph_cov_method`` picks the covariance strategy feeding the graph
    primitive; it defaults to ``cov_method``.
    """

    X_tr = as_matrix(X_train, name="X_train")
    Y_tr = as_vector(Y_train, name="Y_train")
    X_va = as_matrix(X_val, name="X_val")
    Y_va = as_vector(Y_val, name="Y_val")
    check_paired(X_tr, Y_tr)
    check_paired(X_va, Y_va)
    estimator = create_estimator(cov_method)
    center_fn = resolve_center(center)

    graph_estimator = estimator if graph_cov_method is None else create_estimator(graph_cov_method)
    cov = graph_covariance(X_tr, graph, graph_estimator, graph_norm)
    cov_xy = estimator.estimate(X_tr, Y_tr)
    if lambdas is None:
        path = build_coefficient_path(cov_xy, norm, nlambda, lambda_min_ratio)
    else:
        path = np.sort(np.asarray(lambdas, dtype=float))[::-1]
    candidates = coefficient_path(cov_xy, cov, path, norm)

    x_center = np.asarray(center_fn(X_tr, axis=0), dtype=float)
    y_center = float(center_fn(Y_tr, axis=0))
    predictions = y_center + (X_va - x_center) @ candidates.T
    errors = np.atleast_1d(rmspe(Y_va, predictions))
    best = int(np.argmin(errors))
    LOG.debug("Coefficient RMSPE along path: %s", np.round(errors, 4))
    return CoefficientSelection(
        coefficients=candidates[best],
        best_penalty=float(path[best]),
        path=path,
        errors=errors,
        candidates=candidates,
    )
