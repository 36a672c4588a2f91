"""Graph-stage selection: score precision candidates and pick the graph penalty."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from graphreg.engine.errors import UnsupportedOptionError
from graphreg.engine.estimates import CovarianceEstimator, create_estimator, robust_standardize
from graphreg.engine.estimates.robust import CenterFn, ScaleFn
from graphreg.engine.solvers import GraphPath, graph_path
from graphreg.engine.utils import as_matrix
from graphreg.engine.utils.logging import get_stream_logger

from .folds import resolve_folds
from .paths import graph_penalty_path

LOG = get_stream_logger(__name__)

CRITERIA = ("loglik", "bic", "ebic")
EBIC_GAMMA = 0.5
NONZERO_TOL = 1e-8


@dataclass(frozen=True)
class PrecisionSelection:
    """Result of a graph penalty selection.

    Attributes:
      precision: Precision matrix at ``best_penalty``.
      covariance: Regularized covariance implied by ``precision``.
      best_penalty: Selected graph penalty, an element of ``path``.
      path: Realized penalty sequence (decreasing).
      scores: Criterion value per entry of ``path``.
      fold_scores: Per-fold scores (penalty × fold) for the cross-validated
        variant, ``None`` otherwise.
    """

    precision: NDArray[np.float64]
    covariance: NDArray[np.float64]
    best_penalty: float
    path: NDArray[np.float64]
    scores: NDArray[np.float64]
    fold_scores: pd.DataFrame | None = None


def criterion_score(
    precision: NDArray[np.float64],
    cov: NDArray[np.float64],
    n: int,
    criterion: str = "ebic",
) -> float:
    """Score a precision candidate against a covariance estimate.

    ``loglik`` is the negative Gaussian log-likelihood up to constants,
    ``-log|Θ| + tr(ΘΣ)``. ``bic`` adds ``log(n)/n`` per non-zero entry of the
    lower triangle including the diagonal. ``ebic`` counts only the
    off-diagonal edges ``E`` and adds ``log(n)/n·E + 4·γ·log(p)/n·E`` with
    ``γ = 0.5``.

    Raises:
      UnsupportedOptionError: If ``criterion`` is not one of :data:`CRITERIA`.
    """

    if criterion not in CRITERIA:
        raise UnsupportedOptionError(
            f"unsupported criterion '{criterion}'; expected one of {CRITERIA}"
        )
    precision = np.asarray(precision, dtype=float)
    cov = np.asarray(cov, dtype=float)
    _, logdet = np.linalg.slogdet(precision)
    neg_loglik = float(-logdet + np.trace(precision @ cov))
    if criterion == "loglik":
        return neg_loglik
    nonzero = np.abs(precision) > NONZERO_TOL
    if criterion == "bic":
        entries = int(np.count_nonzero(np.tril(nonzero)))
        return neg_loglik + (np.log(n) / n) * entries
    p = precision.shape[0]
    edges = int(np.count_nonzero(np.tril(nonzero, k=-1)))
    return neg_loglik + (np.log(n) / n) * edges + edges * EBIC_GAMMA * 4.0 * np.log(p) / n


def _standardize(
    X: NDArray[np.float64], standardize: bool, center: str | CenterFn, scale: str | ScaleFn
) -> NDArray[np.float64]:
    if not standardize:
        return X
    return robust_standardize(X, center, scale)[0]


def select_precision(
    X: ArrayLike | pd.DataFrame,
    method: str | CovarianceEstimator = "default",
    criterion: str = "ebic",
    *,
    X_test: ArrayLike | pd.DataFrame | None = None,
    standardize: bool = True,
    center: str | CenterFn = "mean",
    scale: str | ScaleFn = "std",
    norm: int | None = 1,
    nlambda: int = 10,
    lambda_min_ratio: float = 0.1,
    lambdas: Sequence[float] | None = None,
) -> PrecisionSelection:
    """Select the graph penalty minimising an information criterion.

    Args:
      X: ``n×p`` training data.
      method: Covariance strategy tag or instance.
      criterion: ``loglik``, ``bic`` or ``ebic``.
      X_test: Optional held-out data; when given, candidates are scored
        against its covariance (same method and standardization) instead of
        the training covariance.
      standardize: Center/scale the columns before estimating covariances.
      center: Center function name or callable.
      scale: Scale function name or callable.
      norm: Graph penalty norm (1 graphical lasso, 2 ridge, ``None`` none).
      nlambda: Path length when ``lambdas`` is not supplied.
      lambda_min_ratio: Ratio between the last and first penalty.
      lambdas: Explicit decreasing penalty sequence.

    Returns:
      :class:`PrecisionSelection` for the first (sparsest) minimiser.
    """

    if criterion not in CRITERIA:
        raise UnsupportedOptionError(
            f"unsupported criterion '{criterion}'; expected one of {CRITERIA}"
        )
    estimator = create_estimator(method)
    X_arr = _standardize(as_matrix(X), standardize, center, scale)
    cov = estimator.estimate(X_arr)
    eval_cov = cov
    if X_test is not None:
        X_test_arr = _standardize(as_matrix(X_test, name="X_test"), standardize, center, scale)
        eval_cov = estimator.estimate(X_test_arr)

    if lambdas is None:
        requested = graph_penalty_path(cov, norm, nlambda, lambda_min_ratio)
    else:
        requested = np.sort(np.asarray(lambdas, dtype=float))[::-1]
    candidates = graph_path(cov, requested, norm)
    n = X_arr.shape[0]
    scores = np.array([criterion_score(icov, eval_cov, n, criterion) for icov in candidates.precisions])
    scores[np.isnan(scores)] = np.inf
    best = int(np.argmin(scores))
    LOG.debug("Graph criterion %s scores: %s", criterion, np.round(scores, 4))
    LOG.info(
        "Selected graph penalty %.4g (%d of %d candidates, %s=%.4f)",
        candidates.penalties[best],
        best + 1,
        len(candidates),
        criterion,
        scores[best],
    )
    return PrecisionSelection(
        precision=candidates.precisions[best],
        covariance=candidates.covariances[best],
        best_penalty=float(candidates.penalties[best]),
        path=candidates.penalties,
        scores=scores,
    )


def _align_scores(requested: NDArray[np.float64], selection: PrecisionSelection) -> NDArray[np.float64]:
    # Penalties dropped by the solver in this fold score +inf.
    aligned = np.full(requested.size, np.inf)
    for penalty, score in zip(selection.path, selection.scores, strict=True):
        aligned[np.isclose(requested, penalty, rtol=1e-12, atol=0.0)] = score
    return aligned


def select_precision_cv(
    X: ArrayLike | pd.DataFrame,
    K: int = 5,
    method: str | CovarianceEstimator = "default",
    criterion: str = "loglik",
    *,
    folds: Sequence[ArrayLike] | None = None,
    rng: int | np.random.Generator | None = None,
    standardize: bool = True,
    center: str | CenterFn = "mean",
    scale: str | ScaleFn = "std",
    norm: int | None = 1,
    nlambda: int = 10,
    lambda_min_ratio: float = 0.1,
    lambdas: Sequence[float] | None = None,
) -> PrecisionSelection:
    """Select the graph penalty by K-fold cross-validation.

    One path is built from the full-data covariance. In every fold the
    candidates fitted on the held-in rows are scored against the covariance
    of the held-out rows; the per-penalty scores are averaged over folds and
    the graph is refitted on all rows at the winning penalty.
    """

    X_arr = _standardize(as_matrix(X), standardize, center, scale)
    estimator = create_estimator(method)
    fold_sets = resolve_folds(X_arr.shape[0], K, folds, rng)
    cov = estimator.estimate(X_arr)
    if lambdas is None:
        requested = graph_penalty_path(cov, norm, nlambda, lambda_min_ratio)
    else:
        requested = np.sort(np.asarray(lambdas, dtype=float))[::-1]

    columns = []
    for i, held_out in enumerate(fold_sets):
        mask = np.ones(X_arr.shape[0], dtype=bool)
        mask[held_out] = False
        LOG.debug("Graph CV fold %d/%d: %d held-in rows", i + 1, len(fold_sets), int(mask.sum()))
        fold = select_precision(
            X_arr[mask],
            estimator,
            criterion,
            X_test=X_arr[~mask],
            standardize=False,
            norm=norm,
            lambdas=requested,
        )
        columns.append(_align_scores(requested, fold))

    fold_scores = pd.DataFrame(
        np.column_stack(columns),
        index=pd.Index(requested, name="lambda1"),
        columns=[f"fold_{i + 1}" for i in range(len(fold_sets))],
    )
    mean_scores = fold_scores.mean(axis=1).to_numpy()
    best = int(np.argmin(mean_scores))
    refit: GraphPath = graph_path(cov, requested[best : best + 1], norm)
    LOG.info("Cross-validated graph penalty %.4g", requested[best])
    return PrecisionSelection(
        precision=refit.precisions[0],
        covariance=refit.covariances[0],
        best_penalty=float(requested[best]),
        path=requested,
        scores=mean_scores,
        fold_scores=fold_scores,
    )


__all__ = [
    "CRITERIA",
    "EBIC_GAMMA",
    "PrecisionSelection",
    "criterion_score",
    "select_precision",
    "select_precision_cv",
]
