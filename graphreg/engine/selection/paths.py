"""Penalty sequences for the graph and coefficient stages."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from graphreg.engine.errors import InvalidInputError, UnsupportedOptionError
from graphreg.engine.utils.arrays import is_off_diagonal_zero
from graphreg.engine.utils.logging import get_stream_logger

LOG = get_stream_logger(__name__)

# glmnet derives the ridge lambda_max as if the l1 share were this small.
RIDGE_ALPHA_FLOOR = 1e-3
SUPPORTED_NORMS = (1, 2)

__all__ = [
    "RIDGE_ALPHA_FLOOR",
    "SUPPORTED_NORMS",
    "build_coefficient_path",
    "build_glasso_path",
    "glasso_lambda_max",
    "graph_penalty_path",
    "graph_ridge_lambda_max",
    "is_off_diagonal_zero",
    "lasso_lambda_max",
    "penalty_path",
    "ridge_lambda_max",
]


def penalty_path(lambda_max: float, nlambda: int, lambda_min_ratio: float) -> NDArray[np.float64]:
    """Return ``nlambda`` log-spaced penalties from ``lambda_max`` downwards.

    The last value equals ``lambda_min_ratio * lambda_max``. A zero
    ``lambda_max`` collapses the path to ``[0.0]``.

    Raises:
      InvalidInputError: If ``nlambda < 1``, ``lambda_max`` is negative or not
        finite, or ``lambda_min_ratio`` lies outside ``(0, 1)``.
    """

    if int(nlambda) != nlambda or nlambda < 1:
        raise InvalidInputError("nlambda must be a positive integer")
    if not np.isfinite(lambda_max) or lambda_max < 0:
        raise InvalidInputError("lambda_max must be a finite non-negative number")
    if not 0.0 < lambda_min_ratio < 1.0:
        raise InvalidInputError("lambda_min_ratio must lie in (0, 1)")
    if lambda_max == 0.0:
        LOG.warning("lambda_max is zero; using the unpenalized path [0]")
        return np.zeros(1)
    lambda_min = lambda_min_ratio * lambda_max
    path = np.exp(np.linspace(np.log(lambda_max), np.log(lambda_min), int(nlambda)))
    # Pin the end points so that path[0] * ratio == path[-1] holds exactly.
    path[0] = lambda_max
    path[-1] = lambda_min if nlambda > 1 else lambda_max
    return path


def glasso_lambda_max(cov: NDArray[np.float64]) -> float:
    """Largest absolute off-diagonal covariance, the smallest fully sparse penalty."""

    cov = np.asarray(cov, dtype=float)
    if cov.shape[0] < 2 or is_off_diagonal_zero(cov):
        return 0.0
    off = cov[~np.eye(cov.shape[0], dtype=bool)]
    return float(np.max(np.abs(off)))


def graph_ridge_lambda_max(cov: NDArray[np.float64]) -> float:
    """Squared mean variance; the ridge precision penalty acts on that scale."""

    cov = np.asarray(cov, dtype=float)
    if is_off_diagonal_zero(cov):
        return 0.0
    return float((np.trace(cov) / cov.shape[0]) ** 2)


def lasso_lambda_max(cov_xy: NDArray[np.float64]) -> float:
    """Largest absolute cross-covariance, the smallest penalty zeroing every coefficient.

    The regression primitive minimises ``b'Σb/2 - b'c + λ|b|_1``, so the bound is
    exact in whatever units ``cov_xy`` carries; the dispersion of the data
    enters through the standardization that produced it.
    """

    cov_xy = np.asarray(cov_xy, dtype=float).ravel()
    return float(np.max(np.abs(cov_xy))) if cov_xy.size else 0.0


def ridge_lambda_max(cov_xy: NDArray[np.float64]) -> float:
    return lasso_lambda_max(cov_xy) / RIDGE_ALPHA_FLOOR


def _check_norm(norm: int | None) -> int:
    if norm is None or norm == 0:
        return 0
    if norm not in SUPPORTED_NORMS:
        raise UnsupportedOptionError(
            f"Unsupported penalty norm {norm!r}; expected one of {SUPPORTED_NORMS} or None"
        )
    return int(norm)


def build_glasso_path(
    cov: NDArray[np.float64],
    nlambda: int,
    lambda_min_ratio: float = 0.1,
) -> NDArray[np.float64]:
    """Graphical-lasso penalty path of ``cov``.

    A covariance whose off-diagonal is already zero yields ``[0.0]``.
    """

    return penalty_path(glasso_lambda_max(cov), nlambda, lambda_min_ratio)


def graph_penalty_path(
    cov: NDArray[np.float64],
    norm: int | None = 1,
    nlambda: int = 10,
    lambda_min_ratio: float = 0.1,
) -> NDArray[np.float64]:
    """Penalty path of the graph stage for an l1 (graphical lasso) or l2 (ridge) penalty.

    ``norm`` of ``None`` or ``0`` means no penalty and yields ``[0.0]``.

    Raises:
      UnsupportedOptionError: For any other norm.
    """

    norm = _check_norm(norm)
    if norm == 0:
        return np.zeros(1)
    if norm == 1:
        return build_glasso_path(cov, nlambda, lambda_min_ratio)
    return penalty_path(graph_ridge_lambda_max(cov), nlambda, lambda_min_ratio)


def build_coefficient_path(
    cov_xy: NDArray[np.float64],
    norm: int | None = 1,
    nlambda: int = 10,
    lambda_min_ratio: float = 0.01,
) -> NDArray[np.float64]:
    """Penalty path of the coefficient stage.

    The lasso path starts at ``max|cov_xy|``, the ridge path at that
    value divided by :data:`RIDGE_ALPHA_FLOOR`. ``norm`` of ``None`` or ``0``
    yields ``[0.0]``.

    Raises:
      UnsupportedOptionError: For norms other than 1 or 2.
    """

    norm = _check_norm(norm)
    if norm == 0:
        return np.zeros(1)
    if norm == 1:
        return penalty_path(lasso_lambda_max(cov_xy), nlambda, lambda_min_ratio)
    return penalty_path(ridge_lambda_max(cov_xy), nlambda, lambda_min_ratio)
