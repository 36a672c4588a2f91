"""Covariance and cross-covariance estimation strategies.

Each strategy implements :meth:`CovarianceEstimator.estimate` and is
registered under a short tag (``default``, ``winsor``, ``wrap``, ``ddc``).
Unknown tags are rejected when the estimator is looked up, never replaced by a
silent default.
"""

from __future__ import annotations

import warnings
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import ClassVar

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from graphreg.engine.errors import UnsupportedOptionError
from graphreg.engine.utils import as_matrix, as_vector, check_paired, project_to_psd
from graphreg.engine.utils.logging import get_stream_logger

from .robust import (
    ddc_impute,
    estimate_loc_scale,
    huber_correlation,
    huber_correlation_matrix,
    mad,
    robust_standardize,
    wrap_data,
)

LOG = get_stream_logger(__name__)

Imputer = Callable[[NDArray[np.float64]], NDArray[np.float64]]


def _moments(
    X: NDArray[np.float64],
    Y: NDArray[np.float64] | None,
    correlation: bool,
) -> NDArray[np.float64]:
    """Empirical covariance (``ddof=1``) or correlation of ``X`` (with ``Y``)."""

    n = X.shape[0]
    denom = max(n - 1, 1)
    Xc = X - X.mean(axis=0)
    sd_x = np.sqrt(np.sum(Xc**2, axis=0) / denom)
    if Y is None:
        cov = Xc.T @ Xc / denom
        if not correlation:
            return cov
        zero = sd_x < 1e-15
        sd_safe = np.where(zero, 1.0, sd_x)
        corr = cov / np.outer(sd_safe, sd_safe)
        corr[zero, :] = 0.0
        corr[:, zero] = 0.0
        np.fill_diagonal(corr, 1.0)
        return corr
    Yc = Y - Y.mean()
    cov_xy = Xc.T @ Yc / denom
    if not correlation:
        return cov_xy
    sd_y = float(np.sqrt(np.sum(Yc**2) / denom))
    denom_xy = sd_x * sd_y
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.divide(cov_xy, denom_xy, out=np.zeros_like(cov_xy), where=denom_xy > 1e-15)


class CovarianceEstimator(ABC):
    """Common interface of the covariance strategies."""

    METHOD: ClassVar[str]

    @abstractmethod
    def estimate(
        self,
        X: NDArray[np.float64],
        Y: NDArray[np.float64] | None = None,
        correlation: bool = False,
    ) -> NDArray[np.float64]:
        """Return a ``p×p`` matrix, or a length-``p`` vector when ``Y`` is given."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DefaultCovariance(CovarianceEstimator):
    """Plain empirical covariance of the raw columns."""

    METHOD = "default"

    def estimate(self, X, Y=None, correlation=False):
        return _moments(X, Y, correlation)


class WinsorCovariance(CovarianceEstimator):
    """Covariance from pairwise bivariate-winsorized correlations.

    Columns are standardized with median/MAD, correlations are computed pair
    by pair and rescaled with the MAD dispersions. The X-only covariance is
    projected onto the PSD cone since pairwise estimates need not be jointly
    consistent.
    """

    METHOD = "winsor"

    def estimate(self, X, Y=None, correlation=False):
        dispersion_x = mad(X)
        Z, _, _ = robust_standardize(X, "median", "mad")
        if Y is None:
            cormat = huber_correlation_matrix(Z)
            if correlation:
                return cormat
            winsor_cov = dispersion_x[:, None] * cormat * dispersion_x[None, :]
            return project_to_psd(winsor_cov)
        dispersion_y = float(mad(Y))
        Zy, _, _ = robust_standardize(Y, "median", "mad")
        cormat = np.array([huber_correlation(Z[:, j], Zy) for j in range(Z.shape[1])])
        if correlation:
            return cormat
        return cormat * dispersion_x * dispersion_y


class WrapCovariance(CovarianceEstimator):
    """Ordinary moments of the wrapped data."""

    METHOD = "wrap"

    def estimate(self, X, Y=None, correlation=False):
        loc, scale = estimate_loc_scale(X)
        Xw = wrap_data(X, loc, scale)
        Yw = None
        if Y is not None:
            loc_y, scale_y = estimate_loc_scale(Y.reshape(-1, 1))
            Yw = wrap_data(Y.reshape(-1, 1), loc_y, scale_y)[:, 0]
        return _moments(Xw, Yw, correlation)


class CellwiseCovariance(CovarianceEstimator):
    """Ordinary moments after cellwise outlier imputation of ``X``."""

    METHOD = "ddc"

    def __init__(self, imputer: Imputer | None = None) -> None:
        self._imputer = imputer or ddc_impute

    def estimate(self, X, Y=None, correlation=False):
        if X.shape[1] < 2:
            warnings.warn(
                "Input data X had fewer than 2 columns. Skipping DDC step.",
                UserWarning,
                stacklevel=2,
            )
            imputed = X
        else:
            imputed = np.asarray(self._imputer(X), dtype=float)
            if imputed.shape != X.shape:
                raise ValueError(
                    f"Imputer returned shape {imputed.shape}, expected {X.shape}"
                )
        return _moments(imputed, Y, correlation)

    def __repr__(self) -> str:
        return f"CellwiseCovariance(imputer={getattr(self._imputer, '__name__', self._imputer)!r})"


def _estimator_map() -> Mapping[str, type[CovarianceEstimator]]:
    return {
        DefaultCovariance.METHOD: DefaultCovariance,
        WinsorCovariance.METHOD: WinsorCovariance,
        WrapCovariance.METHOD: WrapCovariance,
        CellwiseCovariance.METHOD: CellwiseCovariance,
    }


def available_methods() -> tuple[str, ...]:
    """Return the sorted tags of the registered covariance strategies."""
    return tuple(sorted(_estimator_map()))


def create_estimator(method: str | CovarianceEstimator, **kwargs: object) -> CovarianceEstimator:
    """Instantiate the strategy registered as ``method``.

    Raises:
      UnsupportedOptionError: If ``method`` is not a registered tag.
    """

    if isinstance(method, CovarianceEstimator):
        return method
    try:
        estimator_cls = _estimator_map()[method]
    except KeyError as exc:
        raise UnsupportedOptionError(
            f"Unsupported covariance method '{method}'. Known: {available_methods()}"
        ) from exc
    return estimator_cls(**kwargs)


def estimate_covariance(
    X: ArrayLike | pd.DataFrame,
    Y: ArrayLike | pd.Series | None = None,
    method: str | CovarianceEstimator = "default",
    correlation: bool = False,
) -> NDArray[np.float64]:
    """Estimate ``cov(X)`` or ``cov(X, Y)`` with the requested strategy.

    Args:
      X: ``n×p`` predictor matrix.
      Y: Optional length-``n`` response; when given the cross-covariance
        vector is returned.
      method: Strategy tag or an estimator instance.
      correlation: Return correlations instead of covariances.

    Returns:
      ``p×p`` matrix when ``Y`` is ``None``, otherwise a length-``p`` vector.

    Raises:
      InvalidInputError: On malformed or non-finite inputs.
      UnsupportedOptionError: If ``method`` is unknown.
    """

    estimator = create_estimator(method)
    X_arr = as_matrix(X)
    Y_arr = None
    if Y is not None:
        Y_arr = as_vector(Y)
        check_paired(X_arr, Y_arr)
    LOG.debug(
        "Estimating %s with %r on %d×%d data",
        "correlation" if correlation else "covariance",
        estimator,
        *X_arr.shape,
    )
    return estimator.estimate(X_arr, Y_arr, correlation)


__all__ = [
    "CellwiseCovariance",
    "CovarianceEstimator",
    "DefaultCovariance",
    "WinsorCovariance",
    "WrapCovariance",
    "available_methods",
    "create_estimator",
    "estimate_covariance",
]
