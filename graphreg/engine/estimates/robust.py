"""Robust univariate and bivariate building blocks.

The helpers here are the default implementations of the collaborators the
covariance strategies rely on: robust center/scale functions, the Huber-type
bivariate winsorization correlation, the wrapping transform and a detector
of deviating data cells (DDC) that imputes flagged cells from correlated
columns.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from graphreg.engine.errors import UnsupportedOptionError
from graphreg.engine.utils.logging import get_stream_logger

LOG = get_stream_logger(__name__)

# Tuning constants of the wrapping function (b, c) and of its tanh segment.
WRAP_B = 1.5
WRAP_C = 4.0
WRAP_Q1 = 1.540793
WRAP_Q2 = 0.8622731

CenterFn = Callable[..., NDArray[np.float64]]
ScaleFn = Callable[..., NDArray[np.float64]]


def mad(x: NDArray[np.float64], axis: int = 0) -> NDArray[np.float64]:
    """Median absolute deviation scaled to be consistent at the normal."""

    return np.asarray(stats.median_abs_deviation(x, axis=axis, scale="normal"), dtype=float)


def sample_std(x: NDArray[np.float64], axis: int = 0) -> NDArray[np.float64]:
    x = np.asarray(x, dtype=float)
    if x.shape[axis] < 2:
        return np.zeros(np.delete(x.shape, axis), dtype=float)
    return np.std(x, axis=axis, ddof=1)


CENTER_FUNCTIONS: dict[str, CenterFn] = {"mean": np.mean, "median": np.median}
SCALE_FUNCTIONS: dict[str, ScaleFn] = {"std": sample_std, "mad": mad}


def resolve_center(center: str | CenterFn) -> CenterFn:
    """Return the center function registered as ``center`` (callables pass through)."""

    if callable(center):
        return center
    try:
        return CENTER_FUNCTIONS[center]
    except KeyError as exc:
        raise UnsupportedOptionError(
            f"Unsupported center function '{center}'. Known: {sorted(CENTER_FUNCTIONS)}"
        ) from exc


def resolve_scale(scale: str | ScaleFn) -> ScaleFn:
    """Return the scale function registered as ``scale`` (callables pass through)."""

    if callable(scale):
        return scale
    try:
        return SCALE_FUNCTIONS[scale]
    except KeyError as exc:
        raise UnsupportedOptionError(
            f"Unsupported scale function '{scale}'. Known: {sorted(SCALE_FUNCTIONS)}"
        ) from exc


def robust_standardize(
    X: NDArray[np.float64],
    center: str | CenterFn = "median",
    scale: str | ScaleFn = "mad",
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Center and scale the columns of ``X``.

    Returns:
      Tuple ``(standardized, centers, scales)``. Zero or non-finite scales are
      replaced by one so that constant columns are only centered.
    """

    X = np.asarray(X, dtype=float)
    centers = np.asarray(resolve_center(center)(X, axis=0), dtype=float)
    scales = np.array(resolve_scale(scale)(X, axis=0), dtype=float, ndmin=1)
    scales[~np.isfinite(scales) | (scales <= 0)] = 1.0
    return (X - centers) / scales, centers, scales


def _pearson(x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
    xc = x - x.mean()
    yc = y - y.mean()
    denom = np.sqrt(np.dot(xc, xc) * np.dot(yc, yc))
    if denom <= 1e-15:
        return 0.0
    return float(np.dot(xc, yc) / denom)


def _adjusted_winsorize(
    x: NDArray[np.float64], y: NDArray[np.float64], c: float
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    # Points in the two minor quadrants are clipped with a smaller bound.
    same = np.sign(x) * np.sign(y) >= 0
    major = same if same.sum() >= (~same).sum() else ~same
    n1 = int(major.sum())
    n2 = x.size - n1
    c2 = c * np.sqrt(n2 / n1) if n1 > 0 else c
    limits = np.where(major, c, c2)
    return np.clip(x, -limits, limits), np.clip(y, -limits, limits)


def huber_correlation(
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    *,
    c: float = 2.0,
    prob: float = 0.95,
) -> float:
    """Bivariate-winsorization correlation of two standardized vectors.

    An initial correlation is computed on adjusted univariately winsorized
    data; observations outside the ``prob`` tolerance ellipse implied by that
    correlation are then shrunk onto its boundary and the Pearson correlation
    of the shrunk data is returned.
    """

    x = np.asarray(x, dtype=float).ravel()
    y = np.asarray(y, dtype=float).ravel()
    if x.size != y.size:
        raise ValueError("x and y must have the same length")
    if x.size < 2:
        return 0.0
    r0 = float(np.clip(_pearson(*_adjusted_winsorize(x, y, c)), -0.99, 0.99))
    d2 = (x**2 - 2.0 * r0 * x * y + y**2) / (1.0 - r0**2)
    cutoff = stats.chi2.ppf(prob, df=2)
    weights = np.minimum(1.0, np.sqrt(cutoff / np.maximum(d2, 1e-12)))
    return _pearson(weights * x, weights * y)


def huber_correlation_matrix(Z: NDArray[np.float64]) -> NDArray[np.float64]:
    """Pairwise :func:`huber_correlation` for the columns of ``Z``."""

    p = Z.shape[1]
    cormat = np.eye(p)
    for j in range(p):
        for k in range(j + 1, p):
            cormat[j, k] = cormat[k, j] = huber_correlation(Z[:, j], Z[:, k])
    return cormat


def estimate_loc_scale(
    X: NDArray[np.float64], *, k: float = 1.5
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Per-column one-step Huber location and MAD scale."""

    X = np.asarray(X, dtype=float)
    med = np.median(X, axis=0)
    scale = mad(X)
    scale[~np.isfinite(scale) | (scale <= 0)] = 1.0
    u = (X - med) / scale
    inside = (np.abs(u) <= k).sum(axis=0)
    step = np.clip(u, -k, k).sum(axis=0) / np.maximum(inside, 1)
    return med + scale * step, scale


def wrap_data(
    X: NDArray[np.float64],
    loc: NDArray[np.float64],
    scale: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Apply the bounded wrapping transform column-wise.

    Standardized values inside ``[-b, b]`` are kept, values in ``(b, c]`` are
    folded back through a tanh segment and values beyond ``c`` are mapped to
    the location.
    """

    z = (np.asarray(X, dtype=float) - loc) / scale
    az = np.abs(z)
    folded = WRAP_Q1 * np.tanh(WRAP_Q2 * (WRAP_C - az)) * np.sign(z)
    psi = np.where(az <= WRAP_B, z, np.where(az <= WRAP_C, folded, 0.0))
    return loc + scale * psi


@dataclass(frozen=True)
class CellwiseResult:
    """Outcome of :func:`detect_deviating_cells`.

    Attributes:
      imputed: Copy of the input with flagged cells replaced by predictions.
      flagged: Boolean mask of the deviating cells.
      predictions: Robust cell predictions on the original scale.
    """

    imputed: NDArray[np.float64]
    flagged: NDArray[np.bool_]
    predictions: NDArray[np.float64]


def _weighted_median(values: NDArray[np.float64], weights: NDArray[np.float64]) -> float:
    mask = np.isfinite(values)
    if not mask.any():
        return 0.0
    vals = values[mask]
    wts = weights[mask]
    order = np.argsort(vals)
    cumulative = np.cumsum(wts[order])
    idx = int(np.searchsorted(cumulative, 0.5 * cumulative[-1]))
    return float(vals[order][idx])


def detect_deviating_cells(
    X: NDArray[np.float64],
    *,
    quantile: float = 0.99,
    corr_threshold: float = 0.5,
) -> CellwiseResult:
    """Flag and impute cellwise outliers.

    Cells are flagged either because their robust z-score is extreme or
    because they deviate from the prediction built out of the correlated
    columns (weighted median of robust slope predictions). Both cutoffs are
    the ``quantile`` of a chi-square distribution with one degree of freedom.
    """

    X = np.asarray(X, dtype=float)
    n, p = X.shape
    Z, loc, scale = robust_standardize(X, "median", "mad")
    cutoff = float(np.sqrt(stats.chi2.ppf(quantile, df=1)))
    univariate = np.abs(Z) > cutoff
    U = np.where(univariate, np.nan, Z)
    finite = np.isfinite(U)

    predicted = np.zeros_like(Z)
    for j in range(p):
        estimates: list[NDArray[np.float64]] = []
        weights: list[float] = []
        for k in range(p):
            if k == j:
                continue
            both = finite[:, j] & finite[:, k]
            if both.sum() < 3:
                continue
            r = huber_correlation(U[both, j], U[both, k])
            if abs(r) < corr_threshold:
                continue
            xk = U[both, k]
            usable = np.abs(xk) > 1e-8
            if not usable.any():
                continue
            slope = float(np.median(U[both, j][usable] / xk[usable]))
            estimates.append(slope * U[:, k])
            weights.append(abs(r))
        if not estimates:
            continue
        stacked = np.column_stack(estimates)
        w = np.asarray(weights)
        predicted[:, j] = [_weighted_median(stacked[i], w) for i in range(n)]

    residuals = Z - predicted
    res_scale = mad(residuals)
    res_scale[~np.isfinite(res_scale) | (res_scale <= 0)] = 1.0
    flagged = univariate | (np.abs(residuals / res_scale) > cutoff)
    predictions = loc + scale * predicted
    imputed = np.where(flagged, predictions, X)
    LOG.debug("Flagged %d of %d cells as deviating", int(flagged.sum()), flagged.size)
    return CellwiseResult(imputed=imputed, flagged=flagged, predictions=predictions)


def ddc_impute(X: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return ``X`` with deviating cells imputed (see :func:`detect_deviating_cells`)."""

    return detect_deviating_cells(X).imputed


__all__ = [
    "CENTER_FUNCTIONS",
    "CellwiseResult",
    "SCALE_FUNCTIONS",
    "ddc_impute",
    "detect_deviating_cells",
    "estimate_loc_scale",
    "huber_correlation",
    "huber_correlation_matrix",
    "mad",
    "resolve_center",
    "resolve_scale",
    "robust_standardize",
    "sample_std",
    "wrap_data",
]
