"""Synthetic regression data used by the benchmark tests.

The design mirrors the usual robust-regression benchmark: Gaussian
predictors with an AR(1) correlation structure, a handful of non-zero
coefficients and noise calibrated to a target signal-to-noise ratio.
Cellwise contamination replaces a random fraction of predictor cells with
large outliers.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from graphreg.engine.errors import InvalidInputError
from graphreg.engine.utils.rand import generator_from_seed, spawn_child_rng

__all__ = [
    "SimulatedData",
    "ar1_covariance",
    "contaminate_cells",
    "normalized_rmspe",
    "simulate_regression",
]


@dataclass(frozen=True)
class SimulatedData:
    X: NDArray[np.float64]
    Y: NDArray[np.float64]
    beta: NDArray[np.float64]
    covariance: NDArray[np.float64]
    sigma: float


def ar1_covariance(p: int, rho: float) -> NDArray[np.float64]:
    """Return the ``p×p`` matrix with entries ``rho**|i-j|``."""

    if p < 1:
        raise InvalidInputError("p must be >= 1")
    if not -1.0 < rho < 1.0:
        raise InvalidInputError("rho must lie in (-1, 1)")
    idx = np.arange(p)
    return rho ** np.abs(idx[:, None] - idx[None, :])


def simulate_regression(
    n: int,
    p: int,
    *,
    rho: float = 0.5,
    n_nonzero: int = 5,
    snr: float = 1.0,
    coefficient: float = 1.0,
    rng: int | np.random.Generator | None = None,
) -> SimulatedData:
    """Draw ``(X, Y)`` from ``Y = X beta + e`` with AR(1) predictors.

    The first ``n_nonzero`` coefficients equal ``coefficient`` and the noise
    variance is ``beta' Sigma beta / snr``.
    """

    if n < 1:
        raise InvalidInputError("n must be >= 1")
    if not 0 <= n_nonzero <= p:
        raise InvalidInputError("n_nonzero must lie in [0, p]")
    if snr <= 0:
        raise InvalidInputError("snr must be positive")
    generator = generator_from_seed(rng)
    noise_rng = spawn_child_rng(generator)
    covariance = ar1_covariance(p, rho)
    X = generator.multivariate_normal(np.zeros(p), covariance, size=n, method="cholesky")
    beta = np.zeros(p)
    beta[:n_nonzero] = coefficient
    signal_var = float(beta @ covariance @ beta)
    sigma = float(np.sqrt(signal_var / snr)) if signal_var > 0 else 1.0
    Y = X @ beta + sigma * noise_rng.standard_normal(n)
    return SimulatedData(X=X, Y=Y, beta=beta, covariance=covariance, sigma=sigma)


def contaminate_cells(
    X: ArrayLike,
    fraction: float = 0.1,
    magnitude: float = 10.0,
    rng: int | np.random.Generator | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.bool_]]:
    """Replace a random ``fraction`` of cells with ``±magnitude`` outliers.

    Returns:
      The contaminated copy of ``X`` and the boolean mask of replaced cells.
    """

    if not 0.0 <= fraction < 1.0:
        raise InvalidInputError("fraction must lie in [0, 1)")
    generator = generator_from_seed(rng)
    contaminated = np.array(X, dtype=float)
    mask = generator.random(contaminated.shape) < fraction
    signs = generator.choice([-1.0, 1.0], size=contaminated.shape)
    contaminated[mask] = magnitude * signs[mask]
    return contaminated, mask


def normalized_rmspe(y: ArrayLike, y_hat: ArrayLike, sigma: float) -> float:
    """RMSPE divided by the noise standard deviation (1 is the oracle level)."""

    y = np.asarray(y, dtype=float)
    y_hat = np.asarray(y_hat, dtype=float)
    return float(np.sqrt(np.mean((y - y_hat) ** 2)) / sigma)
