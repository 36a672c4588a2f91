"""Tests for the simulation helpers."""

from __future__ import annotations

import numpy as np
import pytest

from graphreg.engine.errors import InvalidInputError
from graphreg.engine.simulate import (
    ar1_covariance,
    contaminate_cells,
    normalized_rmspe,
    simulate_regression,
)


def test_ar1_covariance_entries() -> None:
    cov = ar1_covariance(3, 0.5)
    assert np.allclose(cov, [[1.0, 0.5, 0.25], [0.5, 1.0, 0.5], [0.25, 0.5, 1.0]])
    with pytest.raises(InvalidInputError):
        ar1_covariance(3, 1.0)


def test_simulate_regression_calibrates_noise() -> None:
    sim = simulate_regression(50, 10, rho=0.5, n_nonzero=5, snr=1.0, rng=7)
    assert sim.X.shape == (50, 10)
    assert sim.Y.shape == (50,)
    assert np.count_nonzero(sim.beta) == 5
    assert sim.sigma == pytest.approx(np.sqrt(sim.beta @ sim.covariance @ sim.beta))


def test_simulate_regression_is_reproducible() -> None:
    a = simulate_regression(20, 4, n_nonzero=2, rng=3)
    b = simulate_regression(20, 4, n_nonzero=2, rng=3)
    assert np.count_nonzero(a.beta) == 2
    assert np.array_equal(a.X, b.X)
    assert np.array_equal(a.Y, b.Y)


def test_contaminate_cells_replaces_fraction() -> None:
    X = np.zeros((200, 10))
    dirty, mask = contaminate_cells(X, fraction=0.1, magnitude=8.0, rng=1)
    assert np.all(np.abs(dirty[mask]) == 8.0)
    assert np.all(dirty[~mask] == 0.0)
    assert 0.05 < mask.mean() < 0.15
    assert np.all(X == 0.0)


def test_normalized_rmspe_oracle_level() -> None:
    assert normalized_rmspe([1.0, -1.0], [0.0, 0.0], sigma=1.0) == pytest.approx(1.0)


def test_simulate_regression_rejects_too_many_nonzero() -> None:
    with pytest.raises(InvalidInputError, match="n_nonzero"):
        simulate_regression(20, 4, n_nonzero=5, rng=3)
