"""Tests for the covariance strategies."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from graphreg.engine.errors import InvalidInputError, UnsupportedOptionError
from graphreg.engine.estimates import (
    CellwiseCovariance,
    DefaultCovariance,
    available_methods,
    create_estimator,
    estimate_covariance,
)


@pytest.fixture()
def sample_data() -> tuple[pd.DataFrame, pd.Series]:
    rng = np.random.default_rng(7)
    cov = np.array([[1.0, 0.6, 0.2], [0.6, 1.0, 0.3], [0.2, 0.3, 1.0]])
    data = rng.multivariate_normal(np.zeros(3), cov, size=200)
    frame = pd.DataFrame(data, columns=[f"x{i}" for i in range(3)])
    target = pd.Series(data @ np.array([1.0, 0.0, -1.0]) + rng.normal(size=200), name="y")
    return frame, target


def test_available_methods_lists_all_strategies() -> None:
    assert available_methods() == ("ddc", "default", "winsor", "wrap")


def test_default_matches_numpy(sample_data) -> None:
    X, Y = sample_data
    assert np.allclose(estimate_covariance(X), np.cov(X.to_numpy(), rowvar=False))
    expected = np.cov(np.column_stack([X.to_numpy(), Y.to_numpy()]), rowvar=False)[:3, 3]
    assert np.allclose(estimate_covariance(X, Y), expected)


def test_default_correlation_has_unit_diagonal(sample_data) -> None:
    X, _ = sample_data
    corr = estimate_covariance(X, correlation=True)
    assert np.allclose(np.diag(corr), 1.0)
    assert np.allclose(corr, np.corrcoef(X.to_numpy(), rowvar=False))


def test_zero_variance_column_has_zero_correlation() -> None:
    X = np.column_stack([np.arange(5.0), np.ones(5)])
    corr = estimate_covariance(X, correlation=True)
    assert corr[0, 1] == 0.0
    assert corr[1, 1] == 1.0


@pytest.mark.parametrize("method", ["default", "winsor", "wrap", "ddc"])
def test_every_method_returns_symmetric_psd(sample_data, method: str) -> None:
    X, Y = sample_data
    cov = estimate_covariance(X, method=method)
    assert cov.shape == (3, 3)
    assert np.allclose(cov, cov.T, atol=1e-10)
    assert np.linalg.eigvalsh(cov).min() >= -1e-8
    cov_xy = estimate_covariance(X, Y, method=method)
    assert cov_xy.shape == (3,)
    assert np.all(np.isfinite(cov_xy))


@pytest.mark.parametrize("method", ["winsor", "wrap"])
def test_robust_methods_resist_row_outliers(sample_data, method: str) -> None:
    X, _ = sample_data
    clean = estimate_covariance(X, method="default", correlation=True)
    dirty = X.to_numpy().copy()
    dirty[:10, 0] = 50.0
    dirty[:10, 1] = -50.0
    naive = estimate_covariance(dirty, method="default", correlation=True)
    robust = estimate_covariance(dirty, method=method, correlation=True)
    assert abs(robust[0, 1] - clean[0, 1]) < abs(naive[0, 1] - clean[0, 1])


def test_unknown_method_is_rejected(sample_data) -> None:
    X, _ = sample_data
    with pytest.raises(UnsupportedOptionError, match="Unsupported covariance method"):
        estimate_covariance(X, method="spearman")


def test_create_estimator_passes_instances_through() -> None:
    estimator = DefaultCovariance()
    assert create_estimator(estimator) is estimator
    assert isinstance(create_estimator("ddc"), CellwiseCovariance)


def test_mismatched_rows_are_rejected(sample_data) -> None:
    X, Y = sample_data
    with pytest.raises(InvalidInputError):
        estimate_covariance(X, Y.iloc[:-1])


def test_ddc_single_column_warns_and_skips() -> None:
    X = np.arange(10.0).reshape(-1, 1)
    with pytest.warns(UserWarning, match="Skipping DDC step"):
        cov = estimate_covariance(X, method="ddc")
    assert cov[0, 0] == pytest.approx(np.var(X, ddof=1))


def test_ddc_uses_injected_imputer(sample_data) -> None:
    X, _ = sample_data
    calls: list[tuple[int, int]] = []

    def imputer(values: np.ndarray) -> np.ndarray:
        calls.append(values.shape)
        return np.zeros_like(values)

    cov = estimate_covariance(X, method=CellwiseCovariance(imputer=imputer))
    assert calls == [(200, 3)]
    assert np.allclose(cov, 0.0)


def test_ddc_rejects_imputer_with_wrong_shape(sample_data) -> None:
    X, _ = sample_data
    estimator = CellwiseCovariance(imputer=lambda values: values[:, :1])
    with pytest.raises(ValueError, match="Imputer returned shape"):
        estimate_covariance(X, method=estimator)
