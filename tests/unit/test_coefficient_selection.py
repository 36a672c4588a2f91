"""Tests for the coefficient-stage selector."""

from __future__ import annotations

import numpy as np
import pytest

from graphreg.engine.estimates import DefaultCovariance
from graphreg.engine.selection import graph_covariance, rmspe, select_coefficients


@pytest.fixture()
def split() -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    rng = np.random.default_rng(7)
    X = rng.normal(size=(120, 6))
    beta = np.array([1.5, -1.0, 0.0, 0.0, 0.5, 0.0])
    y = 2.0 + X @ beta + 0.3 * rng.normal(size=120)
    return X[:90], y[:90], X[90:], y[90:]


def test_rmspe_scalar_and_columnwise() -> None:
    y = np.array([1.0, 2.0, 3.0])
    assert rmspe(y, y) == 0.0
    assert rmspe(y, y + 2.0) == pytest.approx(2.0)
    errors = rmspe(y, np.column_stack([y, y + 1.0]))
    assert np.allclose(errors, [0.0, 1.0])


def test_graph_covariance_accepts_matrix_or_penalty(split) -> None:
    X_tr = split[0]
    estimator = DefaultCovariance()
    precision = np.diag([2.0, 4.0])
    assert np.allclose(graph_covariance(X_tr[:, :2], precision, estimator), np.diag([0.5, 0.25]))
    unpenalized = graph_covariance(X_tr, 0.0, estimator)
    assert np.allclose(unpenalized, np.cov(X_tr, rowvar=False))


def test_select_coefficients_recovers_signal(split) -> None:
    X_tr, y_tr, X_va, y_va = split
    result = select_coefficients(X_tr, y_tr, X_va, y_va, 0.0, nlambda=20)
    assert result.candidates.shape == (20, 6)
    assert result.errors.shape == (20,)
    assert result.best_penalty == result.path[int(np.argmin(result.errors))]
    assert np.allclose(result.coefficients[[0, 1, 4]], [1.5, -1.0, 0.5], atol=0.3)
    assert result.errors.min() < 0.6


def test_select_coefficients_first_candidate_predicts_the_mean(split) -> None:
    X_tr, y_tr, X_va, y_va = split
    result = select_coefficients(X_tr, y_tr, X_va, y_va, 0.0, nlambda=5)
    assert np.allclose(result.candidates[0], 0.0)
    assert result.errors[0] == pytest.approx(rmspe(y_va, np.full(y_va.size, y_tr.mean())))


def test_select_coefficients_explicit_path_and_ridge(split) -> None:
    X_tr, y_tr, X_va, y_va = split
    result = select_coefficients(
        X_tr, y_tr, X_va, y_va, 0.05, norm=2, lambdas=[0.01, 10.0, 1.0]
    )
    assert result.path.tolist() == [10.0, 1.0, 0.01]
    assert np.linalg.norm(result.candidates[0]) < np.linalg.norm(result.candidates[2])


def test_select_coefficients_separate_graph_method(split) -> None:
    X_tr, y_tr, X_va, y_va = split
    same = select_coefficients(X_tr, y_tr, X_va, y_va, 0.1, lambdas=[0.05])
    other = select_coefficients(
        X_tr, y_tr, X_va, y_va, 0.1, graph_cov_method="wrap", lambdas=[0.05]
    )
    assert same.candidates.shape == other.candidates.shape
    assert not np.allclose(same.candidates, other.candidates)
