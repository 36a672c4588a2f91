"""Tests for the graph-stage criteria and selectors."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from graphreg.engine.errors import UnsupportedOptionError
from graphreg.engine.selection import (
    criterion_score,
    draw_folds,
    select_precision,
    select_precision_cv,
)
from graphreg.engine.simulate import ar1_covariance


@pytest.fixture()
def ar1_data() -> pd.DataFrame:
    rng = np.random.default_rng(7)
    data = rng.multivariate_normal(np.zeros(6), ar1_covariance(6, 0.5), size=150)
    return pd.DataFrame(data, columns=[f"x{i}" for i in range(6)])


def test_criterion_score_identity_reference() -> None:
    eye = np.eye(3)
    assert criterion_score(eye, eye, 10, "loglik") == pytest.approx(3.0)
    assert criterion_score(eye, eye, 10, "bic") == pytest.approx(3.0 + 3 * np.log(10) / 10)
    assert criterion_score(eye, eye, 10, "ebic") == pytest.approx(3.0)


def test_criterion_score_edge_penalties() -> None:
    precision = np.array([[2.0, -0.5, 0.0], [-0.5, 2.0, 0.0], [0.0, 0.0, 1.0]])
    cov = np.linalg.inv(precision)
    n, p = 40, 3
    base = criterion_score(precision, cov, n, "loglik")
    assert base == pytest.approx(-np.linalg.slogdet(precision)[1] + 3.0)
    assert criterion_score(precision, cov, n, "bic") == pytest.approx(base + 4 * np.log(n) / n)
    ebic = base + np.log(n) / n + 0.5 * 4.0 * np.log(p) / n
    assert criterion_score(precision, cov, n, "ebic") == pytest.approx(ebic)


def test_criterion_score_rejects_unknown() -> None:
    with pytest.raises(UnsupportedOptionError, match="unsupported criterion"):
        criterion_score(np.eye(2), np.eye(2), 10, "aic")


@pytest.mark.parametrize("criterion", ["loglik", "bic", "ebic"])
def test_select_precision_picks_minimiser(ar1_data: pd.DataFrame, criterion: str) -> None:
    selection = select_precision(ar1_data, "default", criterion, nlambda=8)
    assert selection.path.size == selection.scores.size
    assert np.all(np.diff(selection.path) < 0)
    best = int(np.argmin(selection.scores))
    assert selection.best_penalty == selection.path[best]
    assert np.allclose(selection.precision, selection.precision.T, atol=1e-8)
    assert np.linalg.eigvalsh(selection.precision).min() > 0


def test_select_precision_sparse_criterion_prefers_larger_penalty(ar1_data: pd.DataFrame) -> None:
    loglik = select_precision(ar1_data, "default", "loglik", nlambda=8)
    ebic = select_precision(ar1_data, "default", "ebic", nlambda=8)
    assert ebic.best_penalty >= loglik.best_penalty


def test_select_precision_scores_against_test_data(ar1_data: pd.DataFrame) -> None:
    train, test = ar1_data.iloc[:100], ar1_data.iloc[100:]
    in_sample = select_precision(train, "default", "loglik", lambdas=[0.3, 0.1, 0.01])
    held_out = select_precision(train, "default", "loglik", X_test=test, lambdas=[0.3, 0.1, 0.01])
    assert np.array_equal(in_sample.path, held_out.path)
    assert not np.allclose(in_sample.scores, held_out.scores)
    # In-sample likelihood always favours the weakest penalty.
    assert in_sample.best_penalty == pytest.approx(0.01)


def test_select_precision_diagonal_data_collapses_path() -> None:
    X = np.column_stack([np.tile([1.0, -1.0], 10), np.repeat([1.0, -1.0], 10)])
    selection = select_precision(X, "default", "bic")
    assert selection.path.tolist() == [0.0]


def test_select_precision_rejects_unknown_options(ar1_data: pd.DataFrame) -> None:
    with pytest.raises(UnsupportedOptionError):
        select_precision(ar1_data, "default", "aic")
    with pytest.raises(UnsupportedOptionError):
        select_precision(ar1_data, "kendall", "bic")


def test_select_precision_cv_records_fold_scores(ar1_data: pd.DataFrame) -> None:
    folds = draw_folds(len(ar1_data), 3, rng=11)
    selection = select_precision_cv(ar1_data, 3, "default", folds=folds, nlambda=5)
    assert selection.fold_scores is not None
    assert selection.fold_scores.shape == (selection.path.size, 3)
    assert list(selection.fold_scores.columns) == ["fold_1", "fold_2", "fold_3"]
    assert np.allclose(selection.scores, selection.fold_scores.mean(axis=1).to_numpy())
    assert selection.best_penalty == selection.path[int(np.argmin(selection.scores))]


def test_select_precision_cv_is_reproducible(ar1_data: pd.DataFrame) -> None:
    first = select_precision_cv(ar1_data, 4, "wrap", rng=5, nlambda=4)
    second = select_precision_cv(ar1_data, 4, "wrap", rng=5, nlambda=4)
    assert first.best_penalty == second.best_penalty
    assert np.allclose(first.scores, second.scores)
