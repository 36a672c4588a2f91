"""Tests for fold assignment and validation."""

from __future__ import annotations

import numpy as np
import pytest

from graphreg.engine.errors import InvalidInputError
from graphreg.engine.selection import draw_folds, resolve_folds, validate_folds


def test_draw_folds_partitions_rows_with_balanced_sizes() -> None:
    folds = draw_folds(23, 5, rng=3)
    sizes = sorted(len(f) for f in folds)
    assert len(folds) == 5
    assert sizes[-1] - sizes[0] <= 1
    assert np.array_equal(np.sort(np.concatenate(folds)), np.arange(23))


def test_draw_folds_is_reproducible_and_read_only() -> None:
    first = draw_folds(30, 3)
    second = draw_folds(30, 3)
    assert all(np.array_equal(a, b) for a, b in zip(first, second, strict=True))
    with pytest.raises(ValueError):
        first[0][0] = 99


@pytest.mark.parametrize(("n", "K"), [(10, 1), (4, 5), (10, 2.5)])
def test_draw_folds_rejects_bad_k(n: int, K: float) -> None:
    with pytest.raises(InvalidInputError):
        draw_folds(n, K)


def test_validate_folds_accepts_partition() -> None:
    folds = validate_folds([[3, 1], np.array([0, 2]), [4]], 5, 3)
    assert [f.tolist() for f in folds] == [[1, 3], [0, 2], [4]]


@pytest.mark.parametrize(
    ("folds", "message"),
    [
        ([[0, 1], [2, 3]], "should be the same as K"),
        ([[0, 1], [], [2, 3, 4]], "empty"),
        ([[0, 1], [1, 2], [3, 4]], "disjoint"),
        ([[0], [1], [2, 3]], "cover"),
        ([[0, 1], [2, 3], [4, 5]], "range"),
        ([[0.5, 1], [2, 3], [4]], "integer"),
    ],
)
def test_validate_folds_rejects_malformed(folds: list, message: str) -> None:
    with pytest.raises(InvalidInputError, match=message):
        validate_folds(folds, 5, 3)


def test_resolve_folds_dispatches() -> None:
    drawn = resolve_folds(10, 2, None, rng=1)
    assert len(drawn) == 2
    given = resolve_folds(4, 2, [[0, 1], [2, 3]])
    assert given[1].tolist() == [2, 3]
