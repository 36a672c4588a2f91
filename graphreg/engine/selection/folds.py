"""Cross-validation fold assignment."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from graphreg.engine.errors import InvalidInputError
from graphreg.engine.utils.rand import generator_from_seed

__all__ = ["Folds", "draw_folds", "resolve_folds", "validate_folds"]

Folds = tuple[NDArray[np.int64], ...]


def _freeze(indices: NDArray[np.int64]) -> NDArray[np.int64]:
    frozen = np.sort(np.asarray(indices, dtype=np.int64))
    frozen.setflags(write=False)
    return frozen


def _check_k(n: int, K: int) -> None:
    if int(K) != K or K < 2:
        raise InvalidInputError("K must be an integer >= 2")
    if K > n:
        raise InvalidInputError(f"K={K} exceeds the number of observations n={n}")


def draw_folds(n: int, K: int, rng: int | np.random.Generator | None = None) -> Folds:
    """Randomly partition ``range(n)`` into ``K`` folds of near-equal size.

    Fold sizes differ by at most one. ``rng`` defaults to the ``folds``
    stream so repeated calls without a seed are reproducible.
    """

    _check_k(n, K)
    generator = generator_from_seed(rng, stream="folds")
    permutation = generator.permutation(n)
    return tuple(_freeze(part) for part in np.array_split(permutation, int(K)))


def validate_folds(folds: Sequence[ArrayLike], n: int, K: int) -> Folds:
    """Check that ``folds`` is a partition of ``range(n)`` into exactly ``K`` parts.

    Returns:
      The folds as sorted, read-only integer arrays.

    Raises:
      InvalidInputError: If the number of folds differs from ``K``, a fold is
        empty or holds non-integer/out-of-range indices, folds overlap, or
        their union misses an observation.
    """

    _check_k(n, K)
    if isinstance(folds, np.ndarray) or not isinstance(folds, Sequence):
        raise InvalidInputError("folds must be a sequence of index arrays")
    if len(folds) != K:
        raise InvalidInputError(f"length of folds ({len(folds)}) should be the same as K ({K})")
    frozen: list[NDArray[np.int64]] = []
    for i, fold in enumerate(folds):
        values = np.asarray(fold).ravel()
        if values.size == 0:
            raise InvalidInputError(f"fold {i} is empty")
        if not np.issubdtype(values.dtype, np.integer):
            raise InvalidInputError(f"fold {i} must contain integer indices")
        if values.min() < 0 or values.max() >= n:
            raise InvalidInputError(f"indices of fold {i} must lie in range(0, {n})")
        frozen.append(_freeze(values))
    combined = np.concatenate(frozen)
    if np.unique(combined).size != combined.size:
        raise InvalidInputError("folds must be pairwise disjoint")
    if combined.size != n:
        raise InvalidInputError("the union of folds must cover every observation")
    return tuple(frozen)


def resolve_folds(
    n: int,
    K: int,
    folds: Sequence[ArrayLike] | None = None,
    rng: int | np.random.Generator | None = None,
) -> Folds:
    """Validate user folds or draw new ones when ``folds`` is ``None``."""

    if folds is None:
        return draw_folds(n, K, rng)
    return validate_folds(folds, n, K)
