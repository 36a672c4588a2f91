"""Input coercion helpers shared by the estimators."""

from __future__ import annotations

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from graphreg.engine.errors import InvalidInputError

__all__ = ["as_matrix", "as_vector", "check_paired", "is_off_diagonal_zero"]


def as_matrix(data: ArrayLike | pd.DataFrame, *, name: str = "X") -> NDArray[np.float64]:
    """Return ``data`` as a finite 2-D float array.

    One-dimensional inputs are treated as a single column.
    """

    if isinstance(data, pd.DataFrame | pd.Series):
        values = data.to_numpy(dtype=float)
    else:
        values = np.asarray(data, dtype=float)
    if values.ndim == 1:
        values = values.reshape(-1, 1)
    if values.ndim != 2:
        raise InvalidInputError(f"{name} must be a 2-D matrix, got {values.ndim} dimensions")
    if values.shape[0] < 1 or values.shape[1] < 1:
        raise InvalidInputError(f"{name} must have at least one row and one column")
    if not np.all(np.isfinite(values)):
        raise InvalidInputError(f"{name} contains NaN or infinite values")
    return values


def as_vector(data: ArrayLike | pd.Series, *, name: str = "Y") -> NDArray[np.float64]:
    """Return ``data`` as a finite 1-D float array (``n×1`` columns are flattened)."""

    if isinstance(data, pd.DataFrame | pd.Series):
        values = data.to_numpy(dtype=float)
    else:
        values = np.asarray(data, dtype=float)
    if values.ndim == 2 and values.shape[1] == 1:
        values = values[:, 0]
    if values.ndim != 1:
        raise InvalidInputError(f"{name} must be a vector")
    if values.size < 1:
        raise InvalidInputError(f"{name} must not be empty")
    if not np.all(np.isfinite(values)):
        raise InvalidInputError(f"{name} contains NaN or infinite values")
    return values


def check_paired(X: NDArray[np.float64], Y: NDArray[np.float64]) -> None:
    if X.shape[0] != Y.shape[0]:
        raise InvalidInputError(
            f"X and Y must have the same number of rows ({X.shape[0]} != {Y.shape[0]})"
        )


def is_off_diagonal_zero(matrix: NDArray[np.float64], tol: float = 1e-12) -> bool:
    """Return ``True`` when the off-diagonal is negligible relative to the diagonal.

    Entries count as zero when ``max|off| <= tol * max|diag|``, which absorbs
    the rounding noise left by standardizing uncorrelated columns.
    """

    matrix = np.asarray(matrix, dtype=float)
    off = matrix - np.diag(np.diag(matrix))
    if not np.any(off):
        return True
    return bool(np.max(np.abs(off)) <= tol * np.max(np.abs(np.diag(matrix))))
