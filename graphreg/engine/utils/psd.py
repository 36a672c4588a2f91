"""Nearest positive-semidefinite projection."""

from __future__ import annotations

import numpy as np


def project_to_psd(matrix: np.ndarray, eps: float | None = None) -> np.ndarray:
    """Project a symmetric matrix onto the PSD cone by eigenvalue clipping.

    The input is symmetrized first, then eigenvalues below ``eps`` are raised
    to ``eps``. When ``eps`` is omitted it is derived from the mean of the
    diagonal so that the floor scales with the data.

    Raises:
      ValueError: If ``matrix`` is not square.
    """

    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError("Input matrix must be square")

    matrix = 0.5 * (matrix + matrix.T)
    diag_mean = float(np.mean(np.diag(matrix)))
    if eps is None:
        eps = max(1e-8, 1e-6 * diag_mean) if np.isfinite(diag_mean) else 1e-8

    w, v = np.linalg.eigh(matrix)
    w = np.maximum(w, eps)
    projected = (v * w) @ v.T
    return 0.5 * (projected + projected.T)


__all__ = ["project_to_psd"]
