"""Tests for the PSD projection helper."""

from __future__ import annotations

import numpy as np
import pytest

from graphreg.engine.utils.psd import project_to_psd


def test_project_to_psd_clips_negative_eigenvalues() -> None:
    matrix = np.array([[2.0, -3.0], [-3.0, 5.0]])
    projected = project_to_psd(matrix)

    eigenvalues = np.linalg.eigvalsh(projected)
    assert np.all(eigenvalues >= 0.0)


def test_project_to_psd_honours_custom_eps() -> None:
    matrix = np.array([[1e-9, 0.0], [0.0, 1e-9]])
    projected = project_to_psd(matrix, eps=1e-4)

    eigenvalues = np.linalg.eigvalsh(projected)
    assert pytest.approx(1e-4, rel=1e-6) == eigenvalues.min()


def test_project_to_psd_rejects_non_square() -> None:
    with pytest.raises(ValueError) as exc:
        project_to_psd(np.zeros((2, 3)))

    assert "square" in str(exc.value)
