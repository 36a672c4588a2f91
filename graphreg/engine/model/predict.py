"""Fitted model record and prediction."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from graphreg.engine.errors import InvalidInputError
from graphreg.engine.utils import as_matrix

__all__ = ["FittedModel", "predict"]


def _readonly(values: ArrayLike) -> NDArray[np.float64]:
    array = np.array(values, dtype=float, ndmin=1)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class FittedModel:
    """Immutable result of the two-stage fit.

    Attributes:
      lambda1: Selected graph penalty.
      lambda2: Selected coefficient penalty.
      coefficients: Coefficients on the standardized scale.
      intercept: Intercept on the original scale.
      x_center: Column centers used to standardize ``X``.
      x_scale: Column scale factors used to standardize ``X``.
      y_center: Center of ``Y``.
      y_scale: Scale factor of ``Y``.
    """

    lambda1: float
    lambda2: float
    coefficients: NDArray[np.float64]
    intercept: float
    x_center: NDArray[np.float64]
    x_scale: NDArray[np.float64]
    y_center: float = 0.0
    y_scale: float = 1.0

    def __post_init__(self) -> None:
        for name in ("coefficients", "x_center", "x_scale"):
            object.__setattr__(self, name, _readonly(getattr(self, name)))
        sizes = {self.coefficients.size, self.x_center.size, self.x_scale.size}
        if len(sizes) != 1:
            raise InvalidInputError("coefficients, x_center and x_scale must share one length")
        for name in ("lambda1", "lambda2", "intercept", "y_center", "y_scale"):
            object.__setattr__(self, name, float(getattr(self, name)))

    @property
    def n_features(self) -> int:
        return int(self.coefficients.size)

    @property
    def rescaled_coefficients(self) -> NDArray[np.float64]:
        """Coefficients on the original scale, ``b_j · y_scale / x_scale_j``."""

        return self.coefficients * self.y_scale / self.x_scale

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON/YAML friendly representation."""

        return {
            "lambda1": self.lambda1,
            "lambda2": self.lambda2,
            "coefficients": self.coefficients.tolist(),
            "intercept": self.intercept,
            "x_center": self.x_center.tolist(),
            "x_scale": self.x_scale.tolist(),
            "y_center": self.y_center,
            "y_scale": self.y_scale,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> FittedModel:
        try:
            return cls(**{key: payload[key] for key in cls.__dataclass_fields__})
        except KeyError as exc:
            raise InvalidInputError(f"Fitted model payload misses {exc.args[0]!r}") from exc


def predict(
    model: FittedModel,
    X_new: ArrayLike | pd.DataFrame,
    use_intercept: bool = True,
) -> NDArray[np.float64] | pd.Series:
    """Predict responses for ``X_new``.

    Args:
      model: Result of :func:`graphreg.fit`.
      X_new: ``m×p`` matrix on the original scale.
      use_intercept: Add the fitted intercept.

    Returns:
      Length-``m`` predictions; a :class:`pandas.Series` sharing the index of
      ``X_new`` when it is a DataFrame.

    Raises:
      InvalidInputError: If ``X_new`` does not have ``model.n_features`` columns.
    """

    X_arr = as_matrix(X_new, name="X_new")
    if X_arr.shape[1] != model.n_features:
        raise InvalidInputError(
            f"X_new has {X_arr.shape[1]} columns but the model was fitted on {model.n_features}"
        )
    y_hat = X_arr @ model.rescaled_coefficients
    if use_intercept:
        y_hat = y_hat + model.intercept
    if isinstance(X_new, pd.DataFrame):
        return pd.Series(y_hat, index=X_new.index, name="prediction")
    return y_hat
