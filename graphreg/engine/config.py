"""Fit configuration and its YAML loader.

The configuration is validated when it is built: every problem is collected
into a human readable diagnostic and reported at once, so a typo in a YAML
file surfaces before any computation starts.
"""

from __future__ import annotations

# ruff: noqa: ANN401
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from graphreg.engine.errors import InvalidInputError, UnsupportedOptionError
from graphreg.engine.estimates import CovarianceEstimator, available_methods
from graphreg.engine.estimates.robust import CENTER_FUNCTIONS, SCALE_FUNCTIONS
from graphreg.engine.selection.paths import SUPPORTED_NORMS
from graphreg.engine.selection.precision import CRITERIA
from graphreg.engine.utils.io import read_yaml

__all__ = ["GRAPH_SELECTION_MODES", "FitConfig", "load_fit_config"]

GRAPH_SELECTION_MODES = ("criterion", "cv")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class FitConfig:
    """Options of the two-stage fit.

    Attributes:
      n_folds: Number of cross-validation folds ``K``.
      nlambda1: Length of the graph penalty path.
      nlambda2: Length of the coefficient penalty path.
      lambda_min_ratio1: Last-to-first ratio of the graph path.
      lambda_min_ratio2: Last-to-first ratio of the coefficient path.
      graph_cov_method: Covariance strategy of the graph stage.
      coef_cov_method: Covariance strategy of the coefficient stage.
      criterion: Information criterion scoring graph candidates.
      graph_selection: ``criterion`` (information criterion on all rows) or
        ``cv`` (cross-validated likelihood on the coefficient folds).
      graph_norm: Graph penalty norm (1 graphical lasso, 2 ridge, None off).
      coef_norm: Coefficient penalty norm (1 lasso, 2 ridge, None off).
      standardize: Standardize X and Y before fitting.
      center: Center function used for standardization.
      scale: Scale function used for standardization.
      seed: Seed of the fold draw; ``None`` uses the ``folds`` stream default.
      n_jobs: Parallel fold workers (joblib semantics, ``-1`` for all cores).
    """

    n_folds: int = 5
    nlambda1: int = 10
    nlambda2: int = 10
    lambda_min_ratio1: float = 0.1
    lambda_min_ratio2: float = 0.01
    graph_cov_method: str | CovarianceEstimator = "default"
    coef_cov_method: str | CovarianceEstimator = "default"
    criterion: str = "ebic"
    graph_selection: str = "criterion"
    graph_norm: int | None = 1
    coef_norm: int | None = 1
    standardize: bool = True
    center: str = "mean"
    scale: str = "std"
    seed: int | None = None
    n_jobs: int = 1

    def __post_init__(self) -> None:
        errors: list[str] = []
        unsupported: list[str] = []
        for name in ("n_folds", "nlambda1", "nlambda2"):
            value = getattr(self, name)
            if not _is_int(value) or value < (2 if name == "n_folds" else 1):
                errors.append(f"{name} must be an integer >= {2 if name == 'n_folds' else 1}")
        for name in ("lambda_min_ratio1", "lambda_min_ratio2"):
            value = getattr(self, name)
            if not _is_number(value) or not 0.0 < value < 1.0:
                errors.append(f"{name} must be a number in (0, 1)")
        for name in ("graph_cov_method", "coef_cov_method"):
            value = getattr(self, name)
            if not isinstance(value, CovarianceEstimator) and value not in available_methods():
                unsupported.append(f"{name} '{value}' is not one of {available_methods()}")
        for name in ("graph_norm", "coef_norm"):
            value = getattr(self, name)
            if value not in (None, 0, *SUPPORTED_NORMS):
                unsupported.append(f"{name} {value!r} is not one of {SUPPORTED_NORMS} or None")
        if self.criterion not in CRITERIA:
            unsupported.append(f"criterion '{self.criterion}' is not one of {CRITERIA}")
        if self.graph_selection not in GRAPH_SELECTION_MODES:
            unsupported.append(
                f"graph_selection '{self.graph_selection}' is not one of {GRAPH_SELECTION_MODES}"
            )
        if self.center not in CENTER_FUNCTIONS:
            unsupported.append(f"center '{self.center}' is not one of {sorted(CENTER_FUNCTIONS)}")
        if self.scale not in SCALE_FUNCTIONS:
            unsupported.append(f"scale '{self.scale}' is not one of {sorted(SCALE_FUNCTIONS)}")
        if not isinstance(self.standardize, bool):
            errors.append("standardize must be a boolean")
        if self.seed is not None and not _is_int(self.seed):
            errors.append("seed must be an integer or null")
        if not _is_int(self.n_jobs) or self.n_jobs == 0:
            errors.append("n_jobs must be a non-zero integer")
        if unsupported:
            raise UnsupportedOptionError("; ".join(unsupported + errors))
        if errors:
            raise InvalidInputError("; ".join(errors))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> FitConfig:
        """Build a configuration from a mapping, rejecting unknown keys."""

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise InvalidInputError(f"Unknown fit configuration keys: {unknown}")
        return cls(**dict(payload))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_fit_config(path: Path | str) -> FitConfig:
    """Load a :class:`FitConfig` from YAML.

    The options may sit at the top level of the document or under a ``fit``
    section; an empty document yields the defaults.
    """

    data = read_yaml(path)
    if data is None:
        return FitConfig()
    if not isinstance(data, Mapping):
        raise InvalidInputError(f"Fit configuration in {path} must be a mapping")
    section = data.get("fit", data)
    if not isinstance(section, Mapping):
        raise InvalidInputError(f"'fit' section in {path} must be a mapping")
    return FitConfig.from_mapping(section)
