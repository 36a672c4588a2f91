"""Two-stage fit: select the graph penalty, then cross-validate the coefficient penalty.

The fitter is a small state machine::

    INIT -> GRAPH_SELECTED -> CV_COEFFICIENT_SELECTED -> FINAL_FIT -> DONE

Inputs are validated in ``INIT`` before anything expensive runs. The graph
penalty chosen in ``GRAPH_SELECTED`` is held fixed while the coefficient
penalty is cross-validated, so the reported CV error is optimistic with
respect to the graph penalty.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, fields, replace
from enum import Enum

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from numpy.typing import ArrayLike, NDArray

from graphreg.engine.config import FitConfig
from graphreg.engine.errors import InvalidInputError
from graphreg.engine.estimates import create_estimator, resolve_center, resolve_scale
from graphreg.engine.selection import (
    PrecisionSelection,
    build_coefficient_path,
    graph_covariance,
    resolve_folds,
    select_coefficients,
    select_precision,
    select_precision_cv,
)
from graphreg.engine.selection.folds import Folds
from graphreg.engine.solvers import coefficient_path
from graphreg.engine.utils import as_matrix, as_vector, check_paired
from graphreg.engine.utils.logging import get_stream_logger
from graphreg.engine.utils.rand import generator_from_seed

from .predict import FittedModel

LOG = get_stream_logger(__name__)

__all__ = ["CoefficientCV", "FitState", "StepwiseFitter", "fit"]

PenaltyArg = float | Sequence[float] | None


class FitState(Enum):
    INIT = "init"
    GRAPH_SELECTED = "graph_selected"
    CV_COEFFICIENT_SELECTED = "cv_coefficient_selected"
    FINAL_FIT = "final_fit"
    DONE = "done"


@dataclass(frozen=True)
class CoefficientCV:
    """Cross-validation record of the coefficient stage.

    Attributes:
      path: Coefficient penalties (decreasing).
      errors: RMSPE table, one row per fold and one column per penalty.
      mean_errors: Column means of ``errors``.
      best_penalty: First penalty attaining the minimum mean error.
    """

    path: NDArray[np.float64]
    errors: pd.DataFrame
    mean_errors: NDArray[np.float64]
    best_penalty: float


def _is_scalar(value: PenaltyArg) -> bool:
    return value is not None and np.ndim(value) == 0


class StepwiseFitter:
    """Single-use driver of the two-stage fit.

    Args:
      config: Fit options; defaults to :class:`FitConfig`.
      rng: Seed or generator for the fold draw. Overrides ``config.seed``.
    """

    def __init__(
        self,
        config: FitConfig | None = None,
        *,
        rng: int | np.random.Generator | None = None,
    ) -> None:
        self.config = config or FitConfig()
        self.state = FitState.INIT
        self._rng = generator_from_seed(rng if rng is not None else self.config.seed, stream="folds")
        self.folds_: Folds | None = None
        self.lambda1_: float | None = None
        self.graph_selection_: PrecisionSelection | None = None
        self.coefficient_cv_: CoefficientCV | None = None
        self.model_: FittedModel | None = None
        self._x_center: NDArray[np.float64] | None = None
        self._x_scale: NDArray[np.float64] | None = None
        self._y_center = 0.0
        self._y_scale = 1.0

    def _advance(self, state: FitState) -> None:
        LOG.info("Stepwise fit: %s -> %s", self.state.value, state.value)
        self.state = state

    def fit(
        self,
        X: ArrayLike | pd.DataFrame,
        Y: ArrayLike | pd.Series,
        *,
        folds: Sequence[ArrayLike] | None = None,
        lambda1: PenaltyArg = None,
        lambda2: PenaltyArg = None,
    ) -> FittedModel:
        """Run every stage and return the fitted model.

        ``lambda1``/``lambda2`` accept a scalar (used as is, selection
        skipped), a sequence (used as the penalty path) or ``None`` (path
        built from the data).

        Raises:
          RuntimeError: If the fitter was already used.
          InvalidInputError: On malformed data or folds.
        """

        if self.state is not FitState.INIT:
            raise RuntimeError("StepwiseFitter instances are single-use; create a new one")
        X_std, Y_std = self._initialise(X, Y, folds)
        self._select_graph(X_std, lambda1)
        self._select_coefficients(X_std, Y_std, lambda2)
        return self._final_fit(X_std, Y_std)

    def _initialise(
        self,
        X: ArrayLike | pd.DataFrame,
        Y: ArrayLike | pd.Series,
        folds: Sequence[ArrayLike] | None,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        cfg = self.config
        X_arr = as_matrix(X)
        Y_arr = as_vector(Y)
        check_paired(X_arr, Y_arr)
        n, p = X_arr.shape
        self.folds_ = resolve_folds(n, cfg.n_folds, folds, self._rng)
        LOG.info("Fitting on n=%d, p=%d with K=%d folds", n, p, cfg.n_folds)

        center = resolve_center(cfg.center)
        self._x_center = np.asarray(center(X_arr, axis=0), dtype=float)
        self._y_center = float(center(Y_arr, axis=0))
        if cfg.standardize:
            scale = resolve_scale(cfg.scale)
            x_scale = np.array(scale(X_arr, axis=0), dtype=float, ndmin=1)
            x_scale[~np.isfinite(x_scale) | (x_scale <= 0)] = 1.0
            y_scale = float(scale(Y_arr, axis=0))
            self._x_scale = x_scale
            self._y_scale = y_scale if np.isfinite(y_scale) and y_scale > 0 else 1.0
        else:
            self._x_scale = np.ones(p)
            self._y_scale = 1.0
        X_std = (X_arr - self._x_center) / self._x_scale
        Y_std = (Y_arr - self._y_center) / self._y_scale
        return X_std, Y_std

    def _select_graph(self, X_std: NDArray[np.float64], lambda1: PenaltyArg) -> None:
        cfg = self.config
        if cfg.graph_norm in (None, 0):
            self.lambda1_ = 0.0
        elif _is_scalar(lambda1):
            self.lambda1_ = float(lambda1)
        else:
            common = dict(
                standardize=False,
                norm=cfg.graph_norm,
                nlambda=cfg.nlambda1,
                lambda_min_ratio=cfg.lambda_min_ratio1,
                lambdas=lambda1,
            )
            if cfg.graph_selection == "cv":
                selection = select_precision_cv(
                    X_std,
                    cfg.n_folds,
                    cfg.graph_cov_method,
                    cfg.criterion,
                    folds=self.folds_,
                    **common,
                )
            else:
                selection = select_precision(X_std, cfg.graph_cov_method, cfg.criterion, **common)
            self.graph_selection_ = selection
            self.lambda1_ = selection.best_penalty
        LOG.info("Graph penalty lambda1=%.4g", self.lambda1_)
        self._advance(FitState.GRAPH_SELECTED)

    def _fold_errors(
        self,
        X_std: NDArray[np.float64],
        Y_std: NDArray[np.float64],
        held_out: NDArray[np.int64],
        path: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        cfg = self.config
        mask = np.ones(X_std.shape[0], dtype=bool)
        mask[held_out] = False
        selection = select_coefficients(
            X_std[mask],
            Y_std[mask],
            X_std[~mask],
            Y_std[~mask],
            self.lambda1_,
            cov_method=cfg.coef_cov_method,
            graph_cov_method=cfg.graph_cov_method,
            graph_norm=cfg.graph_norm,
            norm=cfg.coef_norm,
            lambdas=path,
            center=cfg.center,
        )
        return selection.errors

    def _select_coefficients(
        self,
        X_std: NDArray[np.float64],
        Y_std: NDArray[np.float64],
        lambda2: PenaltyArg,
    ) -> None:
        cfg = self.config
        if _is_scalar(lambda2):
            path = np.array([float(lambda2)])
        elif lambda2 is not None:
            path = np.sort(np.asarray(lambda2, dtype=float))[::-1]
        else:
            cov_xy = create_estimator(cfg.coef_cov_method).estimate(X_std, Y_std)
            path = build_coefficient_path(cov_xy, cfg.coef_norm, cfg.nlambda2, cfg.lambda_min_ratio2)

        if path.size == 1:
            LOG.info("Single coefficient penalty %.4g; skipping cross-validation", path[0])
            self.coefficient_cv_ = CoefficientCV(
                path=path,
                errors=pd.DataFrame(columns=pd.Index(path, name="lambda2"), dtype=float),
                mean_errors=np.full(1, np.nan),
                best_penalty=float(path[0]),
            )
            self._advance(FitState.CV_COEFFICIENT_SELECTED)
            return

        per_fold = Parallel(n_jobs=cfg.n_jobs, prefer="threads")(
            delayed(self._fold_errors)(X_std, Y_std, held_out, path) for held_out in self.folds_
        )
        errors = pd.DataFrame(
            np.vstack(per_fold),
            index=[f"fold_{i + 1}" for i in range(len(per_fold))],
            columns=pd.Index(path, name="lambda2"),
        )
        mean_errors = errors.mean(axis=0).to_numpy()
        best = int(np.argmin(mean_errors))
        self.coefficient_cv_ = CoefficientCV(
            path=path,
            errors=errors,
            mean_errors=mean_errors,
            best_penalty=float(path[best]),
        )
        LOG.info(
            "Coefficient penalty lambda2=%.4g (mean CV RMSPE %.4f)", path[best], mean_errors[best]
        )
        self._advance(FitState.CV_COEFFICIENT_SELECTED)

    def _final_fit(self, X_std: NDArray[np.float64], Y_std: NDArray[np.float64]) -> FittedModel:
        cfg = self.config
        self._advance(FitState.FINAL_FIT)
        lambda2 = self.coefficient_cv_.best_penalty
        cov = graph_covariance(
            X_std, self.lambda1_, create_estimator(cfg.graph_cov_method), cfg.graph_norm
        )
        cov_xy = create_estimator(cfg.coef_cov_method).estimate(X_std, Y_std)
        beta = coefficient_path(cov_xy, cov, [lambda2], cfg.coef_norm)[0]
        rescaled = beta * self._y_scale / self._x_scale
        intercept = self._y_center - float(self._x_center @ rescaled)
        self.model_ = FittedModel(
            lambda1=self.lambda1_,
            lambda2=lambda2,
            coefficients=beta,
            intercept=intercept,
            x_center=self._x_center,
            x_scale=self._x_scale,
            y_center=self._y_center,
            y_scale=self._y_scale,
        )
        LOG.info("Final fit: %d non-zero coefficients", int(np.count_nonzero(beta)))
        self._advance(FitState.DONE)
        return self.model_


def fit(
    X: ArrayLike | pd.DataFrame,
    Y: ArrayLike | pd.Series,
    K: int | None = None,
    nlambda1: int | None = None,
    nlambda2: int | None = None,
    *,
    config: FitConfig | None = None,
    folds: Sequence[ArrayLike] | None = None,
    lambda1: PenaltyArg = None,
    lambda2: PenaltyArg = None,
    seed: int | np.random.Generator | None = None,
    **options: object,
) -> FittedModel:
    """Fit the robust graph-regularized regression model.

    Args:
      X: ``n×p`` predictors.
      Y: Length-``n`` response.
      K: Number of folds (overrides ``config.n_folds``).
      nlambda1: Graph path length (overrides ``config.nlambda1``).
      nlambda2: Coefficient path length (overrides ``config.nlambda2``).
      config: Base configuration; defaults to :class:`FitConfig`.
      folds: Optional explicit fold assignment (0-based index arrays).
      lambda1: Fixed graph penalty or explicit graph path.
      lambda2: Fixed coefficient penalty or explicit coefficient path.
      seed: Seed or generator of the fold draw.
      **options: Any other :class:`FitConfig` field, e.g.
        ``graph_cov_method="ddc"``.

    Returns:
      The immutable :class:`FittedModel`.

    Raises:
      InvalidInputError: On unknown options, malformed data or folds.
      UnsupportedOptionError: On unknown methods, criteria or norms.
    """

    base = config or FitConfig()
    known = {f.name for f in fields(FitConfig)}
    unknown = sorted(set(options) - known)
    if unknown:
        raise InvalidInputError(f"Unknown fit options: {unknown}")
    overrides = dict(options)
    for name, value in (("n_folds", K), ("nlambda1", nlambda1), ("nlambda2", nlambda2)):
        if value is not None:
            overrides[name] = value
    rng = None
    if isinstance(seed, np.random.Generator):
        rng = seed
    elif seed is not None:
        overrides["seed"] = seed
    cfg = replace(base, **overrides) if overrides else base
    return StepwiseFitter(cfg, rng=rng).fit(X, Y, folds=folds, lambda1=lambda1, lambda2=lambda2)
