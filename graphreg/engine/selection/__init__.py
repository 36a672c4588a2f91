"""Penalty paths, fold assignment and the two selection stages."""

from .coefficients import CoefficientSelection, graph_covariance, rmspe, select_coefficients
from .folds import Folds, draw_folds, resolve_folds, validate_folds
from .paths import (
    build_coefficient_path,
    build_glasso_path,
    glasso_lambda_max,
    graph_penalty_path,
    is_off_diagonal_zero,
    lasso_lambda_max,
    penalty_path,
)
from .precision import (
    CRITERIA,
    PrecisionSelection,
    criterion_score,
    select_precision,
    select_precision_cv,
)

__all__ = [
    "CRITERIA",
    "CoefficientSelection",
    "Folds",
    "PrecisionSelection",
    "build_coefficient_path",
    "build_glasso_path",
    "criterion_score",
    "draw_folds",
    "glasso_lambda_max",
    "graph_covariance",
    "graph_penalty_path",
    "is_off_diagonal_zero",
    "lasso_lambda_max",
    "penalty_path",
    "resolve_folds",
    "rmspe",
    "select_coefficients",
    "select_precision",
    "select_precision_cv",
    "validate_folds",
]
