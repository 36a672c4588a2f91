"""Covariance estimation strategies and robust primitives."""

from .covariance import (
    CellwiseCovariance,
    CovarianceEstimator,
    DefaultCovariance,
    WinsorCovariance,
    WrapCovariance,
    available_methods,
    create_estimator,
    estimate_covariance,
)
from .robust import (
    CellwiseResult,
    ddc_impute,
    detect_deviating_cells,
    estimate_loc_scale,
    huber_correlation,
    huber_correlation_matrix,
    mad,
    resolve_center,
    resolve_scale,
    robust_standardize,
    wrap_data,
)

__all__ = [
    "CellwiseCovariance",
    "CellwiseResult",
    "CovarianceEstimator",
    "DefaultCovariance",
    "WinsorCovariance",
    "WrapCovariance",
    "available_methods",
    "create_estimator",
    "ddc_impute",
    "detect_deviating_cells",
    "estimate_covariance",
    "estimate_loc_scale",
    "huber_correlation",
    "huber_correlation_matrix",
    "mad",
    "resolve_center",
    "resolve_scale",
    "robust_standardize",
    "wrap_data",
]
