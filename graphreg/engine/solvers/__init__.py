"""Numerical primitives: graph (precision) paths and penalized regression paths."""

from .graph import GraphPath, graph_path, graphical_lasso_path, ridge_precision_path
from .regression import coefficient_path, lasso_path, ridge_path

__all__ = [
    "GraphPath",
    "coefficient_path",
    "graph_path",
    "graphical_lasso_path",
    "lasso_path",
    "ridge_path",
    "ridge_precision_path",
]
