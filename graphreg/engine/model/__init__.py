"""Stepwise fitting and prediction."""

from .predict import FittedModel, predict
from .stepwise import CoefficientCV, FitState, StepwiseFitter, fit

__all__ = ["CoefficientCV", "FitState", "FittedModel", "StepwiseFitter", "fit", "predict"]
