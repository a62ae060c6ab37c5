from .fitted_model import FittedModel, TreeModel, ForestModel, BoostedModel, SVMModel
from .model_factory import ModelFactory, EstimatorFitter

__all__ = [
    'ModelFactory',
    'EstimatorFitter',
    'FittedModel',
    'TreeModel',
    'ForestModel',
    'BoostedModel',
    'SVMModel',
]
