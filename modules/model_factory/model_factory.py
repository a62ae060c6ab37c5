import inspect
from typing import Dict, Any, List, Optional, Type
from sklearn.ensemble import (
    BaggingClassifier,
    BaggingRegressor,
    GradientBoostingClassifier,
    GradientBoostingRegressor,
    RandomForestClassifier,
    RandomForestRegressor,
)
from sklearn.svm import SVC, SVR
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from modules.model_factory.fitted_model import (
    FittedModel,
    TreeModel,
    ForestModel,
    BoostedModel,
    SVMModel,
)

class ModelFactory:
    """
    Factory for creating the lab's model families with a unified interface.
    Each family name maps to its scikit-learn estimator and the FittedModel
    variant that exposes it to scorers and reports.
    """

    CLASSIFIERS = {
        'DecisionTreeClassifier': (DecisionTreeClassifier, TreeModel),
        'BaggingClassifier': (BaggingClassifier, ForestModel),
        'RandomForestClassifier': (RandomForestClassifier, ForestModel),
        'GradientBoostingClassifier': (GradientBoostingClassifier, BoostedModel),
        'SVC': (SVC, SVMModel),
    }

    REGRESSORS = {
        'DecisionTreeRegressor': (DecisionTreeRegressor, TreeModel),
        'BaggingRegressor': (BaggingRegressor, ForestModel),
        'RandomForestRegressor': (RandomForestRegressor, ForestModel),
        'GradientBoostingRegressor': (GradientBoostingRegressor, BoostedModel),
        'SVR': (SVR, SVMModel),
    }

    # Parameter names as they appear in the R labs (tree/randomForest/gbm/e1071)
    PARAM_ALIASES = {
        'cost': 'C',
        'mtry': 'max_features',
        'ntree': 'n_estimators',
        'n_trees': 'n_estimators',
        'shrinkage': 'learning_rate',
        'interaction_depth': 'max_depth',
    }

    @classmethod
    def create(cls, model_name: str, params: Dict[str, Any] = None) -> Any:
        """
        Create and return an instantiated (unfitted) estimator.

        Raises:
            ValueError: Unknown model, or a parameter the estimator does not
                accept (``random_state`` excepted).
        """
        if params is None:
            params = {}
        model_class = cls._lookup(model_name)[0]
        translated = cls.translate_params(params)
        cls._check_params(model_class, translated)
        valid_params = cls._filter_params(model_class, translated)
        return model_class(**valid_params)

    @classmethod
    def unsupported_params(cls, model_name: str, params) -> List[str]:
        """
        Names in ``params`` (aliases allowed) that the model's constructor does
        not accept. ``random_state`` is never reported: it is injected for
        every model and silently dropped where unsupported.
        """
        model_class = cls._lookup(model_name)[0]
        return cls._unsupported(model_class, list(params))

    @classmethod
    def _unsupported(cls, model_class, names) -> List[str]:
        accepted = cls._filter_params(model_class, {cls.PARAM_ALIASES.get(n, n): None for n in names})
        return [
            n for n in names
            if n != 'random_state' and cls.PARAM_ALIASES.get(n, n) not in accepted
        ]

    @classmethod
    def _check_params(cls, model_class, params: Dict[str, Any]) -> None:
        unknown = cls._unsupported(model_class, list(params))
        if unknown:
            raise ValueError(f"{model_class.__name__} does not accept parameter(s): {unknown}")

    @classmethod
    def wrap(cls, estimator: Any, feature_names: List[str]) -> FittedModel:
        """Wrap a fitted estimator in the capability interface of its family."""
        wrapper = cls.wrapper_for(type(estimator).__name__)
        return wrapper(estimator, feature_names)

    @classmethod
    def wrapper_for(cls, model_name: str) -> Type[FittedModel]:
        return cls._lookup(model_name)[1]

    @classmethod
    def task_of(cls, model_name: str) -> str:
        cls._lookup(model_name)
        return 'classification' if model_name in cls.CLASSIFIERS else 'regression'

    @classmethod
    def get_available_models(cls, task: Optional[str] = None) -> List[str]:
        """Return the supported model names, optionally restricted to one task."""
        if task == 'classification':
            return list(cls.CLASSIFIERS.keys())
        if task == 'regression':
            return list(cls.REGRESSORS.keys())
        return list(cls.CLASSIFIERS.keys()) + list(cls.REGRESSORS.keys())

    @classmethod
    def translate_params(cls, params: Dict[str, Any]) -> Dict[str, Any]:
        """Rename R-style aliases to their scikit-learn parameter names."""
        return {cls.PARAM_ALIASES.get(k, k): v for k, v in params.items()}

    @classmethod
    def _lookup(cls, model_name: str):
        if model_name in cls.CLASSIFIERS:
            return cls.CLASSIFIERS[model_name]
        if model_name in cls.REGRESSORS:
            return cls.REGRESSORS[model_name]
        raise ValueError(f"Unknown model name: {model_name}. Available: {cls.get_available_models()}")

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]

        has_kwargs = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())

        if has_kwargs:
            return params

        return {k: v for k, v in params.items() if k in valid_keys}


class EstimatorFitter:
    """
    Picklable ``fit_fn`` for the search engine.

    Merges the search seed, the experiment's fixed parameters and the
    candidate's parameters (in that order of precedence), fits on the training
    subset and returns the family's FittedModel.
    """

    def __init__(self, model_name: str, fixed_params: Optional[Dict[str, Any]] = None):
        ModelFactory._lookup(model_name)
        self.model_name = model_name
        self.fixed_params = dict(fixed_params or {})

    def __call__(self, train, params: Dict[str, Any], seed: int) -> FittedModel:
        merged = {'random_state': seed, **self.fixed_params, **params}
        estimator = ModelFactory.create(self.model_name, merged)
        estimator.fit(train.features, train.target)
        return ModelFactory.wrap(estimator, train.feature_names)

    def __repr__(self):
        return f"EstimatorFitter({self.model_name!r}, fixed_params={self.fixed_params!r})"
