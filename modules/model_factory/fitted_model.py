"""
Fitted-model capability interface.

Every model family the lab fits is wrapped in one of the variants below so that
scorers and reports can call ``predict``/``explain`` without caring whether
the estimator underneath is a tree, an ensemble or a support vector machine.
"""
import abc
from typing import Any, Dict, List, Mapping

import numpy as np
import pandas as pd
from sklearn.tree import export_text


class FittedModel(abc.ABC):
    """A fitted estimator plus the feature layout it was trained on."""

    family = "model"

    def __init__(self, estimator: Any, feature_names: List[str]):
        self.estimator = estimator
        self.feature_names = list(feature_names)

    def predict(self, record: Mapping[str, Any]) -> Any:
        """Predict a single record given as a feature mapping."""
        missing = [f for f in self.feature_names if f not in record]
        if missing:
            raise KeyError(f"Record is missing features: {missing}")
        row = pd.DataFrame([[record[f] for f in self.feature_names]], columns=self.feature_names)
        prediction = self.estimator.predict(row)[0]
        return prediction.item() if isinstance(prediction, np.generic) else prediction

    def predict_many(self, features: pd.DataFrame) -> np.ndarray:
        return self.estimator.predict(features[self.feature_names])

    def explain(self) -> Dict[str, Any]:
        summary = {
            'family': self.family,
            'estimator': type(self.estimator).__name__,
            'n_features': len(self.feature_names),
        }
        summary.update(self._details())
        return summary

    @abc.abstractmethod
    def _details(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _top_importances(self, limit: int = 10) -> Dict[str, float]:
        importances = getattr(self.estimator, 'feature_importances_', None)
        if importances is None:
            return {}
        order = np.argsort(importances)[::-1][:limit]
        return {self.feature_names[i]: float(importances[i]) for i in order}

    def __repr__(self):
        return f"{self.__class__.__name__}({type(self.estimator).__name__})"


class TreeModel(FittedModel):
    family = "tree"

    @property
    def n_leaves(self) -> int:
        return int(self.estimator.get_n_leaves())

    def _details(self) -> Dict[str, Any]:
        return {
            'n_leaves': self.n_leaves,
            'depth': int(self.estimator.get_depth()),
            'ccp_alpha': float(self.estimator.ccp_alpha),
            'importances': self._top_importances(),
            'rules': export_text(self.estimator, feature_names=self.feature_names),
        }


class ForestModel(FittedModel):
    """Bagging and random forests (bagging is a forest using every feature per split)."""

    family = "forest"

    def _details(self) -> Dict[str, Any]:
        details = {
            'n_estimators': int(self.estimator.n_estimators),
            'max_features': getattr(self.estimator, 'max_features', None),
            'importances': self._top_importances(),
        }
        if getattr(self.estimator, 'oob_score', False):
            details['oob_score'] = float(self.estimator.oob_score_)
        return details


class BoostedModel(FittedModel):
    family = "boosting"

    def _details(self) -> Dict[str, Any]:
        return {
            'n_estimators': int(self.estimator.n_estimators_),
            'learning_rate': float(self.estimator.learning_rate),
            'max_depth': self.estimator.max_depth,
            'final_train_loss': float(self.estimator.train_score_[-1]),
            'importances': self._top_importances(),
        }


class SVMModel(FittedModel):
    family = "svm"

    def _details(self) -> Dict[str, Any]:
        details = {
            'kernel': self.estimator.kernel,
            'C': float(self.estimator.C),
            'gamma': self.estimator.gamma,
            'n_support_vectors': int(len(self.estimator.support_)),
        }
        classes = getattr(self.estimator, 'classes_', None)
        if classes is not None:
            details['support_per_class'] = {
                str(label): int(count) for label, count in zip(classes, self.estimator.n_support_)
            }
        return details
