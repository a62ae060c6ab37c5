"""
Cost-complexity pruning to a requested number of terminal nodes.

scikit-learn exposes minimal cost-complexity pruning through ``ccp_alpha``;
the lab, like R's ``prune.misclass(tree, best=k)``, thinks in terminal-node
counts. The helpers here translate between the two views.
"""
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from modules.model_factory import ModelFactory, TreeModel

TREE_CLASSES = {
    'classification': DecisionTreeClassifier,
    'regression': DecisionTreeRegressor,
}


def _tree_class(task: str):
    if task not in TREE_CLASSES:
        raise ValueError(f"Unknown task '{task}'. Expected one of {list(TREE_CLASSES)}")
    return TREE_CLASSES[task]


def _tree_params(task: str, params: Optional[Dict[str, Any]], seed: int) -> Dict[str, Any]:
    merged = {'random_state': seed, **ModelFactory.translate_params(params or {})}
    # The pruning path owns ccp_alpha
    merged.pop('ccp_alpha', None)
    ModelFactory._check_params(_tree_class(task), merged)
    return ModelFactory._filter_params(_tree_class(task), merged)


def pruning_sequence(X: pd.DataFrame, y: pd.Series, task: str = 'classification',
                     params: Optional[Dict[str, Any]] = None, seed: int = 0) -> List[Tuple[float, int]]:
    """
    Return the nested subtree sequence as ``(ccp_alpha, n_leaves)`` pairs,
    from the full tree (alpha 0) down to the root-only tree.
    """
    tree_cls = _tree_class(task)
    kwargs = _tree_params(task, params, seed)
    path = tree_cls(**kwargs).cost_complexity_pruning_path(X, y)

    sequence = []
    for alpha in np.unique(np.clip(path.ccp_alphas, 0.0, None)):
        tree = tree_cls(ccp_alpha=float(alpha), **kwargs).fit(X, y)
        sequence.append((float(alpha), int(tree.get_n_leaves())))
    return sequence


def prune_to_size(X: pd.DataFrame, y: pd.Series, size: int, task: str = 'classification',
                  params: Optional[Dict[str, Any]] = None, seed: int = 0):
    """
    Grow a full tree and cut it back to ``size`` terminal nodes.

    When no subtree in the pruning sequence has exactly ``size`` leaves the
    next larger subtree is returned; a full tree smaller than ``size`` is
    returned unpruned.
    """
    if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size < 1:
        raise ValueError(f"Terminal node count must be a positive integer, got {size!r}")

    tree_cls = _tree_class(task)
    kwargs = _tree_params(task, params, seed)
    path = tree_cls(**kwargs).cost_complexity_pruning_path(X, y)
    alphas = np.unique(np.clip(path.ccp_alphas, 0.0, None))

    # Walk from the most pruned subtree toward the full tree
    tree = None
    for alpha in alphas[::-1]:
        tree = tree_cls(ccp_alpha=float(alpha), **kwargs).fit(X, y)
        if tree.get_n_leaves() >= size:
            return tree
    return tree


class PruningFitter:
    """
    Picklable ``fit_fn`` for the pruning use case of the search engine.

    The candidate's ``size_param`` entry is the terminal-node count; any other
    candidate entries are passed to the tree constructor.
    """

    def __init__(self, task: str = 'classification', size_param: str = 'size',
                 fixed_params: Optional[Dict[str, Any]] = None):
        _tree_class(task)
        self.task = task
        self.size_param = size_param
        self.fixed_params = dict(fixed_params or {})

    def __call__(self, train, params: Dict[str, Any], seed: int) -> TreeModel:
        if self.size_param not in params:
            raise KeyError(f"Candidate is missing the '{self.size_param}' parameter")
        tree_params = {**self.fixed_params, **{k: v for k, v in params.items() if k != self.size_param}}
        tree = prune_to_size(train.features, train.target, params[self.size_param],
                             task=self.task, params=tree_params, seed=seed)
        return TreeModel(tree, train.feature_names)

    def __repr__(self):
        return f"PruningFitter(task={self.task!r}, size_param={self.size_param!r})"
