"""
Cost-Complexity Pruning
=======================

Responsibility:
- Enumerate the nested subtree sequence of a fully grown tree.
- Prune a tree to a requested number of terminal nodes.
- Provide a fit function so the search engine can sweep tree size.
"""

from .cost_complexity import PruningFitter, prune_to_size, pruning_sequence

__all__ = ['PruningFitter', 'prune_to_size', 'pruning_sequence']
