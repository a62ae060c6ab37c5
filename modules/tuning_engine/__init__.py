"""
Tuning Engine
=============

Responsibility:
- Turn a configured experiment into a fit function and a scorer.
- Run the cross-validated grid search on the training records.
- Persist the score table, fold consistency, best configuration and model.
"""

from .tuning_engine import TuningEngine

__all__ = ['TuningEngine']
