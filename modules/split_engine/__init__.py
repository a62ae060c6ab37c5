from .split_engine import SplitEngine

__all__ = ['SplitEngine']
