from .dataset import Dataset
from .data_manager import DataManager

__all__ = ['Dataset', 'DataManager']
