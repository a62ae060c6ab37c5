"""
Utility package setup.

Enables pandas Copy-on-Write globally so that dataset subsets handed to
model-fitting callbacks never alias the loaded table.
"""

import pandas as pd

pd.options.mode.copy_on_write = True
