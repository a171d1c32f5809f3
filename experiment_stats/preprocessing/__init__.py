"""Dataset preparation helpers."""

from .core import coerce_numeric, complete_cases, numeric_series, require_columns
from .factors import Factor, derive_factor, get_factor, recode
from .standardize import standardization_scale, standardize, standardize_columns
from .dataset import load_dataset, population_mask, prepare_dataset

__all__ = [
    "coerce_numeric",
    "complete_cases",
    "numeric_series",
    "require_columns",
    "Factor",
    "derive_factor",
    "get_factor",
    "recode",
    "standardization_scale",
    "standardize",
    "standardize_columns",
    "load_dataset",
    "population_mask",
    "prepare_dataset",
]
