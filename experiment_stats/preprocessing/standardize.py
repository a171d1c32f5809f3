"""
Z-score standardization.

The scale (mean, SD with n-1 denominator) is computed over a caller-chosen
standardization population; by default every row with an observed value.
"""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np
import pandas as pd

from ..errors import UndefinedStandardization
from .constants import Z_PREFIX
from .core import numeric_series


def standardization_scale(
    data: pd.DataFrame,
    column: str,
    population: Optional[pd.Series] = None,
) -> tuple[float, float]:
    """Return (mean, sd) of ``column`` over the standardization population."""
    values = numeric_series(data, column)
    if population is not None:
        mask = pd.Series(population, index=data.index).fillna(False).astype(bool)
        values = values[mask]
    values = values.dropna()
    if len(values) < 2:
        raise UndefinedStandardization(column, f"{len(values)} observed value(s); at least 2 are required")
    mean = float(values.mean())
    sd = float(values.std(ddof=1))
    if not np.isfinite(sd) or sd == 0:
        raise UndefinedStandardization(column)
    return mean, sd


def standardize(
    data: pd.DataFrame,
    column: str,
    new_column: Optional[str] = None,
    population: Optional[pd.Series] = None,
) -> pd.DataFrame:
    """
    Add ``z_<column>`` = (x - mean) / sd to a copy of ``data``.

    Parameters
    ----------
    data : pd.DataFrame
        Input dataset (not modified).
    column : str
        Numeric column to standardize.
    new_column : str, optional
        Name of the derived column (default ``z_<column>``).
    population : pd.Series of bool, optional
        Rows whose mean/SD define the scale. Rows outside the population are
        still transformed with that scale.
    """
    mean, sd = standardization_scale(data, column, population)
    result = data.copy()
    result[new_column or f"{Z_PREFIX}{column}"] = (numeric_series(data, column) - mean) / sd
    return result


def standardize_columns(
    data: pd.DataFrame,
    columns: Iterable[str],
    population: Optional[pd.Series] = None,
) -> pd.DataFrame:
    result = data
    for col in columns:
        result = standardize(result, col, population=population)
    return result
