"""
Core column validation helpers shared by preparation and model fitting.
"""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from ..errors import DataError


def require_columns(data: pd.DataFrame, columns: Iterable[str]) -> None:
    missing = [col for col in columns if col not in data.columns]
    if missing:
        raise DataError(f"Column(s) not found in dataset: {missing}", column=missing[0])


def numeric_series(data: pd.DataFrame, column: str) -> pd.Series:
    """
    Return ``column`` as float, failing on any non-missing non-numeric value.

    Missing values stay missing; they are not an error here.
    """
    require_columns(data, [column])
    series = data[column]
    if isinstance(series.dtype, pd.CategoricalDtype):
        raise DataError(f"Column '{column}' is categorical; a numeric column is required", column=column)
    if series.dtype == bool:
        return series.astype(float)
    numeric = pd.to_numeric(series, errors="coerce")
    bad = series.notna() & numeric.isna()
    if bad.any():
        row = bad[bad].index[0]
        raise DataError(
            f"Column '{column}' row {row}: non-numeric value {series.loc[row]!r}",
            column=column,
            row=row,
        )
    return numeric.astype(float)


def coerce_numeric(data: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Return a copy with ``columns`` converted to float (strict)."""
    result = data.copy()
    for col in columns:
        result[col] = numeric_series(result, col)
    return result


def complete_cases(
    data: pd.DataFrame,
    columns: Iterable[str],
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Explicit listwise deletion over ``columns``.

    Model fitting never drops rows on its own; callers that want a
    complete-case sample ask for it here and get the exclusion count reported.
    """
    columns = list(columns)
    require_columns(data, columns)
    result = data.dropna(subset=columns).copy()
    n_excluded = len(data) - len(result)
    if verbose:
        print(f"  [INFO] complete cases on {columns}: N={len(result)} (excluded {n_excluded})")
    return result
