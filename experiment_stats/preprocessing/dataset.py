"""
Dataset preparation.

Loads the raw table and applies the configured derivations in a fixed order:

    recodes -> factors -> numeric coercion -> complete cases -> standardization

Each step returns a new frame; the raw input is never modified.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

import pandas as pd

from ..errors import DataError
from .core import coerce_numeric, complete_cases, require_columns
from .factors import derive_factor, recode
from .standardize import standardize_columns


def load_dataset(path: Path, verbose: bool = False) -> pd.DataFrame:
    """Read the raw CSV dataset."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")
    data = pd.read_csv(path, encoding="utf-8-sig")
    if verbose:
        print(f"  [INFO] Loaded {path.name}: {len(data)} rows x {len(data.columns)} columns")
    return data


def population_mask(data: pd.DataFrame, selection: Optional[Mapping[str, tuple]]) -> Optional[pd.Series]:
    """
    Boolean mask of the standardization population.

    ``selection`` maps column -> allowed values; conditions are combined with
    AND. An empty selection means the whole sample.
    """
    if not selection:
        return None
    require_columns(data, list(selection))
    mask = pd.Series(True, index=data.index)
    for column, values in selection.items():
        series = data[column]
        if isinstance(series.dtype, pd.CategoricalDtype):
            series = series.astype(object)
        mask &= series.isin(list(values))
    if not mask.any():
        raise DataError(f"Standardization population {dict(selection)} selects no rows")
    return mask


def prepare_dataset(raw: pd.DataFrame, prep, verbose: bool = False) -> pd.DataFrame:
    """
    Apply a ``PreparationConfig`` to ``raw``.

    Parameters
    ----------
    raw : pd.DataFrame
        Raw dataset (not modified).
    prep : PreparationConfig
        Recodes, factor declarations, numeric columns, complete-case columns,
        standardized columns and the standardization population.
    verbose : bool
        Print progress.

    Returns
    -------
    pd.DataFrame
        Prepared dataset.
    """
    data = raw.copy()

    for spec in prep.recodes:
        data = recode(data, spec.column, spec.rules, new_column=spec.new_column)
        if verbose:
            print(f"  [INFO] recoded {spec.column} ({len(spec.rules)} rule(s))")

    for spec in prep.factors:
        data = derive_factor(
            data,
            spec.column,
            spec.levels,
            new_column=spec.new_column,
            strict=prep.strict_factors,
            verbose=verbose,
        )
        if verbose:
            target = spec.new_column or spec.column
            print(f"  [INFO] factor {target}: levels {list(data[target].cat.categories)}")

    if prep.numeric:
        data = coerce_numeric(data, prep.numeric)

    if prep.complete_cases:
        data = complete_cases(data, prep.complete_cases, verbose=verbose)

    if prep.standardize:
        mask = population_mask(data, prep.standardize_population)
        data = standardize_columns(data, prep.standardize, population=mask)
        if verbose:
            scope = "full sample" if mask is None else f"{int(mask.sum())} rows of {dict(prep.standardize_population)}"
            print(f"  [INFO] standardized {list(prep.standardize)} over {scope}")

    return data
