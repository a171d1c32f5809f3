"""
Factor derivation and recoding.

Factors are stored as ordered ``pandas.Categorical`` columns whose categories
are the declared levels, so that level order travels with the data into model
fitting (reference level = first category) and into grouped summaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Mapping, Optional, Sequence, Union

import pandas as pd

from ..errors import DataError

LevelMap = Union[Mapping[Any, Hashable], Sequence[Hashable]]


@dataclass(frozen=True)
class Factor:
    name: str
    levels: tuple
    labels: tuple

    def label_for(self, level: Hashable) -> str:
        return self.labels[self.levels.index(level)]

    @property
    def reference(self) -> Hashable:
        return self.levels[0]


def _as_mapping(level_map: LevelMap) -> dict:
    if isinstance(level_map, Mapping):
        return dict(level_map)
    if isinstance(level_map, (str, bytes)):
        raise TypeError("level_map must be a mapping or a sequence of levels, not a string")
    return {level: level for level in level_map}


def _require_column(data: pd.DataFrame, column: str) -> None:
    if column not in data.columns:
        raise DataError(f"Column '{column}' not found in dataset", column=column)


def derive_factor(
    data: pd.DataFrame,
    column: str,
    level_map: LevelMap,
    new_column: Optional[str] = None,
    strict: bool = False,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Map raw values of ``column`` onto an ordered set of levels.

    Parameters
    ----------
    data : pd.DataFrame
        Input dataset (not modified).
    column : str
        Source column with raw values.
    level_map : mapping or sequence
        Either raw value -> level, or a sequence of levels that are their own
        raw values. Level order is the order of first declaration.
    new_column : str, optional
        Target column (default: overwrite ``column`` in the returned copy).
    strict : bool
        Raise ``DataError`` on the first out-of-domain raw value instead of
        mapping it to missing.
    verbose : bool
        Report how many values fell outside the declared domain.

    Returns
    -------
    pd.DataFrame
        Copy of ``data`` with the factor column.
    """
    _require_column(data, column)
    mapping = _as_mapping(level_map)
    levels = list(dict.fromkeys(mapping.values()))
    if not levels:
        raise DataError(f"No levels declared for factor '{column}'", column=column)

    result = data.copy()
    raw = result[column]
    if isinstance(raw.dtype, pd.CategoricalDtype):
        raw = raw.astype(object)
    mapped = raw.map(lambda value: mapping.get(value) if pd.notna(value) else None)
    out_of_domain = raw.notna() & mapped.isna()

    if out_of_domain.any():
        first_row = out_of_domain[out_of_domain].index[0]
        if strict:
            raise DataError(
                f"Column '{column}' row {first_row}: value {raw.loc[first_row]!r} "
                f"is outside the declared levels {levels}",
                column=column,
                row=first_row,
            )
        if verbose:
            print(f"  [WARN] {column}: {int(out_of_domain.sum())} value(s) outside declared levels -> missing")

    target = new_column or column
    result[target] = pd.Categorical(mapped, categories=levels, ordered=True)
    return result


def get_factor(
    data: pd.DataFrame,
    column: str,
    labels: Optional[Mapping[Hashable, str]] = None,
) -> Factor:
    """Describe a categorical column as a ``Factor`` (levels + display labels)."""
    _require_column(data, column)
    series = data[column]
    if isinstance(series.dtype, pd.CategoricalDtype):
        levels = tuple(series.cat.categories)
    else:
        levels = tuple(sorted(series.dropna().unique()))
    labels = labels or {}
    return Factor(
        name=column,
        levels=levels,
        labels=tuple(str(labels.get(level, level)) for level in levels),
    )


def recode(
    data: pd.DataFrame,
    column: str,
    ruleset: Mapping[Any, Any],
    new_column: Optional[str] = None,
) -> pd.DataFrame:
    """
    Deterministic value-to-value mapping.

    Values without a rule are kept unchanged; missing input stays missing.
    """
    _require_column(data, column)
    rules = dict(ruleset)
    result = data.copy()
    raw = result[column]
    if isinstance(raw.dtype, pd.CategoricalDtype):
        raw = raw.astype(object)
    recoded = raw.map(lambda value: rules.get(value, value) if pd.notna(value) else value)
    result[new_column or column] = recoded
    return result
