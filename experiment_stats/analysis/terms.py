"""
Term Specification and Design Matrix Expansion
==============================================

Model terms are explicit, eagerly resolved descriptions of which columns
enter a linear model:

    Term.main("z_age")                 -> continuous main effect
    Term.main("condition")             -> reference-coded indicators
    Term.interaction("cond", "z_ucla") -> elementwise products after expansion
    Term.parse("cond:z_ucla")          -> same as above

Categorical predictors (ordered categoricals, object or bool columns) expand
into indicator columns named ``col[T.level]``; the first declared level is
the omitted reference. Continuous predictors enter as-is.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Hashable, Iterable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..errors import DataError
from ..preprocessing.constants import INTERCEPT
from ..preprocessing.core import numeric_series, require_columns

MAIN = "main"
INTERACTION = "interaction"
CATEGORICAL = "categorical"
CONTINUOUS = "continuous"


# =============================================================================
# TERMS
# =============================================================================

@dataclass(frozen=True)
class Term:
    columns: tuple
    kind: str = MAIN

    def __post_init__(self):
        columns = tuple(self.columns)
        object.__setattr__(self, "columns", columns)
        if self.kind not in (MAIN, INTERACTION):
            raise DataError(f"Unknown term kind: {self.kind!r} (expected '{MAIN}' or '{INTERACTION}')")
        if self.kind == MAIN and len(columns) != 1:
            raise DataError(f"A main effect references exactly one column, got {list(columns)}")
        if self.kind == INTERACTION and len(columns) < 2:
            raise DataError(f"An interaction references two or more columns, got {list(columns)}")
        if len(set(columns)) != len(columns):
            raise DataError(f"Term repeats a column: {list(columns)}")

    @classmethod
    def main(cls, column: str) -> "Term":
        return cls((column,), MAIN)

    @classmethod
    def interaction(cls, *columns: str) -> "Term":
        return cls(tuple(columns), INTERACTION)

    @classmethod
    def parse(cls, spec: Union["Term", str, Sequence[str], Mapping]) -> "Term":
        """Resolve a term given as Term, "a" / "a:b" string, column list or mapping."""
        if isinstance(spec, Term):
            return spec
        if isinstance(spec, Mapping):
            columns = spec.get("columns")
            if isinstance(columns, str):
                columns = [columns]
            if not columns:
                raise DataError(f"Term mapping without columns: {dict(spec)}")
            kind = spec.get("kind", MAIN if len(columns) == 1 else INTERACTION)
            return cls(tuple(columns), kind)
        if isinstance(spec, str):
            parts = [p.strip() for p in spec.split(":")]
            if any(not p for p in parts):
                raise DataError(f"Malformed term: {spec!r}")
            return cls.main(parts[0]) if len(parts) == 1 else cls.interaction(*parts)
        columns = tuple(spec)
        return cls.main(columns[0]) if len(columns) == 1 else cls.interaction(*columns)

    @property
    def label(self) -> str:
        return ":".join(self.columns)


def parse_terms(terms: Iterable) -> tuple:
    parsed = tuple(Term.parse(t) for t in terms)
    seen = set()
    for term in parsed:
        key = frozenset(term.columns)
        if key in seen:
            raise DataError(f"Duplicate term: {term.label}")
        seen.add(key)
    return parsed


# =============================================================================
# PREDICTORS
# =============================================================================

@dataclass(frozen=True)
class Predictor:
    """Schema of one source column as seen by the model."""

    name: str
    kind: str
    levels: tuple = ()
    mean: float = np.nan
    sd: float = np.nan
    minimum: float = np.nan
    maximum: float = np.nan

    @property
    def is_categorical(self) -> bool:
        return self.kind == CATEGORICAL


def _is_categorical(series: pd.Series) -> bool:
    return (
        isinstance(series.dtype, pd.CategoricalDtype)
        or series.dtype == bool
        or pd.api.types.is_object_dtype(series.dtype)
        or pd.api.types.is_string_dtype(series.dtype)
    )


def _check_no_missing(series: pd.Series, column: str) -> None:
    missing = series.isna()
    if missing.any():
        row = missing[missing].index[0]
        raise DataError(
            f"Column '{column}' has {int(missing.sum())} missing value(s) (first at row {row}); "
            "select complete cases before fitting",
            column=column,
            row=row,
        )


def resolve_predictor(data: pd.DataFrame, column: str) -> Predictor:
    require_columns(data, [column])
    series = data[column]
    _check_no_missing(series, column)

    if _is_categorical(series):
        if isinstance(series.dtype, pd.CategoricalDtype):
            levels = tuple(series.cat.categories)
        elif series.dtype == bool:
            levels = (False, True)
        else:
            try:
                levels = tuple(sorted(series.unique()))
            except TypeError:
                raise DataError(
                    f"Column '{column}' mixes value types and its levels cannot be ordered; "
                    "declare it as a factor with derive_factor before fitting",
                    column=column,
                ) from None
        if len(levels) < 2:
            raise DataError(f"Factor '{column}' needs at least two levels, found {list(levels)}", column=column)
        return Predictor(name=column, kind=CATEGORICAL, levels=levels)

    values = numeric_series(data, column)
    return Predictor(
        name=column,
        kind=CONTINUOUS,
        mean=float(values.mean()),
        sd=float(values.std(ddof=1)) if len(values) > 1 else np.nan,
        minimum=float(values.min()),
        maximum=float(values.max()),
    )


def resolve_predictors(data: pd.DataFrame, terms: Iterable[Term]) -> dict:
    predictors: dict = {}
    for term in terms:
        for column in term.columns:
            if column not in predictors:
                predictors[column] = resolve_predictor(data, column)
    return predictors


# =============================================================================
# DESIGN COLUMNS
# =============================================================================

@dataclass(frozen=True)
class DesignColumn:
    """One expanded column: a product of (source column, level or None) parts."""

    name: str
    parts: tuple

    @property
    def sources(self) -> tuple:
        return tuple(col for col, _ in self.parts)


def _expand_predictor(predictor: Predictor) -> list:
    if predictor.is_categorical:
        return [(predictor.name, level) for level in predictor.levels[1:]]
    return [(predictor.name, None)]


def _part_name(part: tuple) -> str:
    column, level = part
    return column if level is None else f"{column}[T.{level}]"


def expand_terms(terms: Iterable[Term], predictors: Mapping[str, Predictor]) -> tuple:
    """Return the ordered design columns, intercept first."""
    columns = [DesignColumn(INTERCEPT, ())]
    for term in terms:
        per_column = [_expand_predictor(predictors[col]) for col in term.columns]
        for parts in itertools.product(*per_column):
            columns.append(DesignColumn(":".join(_part_name(p) for p in parts), tuple(parts)))
    return tuple(columns)


def _part_values(data: pd.DataFrame, part: tuple) -> np.ndarray:
    column, level = part
    if level is None:
        return numeric_series(data, column).to_numpy(dtype=float)
    return (data[column] == level).to_numpy(dtype=float)


def design_matrix(
    data: pd.DataFrame,
    columns: Sequence[DesignColumn],
) -> pd.DataFrame:
    """Build the expanded numeric design matrix (indicators + products)."""
    matrix = {}
    for column in columns:
        values = np.ones(len(data), dtype=float)
        for part in column.parts:
            values = values * _part_values(data, part)
        matrix[column.name] = values
    return pd.DataFrame(matrix, index=data.index)


def design_row(
    columns: Sequence[DesignColumn],
    values: Mapping[str, Hashable],
) -> np.ndarray:
    """
    Design row for one point of the predictor space.

    ``values`` maps each source column to a level (categorical) or a number
    (continuous).
    """
    row = np.ones(len(columns), dtype=float)
    for i, column in enumerate(columns):
        for source, level in column.parts:
            if level is None:
                row[i] *= float(values[source])
            else:
                row[i] *= 1.0 if values[source] == level else 0.0
    return row


def find_design_column(columns: Sequence[DesignColumn], name: str) -> Optional[DesignColumn]:
    for column in columns:
        if column.name == name:
            return column
    return None
