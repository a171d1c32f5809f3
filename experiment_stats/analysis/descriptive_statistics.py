"""
Descriptive Statistics
======================

Table-1 style summaries over non-missing values:

    N, Excluded, Mean, SD (n-1), Median, Min, Max, Skewness, Kurtosis, SE

``describe_by_group`` repeats the summary for every non-empty level
combination of the grouping factors (cartesian product in declared level
order). Missing values are the only rows dropped silently here, and every
drop is counted.

Usage:
    describe(data, [("rt", "Reaction time (ms)"), "accuracy"])
    describe_by_group(data, ["rt"], ["condition", "gender"])
"""

from __future__ import annotations

import itertools
from typing import Iterable, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats

from ..preprocessing.core import numeric_series, require_columns
from ..preprocessing.factors import get_factor

Variable = Union[str, Sequence[str]]

STAT_COLUMNS = ["N", "Excluded", "Mean", "SD", "Median", "Min", "Max", "Skewness", "Kurtosis", "SE"]


def _as_pairs(variables: Iterable[Variable]) -> list:
    pairs = []
    for var in variables:
        if isinstance(var, str):
            pairs.append((var, var))
        else:
            col, label = var
            pairs.append((col, label))
    return pairs


def summarize_series(values: pd.Series) -> dict:
    """Summary statistics of one numeric series (missing values excluded)."""
    observed = values.dropna()
    n = len(observed)
    sd = observed.std() if n > 1 else np.nan
    return {
        "N": n,
        "Excluded": int(values.isna().sum()),
        "Mean": observed.mean() if n else np.nan,
        "SD": sd,
        "Median": observed.median() if n else np.nan,
        "Min": observed.min() if n else np.nan,
        "Max": observed.max() if n else np.nan,
        "Skewness": stats.skew(observed) if n > 2 else np.nan,
        "Kurtosis": stats.kurtosis(observed) if n > 2 else np.nan,
        "SE": sd / np.sqrt(n) if n > 1 else np.nan,
    }


def describe(data: pd.DataFrame, variables: Iterable[Variable]) -> pd.DataFrame:
    """
    Compute descriptive statistics for specified variables.

    Parameters
    ----------
    data : pd.DataFrame
        Prepared dataset
    variables : list of column names or (column_name, display_label) pairs
        Numeric variables to summarize

    Returns
    -------
    pd.DataFrame
        One row per variable: Variable, Column, then the statistics
    """
    pairs = _as_pairs(variables)
    require_columns(data, [col for col, _ in pairs])

    results = []
    for col, label in pairs:
        row = {"Variable": label, "Column": col}
        row.update(summarize_series(numeric_series(data, col)))
        results.append(row)
    return pd.DataFrame(results, columns=["Variable", "Column"] + STAT_COLUMNS)


def describe_by_group(
    data: pd.DataFrame,
    variables: Iterable[Variable],
    group_factors: Sequence[str],
) -> pd.DataFrame:
    """
    Descriptive statistics within every non-empty combination of group levels.

    Rows with a missing value in any grouping factor are excluded; their
    count is reported in ``Group_Excluded`` on every row.
    """
    group_factors = [group_factors] if isinstance(group_factors, str) else list(group_factors)
    if not group_factors:
        raise ValueError("At least one grouping factor is required")
    pairs = _as_pairs(variables)
    require_columns(data, group_factors + [col for col, _ in pairs])

    grouped = data[data[group_factors].notna().all(axis=1)]
    group_excluded = len(data) - len(grouped)
    factors = [get_factor(data, col) for col in group_factors]

    frames = []
    for combo in itertools.product(*(f.levels for f in factors)):
        mask = np.ones(len(grouped), dtype=bool)
        for col, level in zip(group_factors, combo):
            mask &= (grouped[col] == level).to_numpy()
        subset = grouped[mask]
        if subset.empty:
            continue
        table = describe(subset, pairs)
        for position, (col, level) in enumerate(zip(group_factors, combo)):
            table.insert(position, col, level)
        frames.append(table)

    columns = group_factors + ["Variable", "Column"] + STAT_COLUMNS + ["Group_Excluded"]
    if not frames:
        return pd.DataFrame(columns=columns)
    result = pd.concat(frames, ignore_index=True)
    result["Group_Excluded"] = group_excluded
    return result[columns]


def compute_categorical_stats(data: pd.DataFrame, column: str) -> pd.DataFrame:
    """
    Frequency and percentage of each level of a categorical column.

    Percentages are relative to the non-missing total; a Missing row is
    appended when any value is missing.
    """
    factor = get_factor(data, column)
    series = data[column]
    n_total = int(series.notna().sum())

    results = []
    for level, label in zip(factor.levels, factor.labels):
        n = int((series == level).sum())
        results.append({
            "Variable": column,
            "Category": label,
            "N": n,
            "Percent": n / n_total * 100 if n_total else np.nan,
        })

    n_missing = int(series.isna().sum())
    if n_missing > 0:
        results.append({"Variable": column, "Category": "Missing", "N": n_missing, "Percent": np.nan})
    return pd.DataFrame(results, columns=["Variable", "Category", "N", "Percent"])


def print_descriptives(desc: pd.DataFrame, cat: pd.DataFrame = None) -> None:
    """Print descriptive statistics in APA-style format."""
    print("\n  Descriptive Statistics")
    print("  " + "-" * 65)

    if cat is not None and len(cat) > 0:
        print(f"  {'Variable':<35} {'N':>6} {'%':>10}")
        print("  " + "-" * 65)
        for _, row in cat.iterrows():
            percent = f"{row['Percent']:>10.1f}" if pd.notna(row["Percent"]) else f"{'--':>10}"
            print(f"  {row['Variable'] + ': ' + str(row['Category']):<35} {row['N']:>6} {percent}")
        print("  " + "-" * 65)

    print(f"  {'Variable':<35} {'N':>6} {'M':>10} {'SD':>10} {'Excl.':>6}")
    print("  " + "-" * 65)
    for _, row in desc.iterrows():
        print(f"  {row['Variable']:<35} {row['N']:>6} {row['Mean']:>10.2f} {row['SD']:>10.2f} {row['Excluded']:>6}")
    print("  " + "-" * 65)
    print("  Note. M = Mean; SD = Standard Deviation; Excl. = missing values excluded")
