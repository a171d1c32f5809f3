"""
Ordinary Least Squares Model Fitting
====================================

Fits a linear model from an explicit term specification. The design matrix
is expanded eagerly (see ``terms.py``), validated for rank and residual
degrees of freedom, and estimated in closed form with statsmodels OLS.

Reports:
    - coefficients, SE, t, two-sided p (Student-t, df = n - rank(X)), CI
    - R², adjusted R², overall F
    - VIF per design column (optional)
    - R² change between nested models (hierarchical steps)

Usage:
    from experiment_stats.analysis.ols import fit, coefficient_table
    model = fit("rt", ["condition", "z_age"], data)
    coefficient_table(model)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats
from statsmodels.stats.outliers_influence import variance_inflation_factor

from ..errors import CollinearityError, DataError, SingularityError
from ..preprocessing.constants import DEFAULT_CONF_LEVEL, INTERCEPT
from ..preprocessing.core import numeric_series, require_columns
from .terms import (
    Predictor,
    design_matrix,
    expand_terms,
    parse_terms,
    resolve_predictors,
)


@dataclass(frozen=True, eq=False)
class LinearModel:
    outcome: str
    terms: tuple
    predictors: Mapping[str, Predictor]
    columns: tuple
    design: pd.DataFrame
    response: pd.Series
    params: pd.Series
    cov_params: pd.DataFrame
    bse: pd.Series
    tvalues: pd.Series
    pvalues: pd.Series
    df_resid: float
    df_model: float
    n_obs: int
    rsquared: float
    rsquared_adj: float
    fvalue: float
    f_pvalue: float
    conf_level: float = DEFAULT_CONF_LEVEL
    results: Any = field(default=None, repr=False)

    @property
    def column_names(self) -> list:
        return [col.name for col in self.columns]

    def categorical_predictors(self) -> list:
        return [p for p in self.predictors.values() if p.is_categorical]

    def continuous_predictors(self) -> list:
        return [p for p in self.predictors.values() if not p.is_categorical]


def _dependent_columns(X: np.ndarray, names: list) -> list:
    """Columns that do not increase the rank when added left to right."""
    basis: list = []
    dependent = []
    for j, name in enumerate(names):
        candidate = basis + [j]
        if np.linalg.matrix_rank(X[:, candidate]) > len(basis):
            basis = candidate
        else:
            dependent.append(name)
    return dependent


def check_design(design: pd.DataFrame) -> None:
    """Fail on df_resid <= 0 or rank deficiency."""
    n_obs, n_columns = design.shape
    if n_obs - n_columns <= 0:
        raise SingularityError(n_obs, n_columns)
    X = design.to_numpy(dtype=float)
    if np.linalg.matrix_rank(X) < n_columns:
        raise CollinearityError(_dependent_columns(X, list(design.columns)))


def fit(
    outcome: str,
    terms: Iterable,
    data: pd.DataFrame,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> LinearModel:
    """
    Fit an OLS model ``outcome ~ terms``.

    Parameters
    ----------
    outcome : str
        Numeric outcome column.
    terms : iterable
        ``Term`` objects or their shorthand (``"x"``, ``"a:b"``, column lists).
    data : pd.DataFrame
        Prepared dataset. Rows with missing values in any used column raise
        ``DataError``; use ``complete_cases`` first.
    conf_level : float
        Width of reported confidence intervals.

    Returns
    -------
    LinearModel
    """
    if not 0 < conf_level < 1:
        raise ValueError(f"conf_level must lie in (0, 1), got {conf_level}")
    terms = parse_terms(terms)
    require_columns(data, [outcome] + [col for term in terms for col in term.columns])

    y = numeric_series(data, outcome)
    if y.isna().any():
        row = y[y.isna()].index[0]
        raise DataError(
            f"Outcome '{outcome}' has {int(y.isna().sum())} missing value(s) (first at row {row})",
            column=outcome,
            row=row,
        )

    predictors = resolve_predictors(data, terms)
    columns = expand_terms(terms, predictors)
    design = design_matrix(data, columns)
    check_design(design)

    results = sm.OLS(y, design).fit()

    return LinearModel(
        outcome=outcome,
        terms=terms,
        predictors=predictors,
        columns=columns,
        design=design,
        response=y,
        params=results.params,
        cov_params=results.cov_params(),
        bse=results.bse,
        tvalues=results.tvalues,
        pvalues=results.pvalues,
        df_resid=float(results.df_resid),
        df_model=float(results.df_model),
        n_obs=int(results.nobs),
        rsquared=float(results.rsquared),
        rsquared_adj=float(results.rsquared_adj),
        fvalue=float(results.fvalue) if results.df_model > 0 else np.nan,
        f_pvalue=float(results.f_pvalue) if results.df_model > 0 else np.nan,
        conf_level=conf_level,
        results=results,
    )


def t_critical(conf_level: float, df: float) -> float:
    return float(stats.t.ppf(1 - (1 - conf_level) / 2, df))


# =============================================================================
# RESULT EXTRACTION
# =============================================================================

def coefficient_table(model: LinearModel, conf_level: Optional[float] = None) -> pd.DataFrame:
    """Coefficients with SE, t, p and confidence interval."""
    conf_level = model.conf_level if conf_level is None else conf_level
    t_crit = t_critical(conf_level, model.df_resid)
    table = pd.DataFrame(
        {
            "term": model.params.index,
            "estimate": model.params.to_numpy(),
            "se": model.bse.to_numpy(),
            "t": model.tvalues.to_numpy(),
            "p": model.pvalues.to_numpy(),
        }
    )
    table["ci_lower"] = table["estimate"] - t_crit * table["se"]
    table["ci_upper"] = table["estimate"] + t_crit * table["se"]
    table["conf_level"] = conf_level
    return table


def model_summary(model: LinearModel) -> dict:
    return {
        "outcome": model.outcome,
        "n": model.n_obs,
        "df_model": model.df_model,
        "df_resid": model.df_resid,
        "r2": model.rsquared,
        "adj_r2": model.rsquared_adj,
        "f": model.fvalue,
        "f_p": model.f_pvalue,
        "conf_level": model.conf_level,
    }


# =============================================================================
# DIAGNOSTICS
# =============================================================================

def vif(model: LinearModel, predictor: str) -> float:
    """
    Variance inflation factor 1 / (1 - R²_j) of design column ``predictor``.

    R²_j comes from regressing that column on all remaining design columns
    (intercept included).
    """
    names = model.column_names
    if predictor == INTERCEPT:
        raise ValueError("VIF is not defined for the intercept")
    if predictor not in names:
        raise DataError(f"'{predictor}' is not a design column of the model: {names}", column=predictor)
    return float(variance_inflation_factor(model.design.to_numpy(dtype=float), names.index(predictor)))


def vif_table(model: LinearModel) -> pd.DataFrame:
    rows = [
        {"term": name, "vif": vif(model, name)}
        for name in model.column_names
        if name != INTERCEPT
    ]
    return pd.DataFrame(rows, columns=["term", "vif"])


def compare_models(reduced: LinearModel, full: LinearModel) -> dict:
    """
    Test the R² change between nested models (hierarchical regression step).

    Returns
    -------
    dict
        delta_r2, f_change, df1, df2, p
    """
    if reduced.outcome != full.outcome or reduced.n_obs != full.n_obs:
        raise ValueError("Nested comparison requires the same outcome and sample")
    df1 = full.df_model - reduced.df_model
    df2 = full.df_resid
    if df1 <= 0:
        raise ValueError("Full model must have more parameters than the reduced model")
    delta_r2 = full.rsquared - reduced.rsquared
    f_change = (delta_r2 / df1) / ((1 - full.rsquared) / df2)
    return {
        "delta_r2": delta_r2,
        "f_change": f_change,
        "df1": df1,
        "df2": df2,
        "p": float(stats.f.sf(f_change, df1, df2)),
    }


def design_column_index(model: LinearModel, name: str) -> int:
    names = model.column_names
    if name not in names:
        raise DataError(f"'{name}' is not a design column of the model: {names}", column=name)
    return names.index(name)


def find_columns(model: LinearModel, *sources: str) -> list:
    """Design columns whose source columns are exactly ``sources`` (any order)."""
    wanted = sorted(sources)
    return [col for col in model.columns if sorted(col.sources) == wanted]

