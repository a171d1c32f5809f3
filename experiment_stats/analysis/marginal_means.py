"""
Estimated Marginal Means
========================

Reference-grid marginal means from a fitted ``LinearModel``:

    - every level combination of the requested factors (crossed with the
      levels of an optional ``by`` factor)
    - covariates held at their sample means (zero when standardized)
    - model factors not requested are averaged with equal weights

Each grid row L gives estimate = L·β and SE = sqrt(L Σ Lᵀ) with the model's
residual degrees of freedom. ``by`` strata share the model and covariance.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Hashable, Iterable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..errors import DataError
from .ols import LinearModel, t_critical
from .terms import design_row


@dataclass(frozen=True, eq=False)
class MarginalMeans:
    model: LinearModel
    factors: tuple
    by: Optional[str]
    table: pd.DataFrame
    grid: pd.DataFrame

    def strata(self) -> list:
        """List of (by level or None, row positions) in declaration order."""
        if self.by is None:
            return [(None, list(range(len(self.table))))]
        groups = []
        for level in self.model.predictors[self.by].levels:
            positions = np.flatnonzero(self.table[self.by].to_numpy() == level).tolist()
            groups.append((level, positions))
        return groups

    def labels(self) -> list:
        """Display label of each level combination (levels joined by spaces)."""
        return [
            " ".join(str(row[f]) for f in self.factors)
            for _, row in self.table.iterrows()
        ]

    def covariance(self) -> pd.DataFrame:
        """Covariance matrix of the marginal means, L Σ Lᵀ."""
        L = self.grid.to_numpy()
        cov = L @ self.model.cov_params.to_numpy() @ L.T
        return pd.DataFrame(cov, index=self.table.index, columns=self.table.index)


def _as_tuple(factors: Union[str, Sequence[str]]) -> tuple:
    return (factors,) if isinstance(factors, str) else tuple(factors)


def _require_factor(model: LinearModel, name: str) -> None:
    predictor = model.predictors.get(name)
    if predictor is None or not predictor.is_categorical:
        available = [p.name for p in model.categorical_predictors()]
        raise DataError(
            f"'{name}' is not a categorical predictor of the model (factors: {available})",
            column=name,
        )


def reference_row(model: LinearModel, fixed: Mapping[str, Hashable]) -> np.ndarray:
    """
    Design row at ``fixed`` source-column values.

    Continuous predictors not in ``fixed`` sit at their sample means;
    categorical predictors not in ``fixed`` are averaged over their levels.
    """
    for name in fixed:
        if name not in model.predictors:
            raise DataError(f"'{name}' is not a predictor of the model", column=name)

    base = {
        p.name: p.mean
        for p in model.continuous_predictors()
        if p.name not in fixed
    }
    base.update(fixed)
    free_factors = [p for p in model.categorical_predictors() if p.name not in fixed]

    if not free_factors:
        return design_row(model.columns, base)

    rows = []
    for combo in itertools.product(*(p.levels for p in free_factors)):
        values = dict(base)
        values.update({p.name: level for p, level in zip(free_factors, combo)})
        rows.append(design_row(model.columns, values))
    return np.mean(rows, axis=0)


def compute_marginal_means(
    model: LinearModel,
    factors: Union[str, Iterable[str]],
    by: Optional[str] = None,
) -> MarginalMeans:
    """
    Estimated marginal means for ``factors`` (optionally stratified by ``by``).

    Returns
    -------
    MarginalMeans
        ``table`` has the by column (if any), one column per factor, then
        estimate, se, df, ci_lower, ci_upper.
    """
    factors = _as_tuple(factors)
    if not factors:
        raise ValueError("At least one factor is required")
    for name in factors + ((by,) if by else ()):
        _require_factor(model, name)
    if by is not None and by in factors:
        raise ValueError(f"'{by}' cannot be both a factor and the stratifying factor")

    by_levels = model.predictors[by].levels if by else (None,)
    factor_levels = [model.predictors[f].levels for f in factors]

    records = []
    rows = []
    for by_level in by_levels:
        for combo in itertools.product(*factor_levels):
            fixed = dict(zip(factors, combo))
            record = {}
            if by is not None:
                fixed[by] = by_level
                record[by] = by_level
            record.update(zip(factors, combo))
            records.append(record)
            rows.append(reference_row(model, fixed))

    L = np.vstack(rows)
    beta = model.params.to_numpy()
    sigma = model.cov_params.to_numpy()
    estimate = L @ beta
    se = np.sqrt(np.einsum("ij,jk,ik->i", L, sigma, L))
    t_crit = t_critical(model.conf_level, model.df_resid)

    table = pd.DataFrame(records)
    table["estimate"] = estimate
    table["se"] = se
    table["df"] = model.df_resid
    table["ci_lower"] = estimate - t_crit * se
    table["ci_upper"] = estimate + t_crit * se

    grid = pd.DataFrame(L, columns=model.column_names, index=table.index)
    return MarginalMeans(model=model, factors=factors, by=by, table=table, grid=grid)
