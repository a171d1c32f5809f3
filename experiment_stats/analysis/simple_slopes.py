"""
Simple Slopes and Johnson-Neyman Regions
========================================

Decomposes a pred × modx interaction into the conditional slope of the
continuous predictor ``pred`` at chosen moderator values:

    slope(m) = β_pred + β_int·m
    SE²(m)   = Var(β_pred) + m²·Var(β_int) + 2m·Cov(β_pred, β_int)

Both come from the gradient g(m) of the design row with respect to ``pred``
(slope = g·β, SE = sqrt(g Σ gᵀ)), which also covers factor moderators: one
slope per level, the reference level giving β_pred.

Johnson-Neyman (continuous moderator only) solves

    (b0 + b1·W)² = t_crit² · (v0 + 2W·c01 + W²·v1)

for the moderator values W where the confidence bound of the slope crosses
zero.

Usage:
    model = fit("rt", ["z_ucla", "z_age", "z_ucla:z_age"], data)
    simple_slopes(model, "z_ucla", "z_age", johnson_neyman=True).table
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from ..errors import DataError
from ..preprocessing.constants import DEFAULT_SLOPE_SD_STEPS
from .marginal_means import reference_row
from .ols import LinearModel, t_critical
from .terms import INTERACTION, Predictor


@dataclass(frozen=True)
class JohnsonNeyman:
    """
    Region of moderator values where the simple slope is significant.

    With ``significant_inside`` the slope is significant for
    lower <= W <= upper, otherwise for W <= lower or W >= upper. Bounds may be
    infinite (a single crossing) or NaN (no crossing at all).
    """

    pred: str
    modx: str
    lower: float
    upper: float
    significant_inside: bool
    always_significant: bool
    never_significant: bool
    t_crit: float
    conf_level: float
    modx_min: float
    modx_max: float

    def is_significant(self, value: float) -> bool:
        if self.always_significant:
            return True
        if self.never_significant:
            return False
        inside = self.lower <= value <= self.upper
        return inside if self.significant_inside else not inside

    def as_dict(self) -> dict:
        return {
            "pred": self.pred,
            "modx": self.modx,
            "lower": self.lower,
            "upper": self.upper,
            "significant_inside": self.significant_inside,
            "always_significant": self.always_significant,
            "never_significant": self.never_significant,
            "t_crit": self.t_crit,
            "conf_level": self.conf_level,
            "modx_min": self.modx_min,
            "modx_max": self.modx_max,
        }

    def describe(self) -> str:
        if self.always_significant:
            return f"slope of {self.pred} is significant for all values of {self.modx}"
        if self.never_significant:
            return f"slope of {self.pred} is not significant for any value of {self.modx}"
        if self.significant_inside:
            return f"slope of {self.pred} is significant for {self.lower:.4g} <= {self.modx} <= {self.upper:.4g}"
        return f"slope of {self.pred} is significant for {self.modx} <= {self.lower:.4g} or {self.modx} >= {self.upper:.4g}"


@dataclass(frozen=True, eq=False)
class SimpleSlopes:
    pred: str
    modx: str
    table: pd.DataFrame
    johnson_neyman: Optional[JohnsonNeyman] = None


# =============================================================================
# VALIDATION
# =============================================================================

def _check_interaction(model: LinearModel, pred: str, modx: str) -> tuple:
    for name in (pred, modx):
        if name not in model.predictors:
            raise DataError(f"'{name}' is not a predictor of the model", column=name)
    if pred == modx:
        raise ValueError("pred and modx must be different columns")
    pred_info = model.predictors[pred]
    if pred_info.is_categorical:
        raise DataError(f"Simple slopes need a continuous predictor; '{pred}' is categorical", column=pred)

    interactions = [t for t in model.terms if t.kind == INTERACTION and pred in t.columns]
    if not any(set(t.columns) == {pred, modx} for t in interactions):
        raise DataError(f"Model has no {pred}:{modx} interaction term", column=modx)
    others = [t.label for t in interactions if set(t.columns) != {pred, modx}]
    if others:
        raise DataError(
            f"'{pred}' also enters other interactions ({', '.join(others)}); "
            f"its slope is not a function of '{modx}' alone",
            column=pred,
        )
    return pred_info, model.predictors[modx]


def slope_gradient(model: LinearModel, pred: str, modx: str, modx_value) -> np.ndarray:
    """Derivative of the design row with respect to ``pred`` at ``modx = modx_value``."""
    grad = np.zeros(len(model.columns), dtype=float)
    for i, column in enumerate(model.columns):
        if pred not in column.sources:
            continue
        value = 1.0
        for source, level in column.parts:
            if source == pred:
                continue
            if level is None:
                value *= float(modx_value)
            else:
                value *= 1.0 if modx_value == level else 0.0
        grad[i] = value
    return grad


def default_modx_values(modx_info: Predictor) -> list:
    """(value, label) pairs: factor levels, or mean - 1 SD, mean, mean + 1 SD."""
    if modx_info.is_categorical:
        return [(level, str(level)) for level in modx_info.levels]
    points = []
    for step in DEFAULT_SLOPE_SD_STEPS:
        if step == 0:
            label = "Mean"
        else:
            sign = "+" if step > 0 else "-"
            label = f"Mean {sign} {abs(step):g} SD"
        points.append((modx_info.mean + step * modx_info.sd, label))
    return points


def _modx_points(modx_info: Predictor, modx_values: Optional[Sequence]) -> list:
    if modx_values is None:
        return default_modx_values(modx_info)
    points = []
    for value in modx_values:
        if modx_info.is_categorical:
            if value not in modx_info.levels:
                raise DataError(
                    f"'{value}' is not a level of '{modx_info.name}' {list(modx_info.levels)}",
                    column=modx_info.name,
                )
            points.append((value, str(value)))
        else:
            points.append((float(value), f"{float(value):g}"))
    return points


# =============================================================================
# SIMPLE SLOPES
# =============================================================================

def simple_slopes(
    model: LinearModel,
    pred: str,
    modx: str,
    modx_values: Optional[Sequence] = None,
    conf_level: Optional[float] = None,
    johnson_neyman: bool = False,
) -> SimpleSlopes:
    """
    Conditional slope of ``pred`` at each moderator value.

    Parameters
    ----------
    model : LinearModel
        Model containing the ``pred:modx`` interaction (and no other
        interaction involving ``pred``).
    pred : str
        Continuous focal predictor.
    modx : str
        Continuous or categorical moderator.
    modx_values : sequence, optional
        Explicit moderator values (levels for a factor). Default: mean - 1 SD,
        mean, mean + 1 SD, or every level.
    conf_level : float, optional
        CI width (default: the model's).
    johnson_neyman : bool
        Also compute the Johnson-Neyman region (continuous moderator only).

    Returns
    -------
    SimpleSlopes
        ``table`` columns: modx_value, label, slope, se, df, t, p, ci_lower,
        ci_upper, conf_level.
    """
    _, modx_info = _check_interaction(model, pred, modx)
    conf_level = model.conf_level if conf_level is None else conf_level
    t_crit = t_critical(conf_level, model.df_resid)
    beta = model.params.to_numpy()
    sigma = model.cov_params.to_numpy()

    records = []
    for value, label in _modx_points(modx_info, modx_values):
        grad = slope_gradient(model, pred, modx, value)
        slope = float(grad @ beta)
        se = float(np.sqrt(grad @ sigma @ grad))
        t_value = slope / se
        records.append(
            {
                "modx_value": value,
                "label": label,
                "slope": slope,
                "se": se,
                "df": model.df_resid,
                "t": t_value,
                "p": float(2 * stats.t.sf(abs(t_value), model.df_resid)),
                "ci_lower": slope - t_crit * se,
                "ci_upper": slope + t_crit * se,
                "conf_level": conf_level,
            }
        )

    region = None
    if johnson_neyman:
        region = compute_johnson_neyman(model, pred, modx, conf_level=conf_level)
    return SimpleSlopes(pred=pred, modx=modx, table=pd.DataFrame(records), johnson_neyman=region)


# =============================================================================
# JOHNSON-NEYMAN
# =============================================================================

def compute_johnson_neyman(
    model: LinearModel,
    pred: str,
    modx: str,
    conf_level: Optional[float] = None,
) -> JohnsonNeyman:
    """Solve a·W² + b·W + c = 0 for the boundaries of significance."""
    _, modx_info = _check_interaction(model, pred, modx)
    if modx_info.is_categorical:
        raise DataError(f"Johnson-Neyman needs a continuous moderator; '{modx}' is categorical", column=modx)
    conf_level = model.conf_level if conf_level is None else conf_level
    t_crit = t_critical(conf_level, model.df_resid)

    beta = model.params.to_numpy()
    sigma = model.cov_params.to_numpy()
    # slope(W) = g0·β + W·(g1·β) with g0 the gradient at W = 0
    g0 = slope_gradient(model, pred, modx, 0.0)
    g1 = slope_gradient(model, pred, modx, 1.0) - g0
    b0, b1 = float(g0 @ beta), float(g1 @ beta)
    v0, v1, c01 = float(g0 @ sigma @ g0), float(g1 @ sigma @ g1), float(g0 @ sigma @ g1)

    t2 = t_crit ** 2
    a = t2 * v1 - b1 ** 2
    b = 2 * (t2 * c01 - b0 * b1)
    c = t2 * v0 - b0 ** 2

    # significant where a·W² + b·W + c < 0
    lower = upper = np.nan
    inside = always = never = False
    if a == 0:
        if b == 0:
            always, never = c < 0, c >= 0
        else:
            root = -c / b
            inside = True
            lower, upper = (-np.inf, root) if b > 0 else (root, np.inf)
    else:
        disc = b ** 2 - 4 * a * c
        if disc <= 0:
            # no crossing: sign of the quadratic is the sign of a everywhere
            always, never = a < 0, a > 0
        else:
            roots = sorted([(-b - np.sqrt(disc)) / (2 * a), (-b + np.sqrt(disc)) / (2 * a)])
            lower, upper = float(roots[0]), float(roots[1])
            inside = a > 0

    return JohnsonNeyman(
        pred=pred,
        modx=modx,
        lower=float(lower),
        upper=float(upper),
        significant_inside=bool(inside),
        always_significant=bool(always),
        never_significant=bool(never),
        t_crit=t_crit,
        conf_level=conf_level,
        modx_min=modx_info.minimum,
        modx_max=modx_info.maximum,
    )


# =============================================================================
# INTERACTION PREDICTIONS (plot data)
# =============================================================================

def interaction_predictions(
    model: LinearModel,
    pred: str,
    modx: str,
    modx_values: Optional[Sequence] = None,
    n_points: int = 50,
) -> pd.DataFrame:
    """
    Predicted outcome over the observed range of ``pred`` at each moderator value.

    Other covariates sit at their means; other factors are averaged.
    """
    _, modx_info = _check_interaction(model, pred, modx)
    if n_points < 2:
        raise ValueError("n_points must be at least 2")
    pred_info = model.predictors[pred]
    t_crit = t_critical(model.conf_level, model.df_resid)
    beta = model.params.to_numpy()
    sigma = model.cov_params.to_numpy()
    grid = np.linspace(pred_info.minimum, pred_info.maximum, n_points)

    records = []
    for value, label in _modx_points(modx_info, modx_values):
        for x in grid:
            row = reference_row(model, {pred: float(x), modx: value})
            estimate = float(row @ beta)
            se = float(np.sqrt(row @ sigma @ row))
            records.append(
                {
                    "modx_value": value,
                    "modx_label": label,
                    pred: float(x),
                    "estimate": estimate,
                    "se": se,
                    "ci_lower": estimate - t_crit * se,
                    "ci_upper": estimate + t_crit * se,
                }
            )
    return pd.DataFrame(records)
