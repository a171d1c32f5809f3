"""
Pairwise Contrasts Between Marginal Means
=========================================

Every unordered pair of level combinations within a stratum, in declaration
order. The difference vector d = L_A - L_B gives

    estimate = d·β,   SE = sqrt(d Σ dᵀ),   t = estimate / SE

so the covariance of the two means is taken from the shared coefficient
covariance matrix. Raw p-values are two-sided Student-t with the model's
residual df.

Adjustment (per stratum):
    none                 raw p
    tukey                studentized range, k = number of means in the stratum
    bonferroni/holm/...  statsmodels multipletests

Usage:
    emm = compute_marginal_means(model, "condition")
    pairwise_contrasts(emm, adjust="holm")
"""

from __future__ import annotations

import itertools

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multitest import multipletests

from ..preprocessing.constants import ADJUST_METHODS, DEFAULT_ADJUST, normalize_adjust
from .marginal_means import MarginalMeans

CONTRAST_COLUMNS = ["contrast", "level_a", "level_b", "estimate", "se", "df", "t", "p_raw", "p", "adjust"]


def tukey_pvalues(t_values: np.ndarray, n_means: int, df: float) -> np.ndarray:
    """Tukey HSD p-values: P(Q > |t|·√2) for the studentized range with k means."""
    q = np.abs(np.asarray(t_values, dtype=float)) * np.sqrt(2.0)
    p = stats.studentized_range.sf(q, n_means, df)
    return np.clip(p, 0.0, 1.0)


def adjust_pvalues(p_raw: np.ndarray, method: str, t_values=None, n_means: int = 2, df: float = np.inf) -> np.ndarray:
    key = normalize_adjust(method)
    p_raw = np.asarray(p_raw, dtype=float)
    if key == "none" or len(p_raw) == 0:
        return p_raw.copy()
    if key == "tukey":
        if t_values is None:
            raise ValueError("Tukey adjustment needs the t statistics")
        return tukey_pvalues(t_values, n_means, df)
    _, p_adjusted, _, _ = multipletests(p_raw, method=ADJUST_METHODS[key])
    return p_adjusted


def pairwise_contrasts(
    emm: MarginalMeans,
    reverse: bool = False,
    adjust: str = DEFAULT_ADJUST,
) -> pd.DataFrame:
    """
    All pairwise differences between the marginal means of ``emm``.

    Parameters
    ----------
    emm : MarginalMeans
        Output of ``compute_marginal_means``.
    reverse : bool
        Report B - A instead of A - B (same pairs, same order, negated
        estimates and t; identical SE and p).
    adjust : str
        none, tukey, bonferroni, holm, sidak or fdr (Benjamini-Hochberg).

    Returns
    -------
    pd.DataFrame
        [by], contrast, level_a, level_b, estimate, se, df, t, p_raw, p, adjust
    """
    key = normalize_adjust(adjust)
    labels = emm.labels()
    L = emm.grid.to_numpy()
    beta = emm.model.params.to_numpy()
    sigma = emm.model.cov_params.to_numpy()
    df = emm.model.df_resid

    frames = []
    for stratum, positions in emm.strata():
        records = []
        for i, j in itertools.combinations(positions, 2):
            first, second = (j, i) if reverse else (i, j)
            d = L[first] - L[second]
            estimate = float(d @ beta)
            se = float(np.sqrt(d @ sigma @ d))
            t_value = estimate / se
            record = {} if emm.by is None else {emm.by: stratum}
            record.update(
                {
                    "contrast": f"{labels[first]} - {labels[second]}",
                    "level_a": labels[first],
                    "level_b": labels[second],
                    "estimate": estimate,
                    "se": se,
                    "df": df,
                    "t": t_value,
                    "p_raw": float(2 * stats.t.sf(abs(t_value), df)),
                }
            )
            records.append(record)

        stratum_table = pd.DataFrame(records)
        if stratum_table.empty:
            continue
        stratum_table["p"] = adjust_pvalues(
            stratum_table["p_raw"].to_numpy(),
            key,
            t_values=stratum_table["t"].to_numpy(),
            n_means=len(positions),
            df=df,
        )
        stratum_table["adjust"] = key
        frames.append(stratum_table)

    columns = ([emm.by] if emm.by else []) + CONTRAST_COLUMNS
    if not frames:
        return pd.DataFrame(columns=columns)
    return pd.concat(frames, ignore_index=True)[columns]
