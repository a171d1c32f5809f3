"""
Analysis Module
===============

Descriptive statistics, OLS fitting and post-hoc decomposition.

Usage:
    from experiment_stats.analysis import (
        fit,
        compute_marginal_means,
        pairwise_contrasts,
        simple_slopes,
    )
"""

from .descriptive_statistics import compute_categorical_stats, describe, describe_by_group
from .terms import Term, parse_terms
from .ols import (
    LinearModel,
    coefficient_table,
    compare_models,
    fit,
    model_summary,
    vif,
    vif_table,
)
from .marginal_means import MarginalMeans, compute_marginal_means, reference_row
from .contrasts import pairwise_contrasts
from .simple_slopes import (
    JohnsonNeyman,
    SimpleSlopes,
    compute_johnson_neyman,
    interaction_predictions,
    simple_slopes,
)

__all__ = [
    # Descriptives
    "compute_categorical_stats",
    "describe",
    "describe_by_group",
    # Model fitting
    "Term",
    "parse_terms",
    "LinearModel",
    "coefficient_table",
    "compare_models",
    "fit",
    "model_summary",
    "vif",
    "vif_table",
    # Marginal means and contrasts
    "MarginalMeans",
    "compute_marginal_means",
    "reference_row",
    "pairwise_contrasts",
    # Moderation
    "JohnsonNeyman",
    "SimpleSlopes",
    "compute_johnson_neyman",
    "interaction_predictions",
    "simple_slopes",
]
