"""
experiment_stats
================

Reproducible statistics for experimental datasets: preparation, descriptive
summaries, OLS models with explicit terms, estimated marginal means,
pairwise contrasts, simple slopes and Johnson-Neyman regions.

Usage:
    from experiment_stats import fit, compute_marginal_means, pairwise_contrasts
    model = fit("rt", ["condition", "z_age"], data)
    emm = compute_marginal_means(model, "condition")
    pairwise_contrasts(emm, adjust="tukey")
"""

from .errors import (
    AnalysisError,
    CollinearityError,
    ConfigError,
    DataError,
    SingularityError,
    UndefinedStandardization,
)
from .preprocessing import (
    Factor,
    coerce_numeric,
    complete_cases,
    derive_factor,
    get_factor,
    prepare_dataset,
    recode,
    standardize,
    standardize_columns,
)
from .analysis import (
    JohnsonNeyman,
    LinearModel,
    MarginalMeans,
    SimpleSlopes,
    Term,
    coefficient_table,
    compare_models,
    compute_johnson_neyman,
    compute_marginal_means,
    describe,
    describe_by_group,
    fit,
    interaction_predictions,
    model_summary,
    pairwise_contrasts,
    simple_slopes,
    vif,
    vif_table,
)
from .config import AnalysisConfig, load_config
from .figures_tables import PlotStyle, emmeans_plot_table

__version__ = "0.1.0"

__all__ = [
    # Errors
    "AnalysisError",
    "CollinearityError",
    "ConfigError",
    "DataError",
    "SingularityError",
    "UndefinedStandardization",
    # Preparation
    "Factor",
    "coerce_numeric",
    "complete_cases",
    "derive_factor",
    "get_factor",
    "prepare_dataset",
    "recode",
    "standardize",
    "standardize_columns",
    # Analysis
    "JohnsonNeyman",
    "LinearModel",
    "MarginalMeans",
    "SimpleSlopes",
    "Term",
    "coefficient_table",
    "compare_models",
    "compute_johnson_neyman",
    "compute_marginal_means",
    "describe",
    "describe_by_group",
    "fit",
    "interaction_predictions",
    "model_summary",
    "pairwise_contrasts",
    "simple_slopes",
    "vif",
    "vif_table",
    # Configuration and figures
    "AnalysisConfig",
    "load_config",
    "PlotStyle",
    "emmeans_plot_table",
]
