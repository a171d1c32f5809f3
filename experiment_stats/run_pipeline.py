"""
Analysis Pipeline
=================

Runs one configured analysis end to end:

    1. Load and prepare the dataset (recodes, factors, complete cases, z-scores)
    2. Descriptive statistics (overall, by group, categorical frequencies)
    3. Per model: coefficients, fit summary, VIF, marginal means + contrasts,
       simple slopes + Johnson-Neyman, figures
    4. Session info (Python and library versions)

Every step either succeeds or aborts the run; nothing is written for a model
whose fit fails.

Output:
    <output_dir>/stats/descriptives/*.csv
    <output_dir>/stats/<model>/*.csv
    <output_dir>/figures/<model>/*.png
    <output_dir>/session_info.txt

Usage:
    python -m experiment_stats --config configs/example_analysis.yml
    python -m experiment_stats --config configs/example_analysis.yml --quiet
"""

from __future__ import annotations

import argparse
import platform
import sys
from dataclasses import replace
from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import Optional

import pandas as pd

from .analysis.contrasts import pairwise_contrasts
from .analysis.descriptive_statistics import (
    compute_categorical_stats,
    describe,
    describe_by_group,
    print_descriptives,
)
from .analysis.marginal_means import compute_marginal_means
from .analysis.ols import coefficient_table, fit, model_summary, vif_table
from .analysis.simple_slopes import interaction_predictions, simple_slopes
from .analysis.utils import (
    format_coefficient,
    format_pvalue,
    print_coefficients,
    print_section_header,
    save_table,
)
from .config import AnalysisConfig, ModelConfig, load_config
from .errors import AnalysisError
from .figures_tables.plot_data import emmeans_plot_table
from .figures_tables.plots import plot_interaction, plot_marginal_means
from .preprocessing.dataset import load_dataset, prepare_dataset

SESSION_PACKAGES = ("numpy", "pandas", "scipy", "statsmodels", "matplotlib", "seaborn", "PyYAML")


def session_info() -> str:
    lines = [
        f"Date: {datetime.now().isoformat(timespec='seconds')}",
        f"Python: {sys.version.split()[0]}",
        f"Platform: {platform.platform()}",
        "",
        "Packages:",
    ]
    for name in SESSION_PACKAGES:
        try:
            version = metadata.version(name)
        except metadata.PackageNotFoundError:
            version = "not installed"
        lines.append(f"  {name}: {version}")
    return "\n".join(lines) + "\n"


def write_session_info(output_dir: Path, verbose: bool = False) -> Path:
    path = Path(output_dir) / "session_info.txt"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(session_info(), encoding="utf-8")
    if verbose:
        print(f"  [SAVE] {path}")
    return path


# =============================================================================
# STEPS
# =============================================================================

def run_descriptives(data: pd.DataFrame, config: AnalysisConfig, verbose: bool = True) -> dict:
    spec = config.descriptives
    if not spec.variables and not spec.categorical:
        return {}
    if verbose:
        print_section_header("DESCRIPTIVE STATISTICS")

    stats_dir = config.output_dir / "stats" / "descriptives"
    results = {}
    if spec.variables:
        results["total"] = describe(data, spec.variables)
        save_table(results["total"], stats_dir / "descriptives.csv", verbose)
        if spec.group_by:
            results["by_group"] = describe_by_group(data, spec.variables, spec.group_by)
            save_table(results["by_group"], stats_dir / "descriptives_by_group.csv", verbose)

    if spec.categorical:
        results["categorical"] = pd.concat(
            [compute_categorical_stats(data, col) for col in spec.categorical],
            ignore_index=True,
        )
        save_table(results["categorical"], stats_dir / "categorical.csv", verbose)

    if verbose and "total" in results:
        print_descriptives(results["total"], results.get("categorical"))
    return results


def run_model(data: pd.DataFrame, spec: ModelConfig, config: AnalysisConfig, verbose: bool = True) -> dict:
    if verbose:
        print_section_header(f"MODEL: {spec.name} ({spec.outcome} ~ {' + '.join(t.label for t in spec.terms)})")

    stats_dir = config.output_dir / "stats" / spec.name
    figures_dir = config.output_dir / "figures" / spec.name

    model = fit(spec.outcome, spec.terms, data, conf_level=config.conf_level)
    coefs = coefficient_table(model)
    summary = pd.DataFrame([model_summary(model)])
    save_table(coefs, stats_dir / "coefficients.csv", verbose)
    save_table(summary, stats_dir / "model_summary.csv", verbose)
    results = {"model": model, "coefficients": coefs, "summary": summary}

    if verbose:
        print(f"  N = {model.n_obs}, R² = {format_coefficient(model.rsquared)}, "
              f"adj. R² = {format_coefficient(model.rsquared_adj)}, "
              f"F({model.df_model:.0f}, {model.df_resid:.0f}) = {format_coefficient(model.fvalue, 2)}, "
              f"p = {format_pvalue(model.f_pvalue)}")
        print_coefficients(coefs)

    if spec.vif:
        results["vif"] = vif_table(model)
        save_table(results["vif"], stats_dir / "vif.csv", verbose)

    for emm_spec in spec.emmeans:
        tag = "_".join(emm_spec.factors) + (f"_by_{emm_spec.by}" if emm_spec.by else "")
        emm = compute_marginal_means(model, emm_spec.factors, by=emm_spec.by)
        contrasts = pairwise_contrasts(emm, reverse=emm_spec.reverse, adjust=emm_spec.adjust)
        save_table(emm.table, stats_dir / f"emmeans_{tag}.csv", verbose)
        save_table(contrasts, stats_dir / f"contrasts_{tag}.csv", verbose)
        results[f"emmeans_{tag}"] = emm
        results[f"contrasts_{tag}"] = contrasts

        if emm_spec.plot:
            table = emmeans_plot_table(emm, labels=config.labels)
            save_table(table, stats_dir / f"emmeans_{tag}_plot_data.csv", verbose)
            style = config.style.with_labels(xlabel=" × ".join(emm_spec.factors), ylabel=spec.outcome)
            path = plot_marginal_means(table, style, figures_dir / f"emmeans_{tag}")
            if verbose:
                print(f"  [SAVE] {path}")

        if verbose:
            print(f"\n  Pairwise contrasts ({tag}, adjust = {emm_spec.adjust}):")
            for _, row in contrasts.iterrows():
                print(f"    {row['contrast']:<30} {format_coefficient(row['estimate']):>9} "
                      f"(SE {format_coefficient(row['se'])}), p = {format_pvalue(row['p'])}")

    for slope_spec in spec.simple_slopes:
        tag = f"{slope_spec.pred}_by_{slope_spec.modx}"
        slopes = simple_slopes(
            model,
            slope_spec.pred,
            slope_spec.modx,
            modx_values=slope_spec.values,
            johnson_neyman=slope_spec.johnson_neyman,
        )
        save_table(slopes.table, stats_dir / f"simple_slopes_{tag}.csv", verbose)
        results[f"simple_slopes_{tag}"] = slopes

        if slopes.johnson_neyman is not None:
            save_table(pd.DataFrame([slopes.johnson_neyman.as_dict()]), stats_dir / f"johnson_neyman_{tag}.csv", verbose)
            if verbose:
                print(f"  [INFO] Johnson-Neyman: {slopes.johnson_neyman.describe()}")

        if slope_spec.plot:
            predictions = interaction_predictions(model, slope_spec.pred, slope_spec.modx, modx_values=slope_spec.values)
            save_table(predictions, stats_dir / f"interaction_{tag}_plot_data.csv", verbose)
            style = config.style.with_labels(ylabel=spec.outcome)
            path = plot_interaction(predictions, slope_spec.pred, style, figures_dir / f"interaction_{tag}")
            if verbose:
                print(f"  [SAVE] {path}")

        if verbose:
            print(f"\n  Simple slopes of {slope_spec.pred} by {slope_spec.modx}:")
            for _, row in slopes.table.iterrows():
                print(f"    {row['label']:<20} b = {format_coefficient(row['slope'])} "
                      f"(SE {format_coefficient(row['se'])}), p = {format_pvalue(row['p'])}")

    return results


# =============================================================================
# RUN
# =============================================================================

def run(config: AnalysisConfig, data: Optional[pd.DataFrame] = None, verbose: bool = True) -> dict:
    """
    Run the configured analysis.

    Parameters
    ----------
    config : AnalysisConfig
        Validated configuration.
    data : pd.DataFrame, optional
        Raw dataset; read from ``config.data`` when omitted.
    verbose : bool
        Print progress and results.

    Returns
    -------
    dict
        'data' (prepared), 'descriptives', and one entry per model name.
    """
    if verbose:
        print_section_header("DATA PREPARATION")
    raw = load_dataset(config.data, verbose=verbose) if data is None else data
    prepared = prepare_dataset(raw, config.preparation, verbose=verbose)
    if verbose:
        print(f"  [INFO] Prepared dataset: N = {len(prepared)}")

    results = {
        "data": prepared,
        "descriptives": run_descriptives(prepared, config, verbose=verbose),
    }
    for spec in config.models:
        results[spec.name] = run_model(prepared, spec, config, verbose=verbose)

    write_session_info(config.output_dir, verbose=verbose)
    return results


def main(argv: Optional[list] = None) -> int:
    if sys.platform.startswith("win") and hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8")

    parser = argparse.ArgumentParser(description="Run a configured experiment analysis.")
    parser.add_argument("--config", required=True, type=Path, help="Path to the analysis YAML file.")
    parser.add_argument("--data", type=Path, help="Override the dataset path from the config.")
    parser.add_argument("--output-dir", type=Path, help="Override the output directory from the config.")
    parser.add_argument("--quiet", action="store_true", help="Suppress verbose output")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        if args.data is not None or args.output_dir is not None:
            config = replace(
                config,
                data=args.data or config.data,
                output_dir=args.output_dir or config.output_dir,
            )
        run(config, verbose=not args.quiet)
    except (AnalysisError, FileNotFoundError) as exc:
        print(f"[ERROR] {exc}")
        return 1

    if not args.quiet:
        print("\n" + "=" * 70)
        print("ANALYSIS COMPLETE")
        print("=" * 70)
    return 0


if __name__ == "__main__":
    sys.exit(main())
