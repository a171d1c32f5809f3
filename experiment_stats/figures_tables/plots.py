"""
Figure Rendering
================

Renders plot-ready tables with matplotlib/seaborn:

    plot_marginal_means   point estimates with CI error bars (one line per group)
    plot_interaction      predicted outcome across pred, one line per moderator value

Each call takes an explicit ``PlotStyle`` and an output path and returns the
written path.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .style import PlotStyle


def _output_path(path: Path, style: PlotStyle) -> Path:
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(f".{style.file_format}")
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _finish(fig, ax, style: PlotStyle, path: Path) -> Path:
    if style.title:
        ax.set_title(style.title)
    if style.xlabel:
        ax.set_xlabel(style.xlabel)
    if style.ylabel:
        ax.set_ylabel(style.ylabel)
    fig.tight_layout()
    fig.savefig(path, dpi=style.dpi, bbox_inches="tight", facecolor="white", edgecolor="none")
    plt.close(fig)
    return path


def plot_marginal_means(
    table: pd.DataFrame,
    style: Optional[PlotStyle] = None,
    path: Path = Path("marginal_means.png"),
) -> Path:
    """
    Plot marginal means from ``emmeans_plot_table`` output.

    Levels keep their table order on the x axis; groups are dodged.
    """
    style = style or PlotStyle()
    required = {"group", "level", "estimate", "ci_lower", "ci_upper"}
    missing = required - set(table.columns)
    if missing:
        raise ValueError(f"Plot table is missing column(s): {sorted(missing)}")
    path = _output_path(path, style)

    levels = list(dict.fromkeys(table["level"]))
    groups = list(dict.fromkeys(table["group"]))
    x = np.arange(len(levels), dtype=float)
    width = 0.25 if len(groups) > 1 else 0.0
    offsets = (np.arange(len(groups)) - (len(groups) - 1) / 2) * width

    with plt.rc_context(style.rc()), sns.axes_style(style.seaborn_style):
        fig, ax = plt.subplots(figsize=style.figsize)
        for i, group in enumerate(groups):
            rows = table[table["group"] == group].set_index("level").reindex(levels)
            estimate = rows["estimate"].to_numpy(dtype=float)
            yerr = np.vstack([
                estimate - rows["ci_lower"].to_numpy(dtype=float),
                rows["ci_upper"].to_numpy(dtype=float) - estimate,
            ])
            ax.errorbar(
                x + offsets[i],
                estimate,
                yerr=yerr,
                color=style.color(i),
                marker=style.marker,
                linewidth=style.line_width,
                capsize=style.capsize,
                label=None if len(groups) == 1 else str(group),
            )
        ax.set_xticks(x)
        ax.set_xticklabels([str(level) for level in levels])
        ax.set_ylabel("Estimated marginal mean")
        if len(groups) > 1:
            ax.legend(loc="best")
        return _finish(fig, ax, style, path)


def plot_interaction(
    predictions: pd.DataFrame,
    pred: str,
    style: Optional[PlotStyle] = None,
    path: Path = Path("interaction.png"),
) -> Path:
    """Plot ``interaction_predictions`` output: one line and CI band per moderator value."""
    style = style or PlotStyle()
    required = {pred, "modx_label", "estimate", "ci_lower", "ci_upper"}
    missing = required - set(predictions.columns)
    if missing:
        raise ValueError(f"Prediction table is missing column(s): {sorted(missing)}")
    path = _output_path(path, style)

    with plt.rc_context(style.rc()), sns.axes_style(style.seaborn_style):
        fig, ax = plt.subplots(figsize=style.figsize)
        for i, label in enumerate(dict.fromkeys(predictions["modx_label"])):
            rows = predictions[predictions["modx_label"] == label].sort_values(pred)
            color = style.color(i)
            ax.plot(rows[pred], rows["estimate"], color=color, linewidth=style.line_width, label=str(label))
            ax.fill_between(rows[pred], rows["ci_lower"], rows["ci_upper"], color=color, alpha=style.ci_alpha)
        ax.set_xlabel(pred)
        ax.set_ylabel("Predicted outcome")
        ax.legend(loc="best")
        return _finish(fig, ax, style, path)
