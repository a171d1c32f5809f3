"""
Plot-ready tables.

Flat level/estimate/SE/CI rows that renderers (or external tools) consume
without needing the fitted model.
"""

from __future__ import annotations

from typing import Hashable, Mapping, Optional

import pandas as pd

from ..analysis.marginal_means import MarginalMeans
from ..analysis.simple_slopes import SimpleSlopes

EMMEANS_PLOT_COLUMNS = ["group", "level", "estimate", "se", "ci_lower", "ci_upper"]


def emmeans_plot_table(
    emm: MarginalMeans,
    labels: Optional[Mapping[Hashable, str]] = None,
) -> pd.DataFrame:
    """
    One row per marginal mean.

    ``level`` is the display label of the level combination (``labels`` may
    rename the individual levels); ``group`` is the ``by`` stratum or "All".
    """
    labels = labels or {}
    rows = []
    for _, row in emm.table.iterrows():
        level = " ".join(str(labels.get(row[f], row[f])) for f in emm.factors)
        group = str(labels.get(row[emm.by], row[emm.by])) if emm.by else "All"
        rows.append(
            {
                "group": group,
                "level": level,
                "estimate": row["estimate"],
                "se": row["se"],
                "ci_lower": row["ci_lower"],
                "ci_upper": row["ci_upper"],
            }
        )
    return pd.DataFrame(rows, columns=EMMEANS_PLOT_COLUMNS)


def slopes_plot_table(slopes: SimpleSlopes) -> pd.DataFrame:
    """Simple slopes as label/estimate/SE/CI rows."""
    table = slopes.table
    return pd.DataFrame(
        {
            "group": slopes.modx,
            "level": table["label"],
            "estimate": table["slope"],
            "se": table["se"],
            "ci_lower": table["ci_lower"],
            "ci_upper": table["ci_upper"],
        },
        columns=EMMEANS_PLOT_COLUMNS,
    )
