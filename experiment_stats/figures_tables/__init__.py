"""Plot-ready tables and figure rendering."""

from .style import PlotStyle, get_significance_marker
from .plot_data import emmeans_plot_table, slopes_plot_table
from .plots import plot_interaction, plot_marginal_means

__all__ = [
    "PlotStyle",
    "get_significance_marker",
    "emmeans_plot_table",
    "slopes_plot_table",
    "plot_interaction",
    "plot_marginal_means",
]
