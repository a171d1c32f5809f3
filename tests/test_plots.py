"""Tests for plot-ready tables and figure rendering."""

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from experiment_stats.analysis.marginal_means import compute_marginal_means
from experiment_stats.analysis.ols import fit
from experiment_stats.analysis.simple_slopes import interaction_predictions, simple_slopes
from experiment_stats.figures_tables.plot_data import emmeans_plot_table, slopes_plot_table
from experiment_stats.figures_tables.plots import plot_interaction, plot_marginal_means
from experiment_stats.figures_tables.style import PlotStyle, get_significance_marker


class TestPlotData:

    def test_emmeans_table(self, four_group_data):
        emm = compute_marginal_means(fit("y", ["condition"], four_group_data), "condition")
        table = emmeans_plot_table(emm, labels={"A": "Control"})
        assert list(table["level"]) == ["Control", "B", "C", "D"]
        assert (table["group"] == "All").all()
        assert table["estimate"].tolist() == pytest.approx([10.0, 12.0, 14.0, 16.0])

    def test_by_group_column(self, factorial_data):
        emm = compute_marginal_means(fit("y", ["a", "b"], factorial_data), "b", by="a")
        table = emmeans_plot_table(emm)
        assert list(dict.fromkeys(table["group"])) == ["lo", "hi"]
        assert len(table) == 6

    def test_slopes_table(self, interaction_data):
        slopes = simple_slopes(fit("y", ["x", "m", "x:m"], interaction_data), "x", "m")
        table = slopes_plot_table(slopes)
        assert list(table["level"]) == ["Mean - 1 SD", "Mean", "Mean + 1 SD"]
        assert (table["group"] == "m").all()


class TestStyle:

    def test_immutable(self):
        style = PlotStyle()
        with pytest.raises(AttributeError):
            style.dpi = 10

    def test_with_labels_keeps_explicit(self):
        style = PlotStyle(title="Fixed").with_labels(title="Other", xlabel="x")
        assert style.title == "Fixed"
        assert style.xlabel == "x"

    def test_unknown_option(self):
        with pytest.raises(ValueError):
            PlotStyle.from_dict({"fontsize": 3})

    def test_significance_marker(self):
        assert get_significance_marker(0.0005) == "***"
        assert get_significance_marker(0.03) == "*"
        assert get_significance_marker(0.2) == "ns"


class TestRendering:

    def test_marginal_means_figure(self, tmp_path, factorial_data):
        emm = compute_marginal_means(fit("y", ["a", "b"], factorial_data), "b", by="a")
        path = plot_marginal_means(emmeans_plot_table(emm), PlotStyle(dpi=50), tmp_path / "figs" / "emm")
        assert path == tmp_path / "figs" / "emm.png"
        assert path.exists() and path.stat().st_size > 0

    def test_interaction_figure(self, tmp_path, interaction_data):
        model = fit("y", ["x", "m", "x:m"], interaction_data)
        predictions = interaction_predictions(model, "x", "m", n_points=10)
        path = plot_interaction(predictions, "x", PlotStyle(dpi=50, file_format="pdf"), tmp_path / "interaction")
        assert path.suffix == ".pdf"
        assert path.exists()

    def test_global_state_untouched(self, tmp_path, four_group_data):
        before = plt.rcParams["font.size"]
        emm = compute_marginal_means(fit("y", ["condition"], four_group_data), "condition")
        plot_marginal_means(emmeans_plot_table(emm), PlotStyle(font_size=before + 7, dpi=50), tmp_path / "emm.png")
        assert plt.rcParams["font.size"] == before
        assert plt.get_fignums() == []

    def test_missing_columns(self, tmp_path):
        with pytest.raises(ValueError):
            plot_marginal_means(pd.DataFrame({"level": ["a"]}), PlotStyle(), tmp_path / "x.png")
