"""Tests for term expansion and OLS fitting."""

import numpy as np
import pandas as pd
import pytest
import statsmodels.formula.api as smf

from experiment_stats.analysis.ols import (
    coefficient_table,
    compare_models,
    fit,
    model_summary,
    vif,
    vif_table,
)
from experiment_stats.analysis.terms import Term, parse_terms
from experiment_stats.errors import CollinearityError, DataError, SingularityError


def _correlated_predictors(rho: float, n: int = 120, seed: int = 11) -> pd.DataFrame:
    """x1 and x2 with sample correlation exactly ``rho``."""
    rng = np.random.default_rng(seed)
    x1 = rng.normal(0.0, 1.0, n)
    x1 = x1 - x1.mean()
    e = rng.normal(0.0, 1.0, n)
    e = e - e.mean()
    e = e - (e @ x1) / (x1 @ x1) * x1
    e = e * np.linalg.norm(x1) / np.linalg.norm(e)
    x2 = rho * x1 + np.sqrt(1.0 - rho ** 2) * e
    y = x1 + x2 + rng.normal(0.0, 1.0, n)
    return pd.DataFrame({"x1": x1, "x2": x2, "y": y})


class TestTerms:

    def test_parse_shorthand(self):
        terms = parse_terms(["a", "a:b", ["c"], {"columns": ["a", "c"]}])
        assert [t.kind for t in terms] == ["main", "interaction", "main", "interaction"]
        assert terms[1].label == "a:b"

    def test_duplicate_term(self):
        with pytest.raises(DataError):
            parse_terms(["a:b", "b:a"])

    def test_malformed_term(self):
        with pytest.raises(DataError):
            Term.parse("a::b")
        with pytest.raises(DataError):
            Term(("a", "b"), "main")

    def test_design_column_names(self, factorial_data):
        model = fit("y", ["a", "b", "a:b", "cov"], factorial_data)
        assert model.column_names == [
            "Intercept",
            "a[T.hi]",
            "b[T.q]",
            "b[T.r]",
            "a[T.hi]:b[T.q]",
            "a[T.hi]:b[T.r]",
            "cov",
        ]


class TestFit:

    def test_matches_statsmodels_formula(self, interaction_data):
        model = fit("y", ["x", "m", "x:m"], interaction_data)
        reference = smf.ols("y ~ x + m + x:m", data=interaction_data).fit()
        np.testing.assert_allclose(model.params.to_numpy(), reference.params.to_numpy(), atol=1e-10)
        np.testing.assert_allclose(model.bse.to_numpy(), reference.bse.to_numpy(), atol=1e-10)
        assert model.rsquared == pytest.approx(reference.rsquared)
        assert model.rsquared_adj == pytest.approx(reference.rsquared_adj)
        assert model.fvalue == pytest.approx(reference.fvalue)
        assert model.df_resid == reference.df_resid

    def test_coefficient_count_matches_design(self, factorial_data):
        model = fit("y", ["a", "b", "a:b", "cov"], factorial_data)
        assert len(model.params) == model.design.shape[1]
        assert model.df_resid == len(factorial_data) - model.design.shape[1]

    def test_permutation_invariance(self, factorial_data):
        terms = ["a", "b", "a:b", "cov"]
        model = fit("y", terms, factorial_data)
        order = np.random.default_rng(5).permutation(len(factorial_data))
        shuffled = fit("y", terms, factorial_data.iloc[order])
        np.testing.assert_allclose(model.params.to_numpy(), shuffled.params.to_numpy(), rtol=0, atol=1e-9)

    def test_object_factor_levels_sorted(self, four_group_data):
        model = fit("y", ["condition"], four_group_data)
        assert model.predictors["condition"].levels == ("A", "B", "C", "D")
        assert model.params["Intercept"] == pytest.approx(10.0)
        assert model.params["condition[T.D]"] == pytest.approx(6.0)

    def test_coefficient_table(self, interaction_data):
        model = fit("y", ["x", "m", "x:m"], interaction_data)
        table = coefficient_table(model)
        reference = smf.ols("y ~ x + m + x:m", data=interaction_data).fit().conf_int()
        np.testing.assert_allclose(table["ci_lower"], reference[0].to_numpy(), atol=1e-10)
        np.testing.assert_allclose(table["ci_upper"], reference[1].to_numpy(), atol=1e-10)
        assert list(table["term"]) == ["Intercept", "x", "m", "x:m"]

    def test_conf_level_width(self, interaction_data):
        narrow = coefficient_table(fit("y", ["x"], interaction_data, conf_level=0.80))
        wide = coefficient_table(fit("y", ["x"], interaction_data, conf_level=0.99))
        assert (narrow["ci_upper"] - narrow["ci_lower"] < wide["ci_upper"] - wide["ci_lower"]).all()

    def test_summary(self, four_group_data):
        summary = model_summary(fit("y", ["condition"], four_group_data))
        assert summary["n"] == 20
        assert summary["df_model"] == 3
        assert summary["df_resid"] == 16
        assert 0 < summary["r2"] < 1


class TestFitFailures:

    def test_collinearity_names_column(self):
        x1 = np.arange(10, dtype=float)
        data = pd.DataFrame({"x1": x1, "x2": 2 * x1 + 1, "y": np.sin(x1)})
        with pytest.raises(CollinearityError) as excinfo:
            fit("y", ["x1", "x2"], data)
        assert excinfo.value.columns == ["x2"]
        assert "x2" in str(excinfo.value)

    def test_singular_design(self):
        data = pd.DataFrame({"x": [1.0, 2.0, 4.0], "z": [0.5, 0.1, 0.7], "y": [1.0, 3.0, 2.0]})
        with pytest.raises(SingularityError):
            fit("y", ["x", "z"], data)

    def test_missing_outcome(self, interaction_data):
        data = interaction_data.copy()
        data.loc[3, "y"] = np.nan
        with pytest.raises(DataError) as excinfo:
            fit("y", ["x"], data)
        assert excinfo.value.row == 3

    def test_missing_predictor(self, interaction_data):
        data = interaction_data.copy()
        data.loc[7, "m"] = np.nan
        with pytest.raises(DataError) as excinfo:
            fit("y", ["x", "m"], data)
        assert excinfo.value.column == "m"

    def test_unknown_column(self, interaction_data):
        with pytest.raises(DataError):
            fit("y", ["x", "nope"], interaction_data)

    def test_non_numeric_outcome(self, four_group_data):
        with pytest.raises(DataError):
            fit("condition", [], four_group_data)

    def test_mixed_type_levels(self):
        data = pd.DataFrame({"g": ["a", 1, "a", 1, "a", 1], "y": [1.0, 2.0, 1.5, 2.5, 0.5, 3.0]})
        with pytest.raises(DataError) as excinfo:
            fit("y", ["g"], data)
        assert excinfo.value.column == "g"
        assert "derive_factor" in str(excinfo.value)

    def test_single_level_factor(self, interaction_data):
        data = interaction_data.assign(g="only")
        with pytest.raises(DataError):
            fit("y", ["x", "g"], data)


class TestVIF:

    def test_orthogonal_predictors(self):
        n = 40
        data = pd.DataFrame({
            "x1": np.tile([-1.0, 1.0], n // 2),
            "x2": np.tile([-1.0, -1.0, 1.0, 1.0], n // 4),
        })
        data["y"] = data["x1"] + 0.5 * data["x2"] + np.linspace(-1, 1, n) ** 3
        model = fit("y", ["x1", "x2"], data)
        assert vif(model, "x1") == pytest.approx(1.0, abs=1e-6)
        assert vif(model, "x2") == pytest.approx(1.0, abs=1e-6)

    def test_increases_with_correlation(self):
        values = []
        for rho in (0.0, 0.3, 0.6, 0.9):
            model = fit("y", ["x1", "x2"], _correlated_predictors(rho))
            values.append(vif(model, "x1"))
            assert values[-1] == pytest.approx(1.0 / (1.0 - rho ** 2), rel=1e-6)
        assert all(b > a for a, b in zip(values, values[1:]))

    def test_table_and_errors(self, factorial_data):
        model = fit("y", ["a", "b", "cov"], factorial_data)
        table = vif_table(model)
        assert list(table["term"]) == ["a[T.hi]", "b[T.q]", "b[T.r]", "cov"]
        assert (table["vif"] >= 1.0).all()
        with pytest.raises(ValueError):
            vif(model, "Intercept")
        with pytest.raises(DataError):
            vif(model, "a")


class TestCompareModels:

    def test_r2_change(self, interaction_data):
        reduced = fit("y", ["x", "m"], interaction_data)
        full = fit("y", ["x", "m", "x:m"], interaction_data)
        result = compare_models(reduced, full)
        assert result["df1"] == 1
        assert result["delta_r2"] == pytest.approx(full.rsquared - reduced.rsquared)
        # one added term: F-change equals the squared t of that coefficient
        assert result["f_change"] == pytest.approx(full.tvalues["x:m"] ** 2)
        assert result["p"] == pytest.approx(full.pvalues["x:m"])

    def test_requires_nesting_order(self, interaction_data):
        reduced = fit("y", ["x", "m"], interaction_data)
        full = fit("y", ["x", "m", "x:m"], interaction_data)
        with pytest.raises(ValueError):
            compare_models(full, reduced)
