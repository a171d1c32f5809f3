"""Tests for dataset preparation: factors, recoding, standardization, complete cases."""

import numpy as np
import pandas as pd
import pytest

from experiment_stats.config import FactorSpec, PreparationConfig, RecodeSpec
from experiment_stats.errors import DataError, UndefinedStandardization
from experiment_stats.preprocessing import (
    coerce_numeric,
    complete_cases,
    derive_factor,
    get_factor,
    population_mask,
    prepare_dataset,
    recode,
    standardize,
    standardize_columns,
)


class TestDeriveFactor:

    def test_mapping_defines_level_order(self):
        data = pd.DataFrame({"grp": [2, 1, 2, 1]})
        result = derive_factor(data, "grp", {1: "control", 2: "treatment"})
        assert list(result["grp"].cat.categories) == ["control", "treatment"]
        assert list(result["grp"]) == ["treatment", "control", "treatment", "control"]

    def test_sequence_is_identity_mapping(self):
        data = pd.DataFrame({"cond": ["B", "A", "C"]})
        result = derive_factor(data, "cond", ["C", "B", "A"])
        assert list(result["cond"].cat.categories) == ["C", "B", "A"]
        assert get_factor(result, "cond").reference == "C"

    def test_out_of_domain_becomes_missing(self):
        data = pd.DataFrame({"cond": ["A", "B", "Z", None]})
        result = derive_factor(data, "cond", ["A", "B"])
        assert result["cond"].isna().tolist() == [False, False, True, True]

    def test_strict_raises_with_row(self):
        data = pd.DataFrame({"cond": ["A", "B", "Z"]})
        with pytest.raises(DataError) as excinfo:
            derive_factor(data, "cond", ["A", "B"], strict=True)
        assert excinfo.value.column == "cond"
        assert excinfo.value.row == 2

    def test_input_not_modified(self):
        data = pd.DataFrame({"cond": ["A", "B"]})
        snapshot = data.copy()
        derive_factor(data, "cond", ["A", "B"], new_column="cond_f")
        pd.testing.assert_frame_equal(data, snapshot)

    def test_rerun_is_identical(self):
        data = pd.DataFrame({"cond": ["A", "B", "X", "A"]})
        first = derive_factor(data, "cond", {"A": "a", "B": "b"})
        second = derive_factor(data, "cond", {"A": "a", "B": "b"})
        pd.testing.assert_frame_equal(first, second)

    def test_unknown_column(self):
        with pytest.raises(DataError):
            derive_factor(pd.DataFrame({"a": [1]}), "b", ["x"])

    def test_factor_labels(self):
        data = derive_factor(pd.DataFrame({"g": ["f", "m"]}), "g", ["f", "m"])
        factor = get_factor(data, "g", labels={"f": "Female"})
        assert factor.labels == ("Female", "m")
        assert factor.label_for("m") == "m"


class TestRecode:

    def test_rules_and_passthrough(self):
        data = pd.DataFrame({"g": ["M", "F", "x", np.nan]})
        result = recode(data, "g", {"M": "male", "F": "female"})
        assert result["g"].tolist()[:3] == ["male", "female", "x"]
        assert pd.isna(result["g"].iloc[3])
        assert data["g"].tolist()[0] == "M"

    def test_new_column(self):
        data = pd.DataFrame({"score": [1, 2, 3]})
        result = recode(data, "score", {1: 0, 3: 1}, new_column="score_bin")
        assert result["score_bin"].tolist() == [0, 2, 1]
        assert result["score"].tolist() == [1, 2, 3]


class TestStandardize:

    def test_mean_zero_sd_one(self):
        rng = np.random.default_rng(3)
        data = pd.DataFrame({"age": rng.normal(24.0, 4.0, 137)})
        result = standardize(data, "age")
        z = result["z_age"]
        assert abs(z.mean()) < 1e-9
        assert abs(z.std(ddof=1) - 1.0) < 1e-9

    def test_several_columns(self):
        data = pd.DataFrame({"a": [1.0, 2.0, 4.0, 8.0], "b": [3.0, 3.5, 1.0, 0.0]})
        result = standardize_columns(data, ["a", "b"])
        for col in ("z_a", "z_b"):
            assert abs(result[col].mean()) < 1e-9
            assert abs(result[col].std(ddof=1) - 1.0) < 1e-9

    def test_missing_values_kept_missing(self):
        data = pd.DataFrame({"a": [1.0, np.nan, 3.0, 5.0]})
        result = standardize(data, "a")
        assert pd.isna(result["z_a"].iloc[1])
        assert abs(result["z_a"].dropna().mean()) < 1e-9

    def test_zero_variance(self):
        data = pd.DataFrame({"a": [2.0, 2.0, 2.0]})
        with pytest.raises(UndefinedStandardization) as excinfo:
            standardize(data, "a")
        assert excinfo.value.column == "a"

    def test_single_value(self):
        with pytest.raises(UndefinedStandardization):
            standardize(pd.DataFrame({"a": [1.0, np.nan]}), "a")

    def test_non_numeric(self):
        data = pd.DataFrame({"a": [1.0, "two", 3.0]})
        with pytest.raises(DataError) as excinfo:
            standardize(data, "a")
        assert excinfo.value.row == 1

    def test_population_defines_scale(self):
        data = pd.DataFrame({"a": [1.0, 2.0, 3.0, 100.0], "grp": ["x", "x", "x", "y"]})
        result = standardize(data, "a", population=data["grp"] == "x")
        inside = result.loc[data["grp"] == "x", "z_a"]
        assert abs(inside.mean()) < 1e-9
        assert abs(inside.std(ddof=1) - 1.0) < 1e-9
        assert result["z_a"].iloc[3] == pytest.approx((100.0 - 2.0) / 1.0)


class TestNumericAndCompleteCases:

    def test_coerce_numeric_strings(self):
        data = pd.DataFrame({"rt": ["512", "498.5", None]})
        result = coerce_numeric(data, ["rt"])
        assert result["rt"].iloc[1] == pytest.approx(498.5)
        assert pd.isna(result["rt"].iloc[2])

    def test_coerce_numeric_rejects_text(self):
        data = pd.DataFrame({"rt": [500, "fast", 480]})
        with pytest.raises(DataError) as excinfo:
            coerce_numeric(data, ["rt"])
        assert excinfo.value.column == "rt"
        assert excinfo.value.row == 1

    def test_complete_cases_reports_exclusions(self, capsys):
        data = pd.DataFrame({"a": [1.0, np.nan, 3.0], "b": [1.0, 2.0, np.nan], "c": [np.nan] * 3})
        result = complete_cases(data, ["a", "b"], verbose=True)
        assert len(result) == 1
        assert len(data) == 3
        assert "excluded 2" in capsys.readouterr().out


class TestPrepareDataset:

    def test_composition(self):
        raw = pd.DataFrame({
            "gender": ["M", "F", "F", "M", "F", "M"],
            "cond": ["A", "B", "A", "B", "Q", "A"],
            "age": ["20", "22", "25", "31", "19", "28"],
        })
        snapshot = raw.copy()
        prep = PreparationConfig(
            recodes=(RecodeSpec("gender", {"M": "male", "F": "female"}),),
            factors=(FactorSpec("cond", ("A", "B")), FactorSpec("gender", ("female", "male"))),
            numeric=("age",),
            complete_cases=("cond", "age"),
            standardize=("age",),
        )
        data = prepare_dataset(raw, prep)
        assert len(data) == 5
        assert list(data["gender"].cat.categories) == ["female", "male"]
        assert abs(data["z_age"].mean()) < 1e-9
        pd.testing.assert_frame_equal(raw, snapshot)

    def test_population_mask(self):
        data = pd.DataFrame({"g": ["a", "b", "a"], "h": [1, 1, 2]})
        mask = population_mask(data, {"g": ("a",), "h": (1,)})
        assert mask.tolist() == [True, False, False]
        assert population_mask(data, {}) is None

    def test_empty_population(self):
        data = pd.DataFrame({"g": ["a", "b"]})
        with pytest.raises(DataError):
            population_mask(data, {"g": ("c",)})
