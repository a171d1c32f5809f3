"""Shared synthetic datasets."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def four_group_data():
    """Equal-sized groups A-D with outcome means 10, 12, 14, 16."""
    condition = np.repeat(["A", "B", "C", "D"], 5)
    y = np.repeat([10.0, 12.0, 14.0, 16.0], 5) + np.tile([-2.0, -1.0, 0.0, 1.0, 2.0], 4)
    return pd.DataFrame({"condition": condition, "y": y})


@pytest.fixture
def interaction_data():
    """Continuous x and m with a strong x:m interaction."""
    rng = np.random.default_rng(20240611)
    n = 200
    x = rng.normal(0.0, 1.0, n)
    m = rng.normal(0.0, 1.0, n)
    y = 1.0 + 0.5 * x + 0.3 * m + 0.4 * x * m + rng.normal(0.0, 1.0, n)
    return pd.DataFrame({"x": x, "m": m, "y": y})


@pytest.fixture
def factorial_data():
    """Unbalanced 2 x 3 design with a continuous covariate."""
    rng = np.random.default_rng(7)
    rows = []
    cell_means = {
        ("lo", "p"): 5.0, ("lo", "q"): 6.0, ("lo", "r"): 8.0,
        ("hi", "p"): 7.0, ("hi", "q"): 9.0, ("hi", "r"): 9.5,
    }
    sizes = {("lo", "p"): 8, ("lo", "q"): 12, ("lo", "r"): 10, ("hi", "p"): 14, ("hi", "q"): 9, ("hi", "r"): 11}
    for (a, b), mean in cell_means.items():
        for _ in range(sizes[(a, b)]):
            cov = rng.normal(50.0, 10.0)
            rows.append({"a": a, "b": b, "cov": cov, "y": mean + 0.05 * (cov - 50.0) + rng.normal(0.0, 1.0)})
    data = pd.DataFrame(rows)
    data["a"] = pd.Categorical(data["a"], categories=["lo", "hi"], ordered=True)
    data["b"] = pd.Categorical(data["b"], categories=["p", "q", "r"], ordered=True)
    return data
