"""Shared constants for preparation and analysis."""

from __future__ import annotations

from pathlib import Path

# Output location used when a config names no output_dir
OUTPUTS_DIRNAME = "outputs"

# Derived column naming
Z_PREFIX = "z_"
INTERCEPT = "Intercept"

# Inference defaults
DEFAULT_CONF_LEVEL = 0.95
DEFAULT_ADJUST = "tukey"

# Adjustment method names -> statsmodels multipletests method
# ("tukey" is handled separately through the studentized range distribution)
ADJUST_METHODS = {
    "none": None,
    "tukey": "tukey",
    "bonferroni": "bonferroni",
    "holm": "holm",
    "sidak": "sidak",
    "fdr": "fdr_bh",
    "bh": "fdr_bh",
    "fdr_bh": "fdr_bh",
}

# Default simple-slopes evaluation points (in moderator SD units)
DEFAULT_SLOPE_SD_STEPS = (-1.0, 0.0, 1.0)


def default_output_dir() -> Path:
    """Return the default output root under the current working directory."""
    return Path.cwd() / OUTPUTS_DIRNAME


def normalize_adjust(method: str | None) -> str:
    """Validate an adjustment method name and return its canonical key."""
    key = "none" if method is None else str(method).strip().lower()
    if key not in ADJUST_METHODS:
        raise ValueError(f"Unknown adjustment method: {method}. Valid methods: {sorted(ADJUST_METHODS)}")
    return key
