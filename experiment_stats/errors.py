"""
Error types raised by the preparation and modeling layers.

Every error derives from ``AnalysisError`` (itself a ``ValueError``) so that
callers can abort a run on any violated precondition with a single handler.
"""

from __future__ import annotations

from typing import Iterable, Optional


class AnalysisError(ValueError):
    """Base class for all analysis failures."""


class DataError(AnalysisError):
    """Out-of-domain categorical value, non-numeric value, missing value or unknown column."""

    def __init__(self, message: str, column: Optional[str] = None, row=None):
        self.column = column
        self.row = row
        super().__init__(message)


class CollinearityError(AnalysisError):
    """Design matrix has linearly dependent columns."""

    def __init__(self, columns: Iterable[str]):
        self.columns = list(columns)
        super().__init__(
            "Design matrix is rank deficient; linearly dependent column(s): "
            + ", ".join(self.columns)
        )


class SingularityError(AnalysisError):
    """Residual degrees of freedom would be zero or negative."""

    def __init__(self, n_obs: int, n_columns: int):
        self.n_obs = n_obs
        self.n_columns = n_columns
        super().__init__(
            f"Residual degrees of freedom <= 0: N={n_obs} observations for {n_columns} design columns"
        )


class UndefinedStandardization(AnalysisError):
    """Sample variance of a column is zero (or undefined)."""

    def __init__(self, column: str, reason: str = "zero sample variance"):
        self.column = column
        super().__init__(f"Cannot standardize '{column}': {reason}")


class ConfigError(AnalysisError):
    """Malformed analysis configuration."""
