"""
Common Utilities for Analysis Output
====================================

Console formatting and CSV export helpers shared by the pipeline steps.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd


def format_pvalue(p: float, threshold: float = 0.001) -> str:
    """Format p-value for publication."""
    if pd.isna(p):
        return "NA"
    if p < threshold:
        return f"< {threshold}"
    return f"{p:.3f}"


def format_coefficient(value: float, decimals: int = 3) -> str:
    """Format coefficient for publication."""
    if pd.isna(value):
        return "NA"
    return f"{value:.{decimals}f}"


def print_section_header(title: str, width: int = 70) -> None:
    """Print formatted section header."""
    print("\n" + "=" * width)
    print(title)
    print("=" * width)


def save_table(table: pd.DataFrame, path: Path, verbose: bool = False) -> Path:
    """Write ``table`` as UTF-8 (BOM) CSV, creating the directory if needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, index=False, encoding="utf-8-sig")
    if verbose:
        print(f"  [SAVE] {path}")
    return path


def print_coefficients(table: pd.DataFrame) -> None:
    """Print a coefficient table in APA-like columns."""
    print(f"  {'Term':<35} {'b':>9} {'SE':>9} {'t':>8} {'p':>8}")
    print("  " + "-" * 73)
    for _, row in table.iterrows():
        print(
            f"  {row['term']:<35} {format_coefficient(row['estimate']):>9} "
            f"{format_coefficient(row['se']):>9} {format_coefficient(row['t'], 2):>8} "
            f"{format_pvalue(row['p']):>8}"
        )
