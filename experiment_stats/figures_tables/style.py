"""
Plot Style Configuration
========================

Immutable styling passed into every renderer call. Nothing here touches the
global matplotlib state; renderers apply ``PlotStyle.rc()`` inside an
``rc_context``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Optional

# Color palette for consistent styling
COLORS = (
    "#2E86AB",  # Blue
    "#E74C3C",  # Red
    "#2ECC71",  # Green
    "#A23B72",  # Magenta
    "#F18F01",  # Orange
    "#95A5A6",  # Gray
)

# Significance markers
SIG_MARKERS = {
    0.001: "***",
    0.01: "**",
    0.05: "*",
}


def get_significance_marker(p: float) -> str:
    """Get significance marker for p-value."""
    for threshold, marker in SIG_MARKERS.items():
        if p < threshold:
            return marker
    return "ns"


@dataclass(frozen=True)
class PlotStyle:
    figsize: tuple = (6.0, 4.5)
    dpi: int = 300
    font_family: str = "sans-serif"
    font_size: float = 11.0
    palette: tuple = COLORS
    seaborn_style: str = "whitegrid"
    line_width: float = 2.0
    marker: str = "o"
    capsize: float = 4.0
    ci_alpha: float = 0.2
    title: Optional[str] = None
    xlabel: Optional[str] = None
    ylabel: Optional[str] = None
    file_format: str = "png"
    extra_rc: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "figsize", tuple(self.figsize))
        object.__setattr__(self, "palette", tuple(self.palette))
        object.__setattr__(self, "extra_rc", dict(self.extra_rc))
        if not self.palette:
            raise ValueError("PlotStyle.palette needs at least one color")
        if self.dpi <= 0:
            raise ValueError(f"PlotStyle.dpi must be positive, got {self.dpi}")

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> "PlotStyle":
        values = dict(values or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown style option(s): {unknown}")
        return cls(**values)

    def with_labels(self, title=None, xlabel=None, ylabel=None) -> "PlotStyle":
        """Copy with labels filled in where this style leaves them unset."""
        return replace(
            self,
            title=self.title if self.title is not None else title,
            xlabel=self.xlabel if self.xlabel is not None else xlabel,
            ylabel=self.ylabel if self.ylabel is not None else ylabel,
        )

    def color(self, index: int) -> str:
        return self.palette[index % len(self.palette)]

    def rc(self) -> dict:
        params = {
            "figure.dpi": 100,
            "savefig.dpi": self.dpi,
            "font.size": self.font_size,
            "font.family": self.font_family,
            "axes.titlesize": self.font_size + 1,
            "axes.labelsize": self.font_size,
            "axes.spines.top": False,
            "axes.spines.right": False,
            "legend.frameon": False,
            "figure.facecolor": "white",
            "axes.facecolor": "white",
        }
        params.update(self.extra_rc)
        return params
