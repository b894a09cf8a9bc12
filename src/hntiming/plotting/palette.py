"""
Global color constants and labels for plotting across hntiming.

Usage:
    from hntiming.plotting.palette import MODEL_COLORS, DAY_LABELS
    color = MODEL_COLORS[canon_model_name(name)]

Update the colors here to change them everywhere.
"""
from __future__ import annotations

from typing import Dict, List

# HNorange: RGB (255, 102, 0), the HackerNews header color
HNorange = (255/255, 102/255, 0/255)     # (1.000, 0.400, 0.000)

# HNgrey: RGB (130, 130, 130)
HNgrey = (130/255, 130/255, 130/255)     # (0.510, 0.510, 0.510)

# CAblue: RGB (10, 80, 110)
CAblue = (10/255, 80/255, 110/255)       # (0.039, 0.314, 0.431)

SIMPLE_LABEL = "simple"
HIERARCHICAL_LABEL = "hierarchical"

MODEL_COLORS: Dict[str, tuple[float, float, float]] = {
    SIMPLE_LABEL: CAblue,
    HIERARCHICAL_LABEL: HNorange,
}

OBSERVED_COLOR = "black"
REPLICATED_COLOR = HNgrey
HEATMAP_CMAP = "Oranges"

DAY_LABELS: List[str] = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
HOUR_LABELS: List[str] = [f"{h:02d}" for h in range(24)]

_SIMPLE_SYNS = {"simple", "pooled", "nb_simple"}
_HIER_SYNS = {"hierarchical", "hier", "nb_hierarchical", "multilevel"}


def canon_model_name(label: str) -> str:
    """Return the canonical model label used for palette lookup."""
    tl = str(label).strip().lower()
    for suffix in ("_nuts", "_advi"):
        if tl.endswith(suffix):
            tl = tl[: -len(suffix)]
    if tl in _SIMPLE_SYNS:
        return SIMPLE_LABEL
    if tl in _HIER_SYNS:
        return HIERARCHICAL_LABEL
    return str(label).strip()


def model_color(label: str):
    return MODEL_COLORS.get(canon_model_name(label), HNgrey)


__all__ = [
    "MODEL_COLORS",
    "OBSERVED_COLOR",
    "REPLICATED_COLOR",
    "HEATMAP_CMAP",
    "DAY_LABELS",
    "HOUR_LABELS",
    "canon_model_name",
    "model_color",
]
