"""Paper-style matplotlib defaults built on tueplots bundles."""
from __future__ import annotations

import matplotlib as mpl
from tueplots import bundles
from tueplots import fonts as _fonts


def apply_paper_style(usetex: bool = False, rel_width: float = 0.9) -> None:
    """Configure NeurIPS-like plotting defaults.

    LaTeX fonts are only switched on with ``usetex`` since they need a TeX
    installation.
    """
    cfg = bundles.neurips2023(nrows=1, ncols=1, rel_width=rel_width, usetex=usetex, family="serif")
    cfg["legend.title_fontsize"] = 11
    cfg["font.size"] = 12
    cfg["axes.labelsize"] = 12
    cfg["axes.titlesize"] = 13
    cfg["xtick.labelsize"] = 10
    cfg["ytick.labelsize"] = 10
    cfg["legend.fontsize"] = 10
    # Figures here set their own sizes (heatmaps need more room than a column)
    cfg.pop("figure.figsize", None)
    # Colorbar heatmaps call tight_layout, which conflicts with constrained layout
    cfg.pop("figure.constrained_layout.use", None)
    if usetex:
        cfg["text.latex.preamble"] = r"\usepackage{amsmath,bm}"
        cfg.update(_fonts.neurips2022_tex(family="serif"))
    mpl.rcParams.update(cfg)


__all__ = ["apply_paper_style"]
