"""Exploratory figures of the processed post table."""

from pathlib import Path
from typing import List, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from ...data_handling.processors.post_processor import cell_counts
from ...plotting.palette import DAY_LABELS, HEATMAP_CMAP, HOUR_LABELS, HNorange


def save_figure(fig, output_dir: Union[str, Path], filename: str, formats=("pdf", "png")) -> List[Path]:
    """Save a figure in each format and close it."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for fmt in formats:
        path = output_dir / f"{filename}.{fmt}"
        fig.savefig(path, format=fmt, dpi=300 if fmt == "pdf" else 150, bbox_inches="tight")
        paths.append(path)
    plt.close(fig)
    return paths


def plot_outcome_distribution(df: pd.DataFrame, outcome_label: str = "score"):
    """Histogram of the outcome on log-spaced bins."""
    fig, ax = plt.subplots(figsize=(6, 4))
    y = df["y"].to_numpy()
    upper = max(int(y.max()), 1)
    bins = np.unique(np.concatenate([[0], np.logspace(0, np.log10(upper + 1), 40).astype(int)]))
    ax.hist(y, bins=bins, color=HNorange, alpha=0.8)
    ax.set_xscale("symlog")
    ax.set_yscale("log")
    ax.set_xlabel(outcome_label)
    ax.set_ylabel("Posts")
    ax.set_title(f"Distribution of {outcome_label} (n={len(df)})")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_cell_heatmap(table: pd.DataFrame, title: str, cbar_label: str, fmt_annot: bool = False):
    """Day x hour heatmap of any 7 x 24 table."""
    fig, ax = plt.subplots(figsize=(14, 4))
    sns.heatmap(
        table,
        ax=ax,
        cmap=HEATMAP_CMAP,
        cbar_kws={"label": cbar_label},
        linewidths=0.5,
        annot=fmt_annot,
        fmt=".0f",
        xticklabels=HOUR_LABELS,
        yticklabels=DAY_LABELS,
    )
    ax.set_xlabel("Hour of day")
    ax.set_ylabel("")
    ax.set_title(title)
    fig.tight_layout()
    return fig


def explore_posts(df: pd.DataFrame, output_dir: Union[str, Path], outcome_label: str = "score", timezone: str = "UTC") -> List[Path]:
    """Write the standard exploratory figures and the per-cell table."""
    output_dir = Path(output_dir)
    paths: List[Path] = []
    paths += save_figure(plot_outcome_distribution(df, outcome_label), output_dir, "outcome_distribution")

    counts = cell_counts(df)
    paths += save_figure(
        plot_cell_heatmap(counts, f"Posts per weekday/hour ({timezone})", "Posts"),
        output_dir,
        "posts_per_cell",
    )
    means = cell_counts(df, value="y", agg="mean")
    paths += save_figure(
        plot_cell_heatmap(means, f"Mean {outcome_label} per weekday/hour ({timezone})", f"Mean {outcome_label}"),
        output_dir,
        "mean_outcome_per_cell",
    )

    table = pd.concat({"posts": counts.stack(), f"mean_{outcome_label}": means.stack()}, axis=1).reset_index()
    table_path = output_dir / "cell_counts.csv"
    table.to_csv(table_path, index=False)
    paths.append(table_path)
    return paths


__all__ = [
    "save_figure",
    "plot_outcome_distribution",
    "plot_cell_heatmap",
    "explore_posts",
]
