"""Figures of posterior summaries, predictive checks and LOO results."""

from pathlib import Path
from typing import List, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from ...plotting.palette import (
    DAY_LABELS,
    HNorange,
    OBSERVED_COLOR,
    REPLICATED_COLOR,
    model_color,
)
from ..model_fitting.loo import PARETO_K_THRESHOLD, LooResult
from .explore import plot_cell_heatmap, save_figure


def plot_expected_heatmap(cells: pd.DataFrame, title: str, outcome_label: str = "score"):
    """Posterior mean expected outcome per weekday/hour cell."""
    table = cells.pivot(index="day", columns="hour", values="mean")
    return plot_cell_heatmap(table, title, f"E[{outcome_label}] (posterior mean)")


def plot_prob_best(cells: pd.DataFrame, top: int = 15, title: Optional[str] = None):
    """Bar chart of the cells most likely to be the best time to post."""
    ranked = cells.sort_values("prob_best", ascending=False).head(top)
    labels = [f"{DAY_LABELS[d]} {h:02d}:00" for d, h in zip(ranked["day"], ranked["hour"])]
    fig, ax = plt.subplots(figsize=(7, 0.35 * len(ranked) + 1.2))
    ax.barh(labels[::-1], ranked["prob_best"].to_numpy()[::-1], color=HNorange)
    ax.set_xlabel("Posterior probability of being the best cell")
    ax.set_title(title or "Best time to post")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    return fig


def plot_marginal(summary: pd.DataFrame, by: str, model_label: str, outcome_label: str = "score"):
    """Posterior mean and credible interval by hour or by weekday."""
    fig, ax = plt.subplots(figsize=(7, 4))
    x = summary[by].to_numpy()
    color = model_color(model_label)
    ax.plot(x, summary["mean"], marker="o", color=color, label=model_label)
    ax.fill_between(x, summary["lower"], summary["upper"], color=color, alpha=0.25)
    if by == "day":
        ax.set_xticks(x)
        ax.set_xticklabels(DAY_LABELS)
        ax.set_xlabel("Weekday")
    else:
        ax.set_xticks(x[::2])
        ax.set_xlabel("Hour of day")
    ax.set_ylabel(f"E[{outcome_label}]")
    ax.set_title(f"Expected {outcome_label} by {by}")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    return fig


def plot_ppc(y: np.ndarray, y_rep: np.ndarray, model_label: str, max_lines: int = 50):
    """Observed vs replicated outcome distributions on log1p-spaced bins."""
    fig, ax = plt.subplots(figsize=(6, 4))
    upper = max(float(np.quantile(y_rep, 0.999)), float(y.max()), 1.0)
    bins = np.linspace(0.0, np.log1p(upper), 40)
    for rep in y_rep[:max_lines]:
        counts, _ = np.histogram(np.log1p(rep), bins=bins, density=True)
        ax.step(bins[:-1], counts, where="post", color=REPLICATED_COLOR, alpha=0.2, linewidth=0.8)
    counts, _ = np.histogram(np.log1p(y), bins=bins, density=True)
    ax.step(bins[:-1], counts, where="post", color=OBSERVED_COLOR, linewidth=1.8, label="observed")
    ax.plot([], [], color=REPLICATED_COLOR, label="replicated")
    ax.set_xlabel("log(1 + outcome)")
    ax.set_ylabel("Density")
    ax.set_title(f"Posterior predictive check: {model_label}")
    ax.legend()
    fig.tight_layout()
    return fig


def plot_pareto_k(loo: LooResult, model_label: str):
    """Pareto k of the subsampled observations."""
    fig, ax = plt.subplots(figsize=(7, 3.5))
    k = loo.pareto_k
    colors = [HNorange if kk > PARETO_K_THRESHOLD else REPLICATED_COLOR for kk in k]
    ax.scatter(loo.sample_idx, k, s=8, c=colors)
    ax.axhline(PARETO_K_THRESHOLD, color=HNorange, linestyle="--", linewidth=1)
    ax.set_xlabel("Observation index")
    ax.set_ylabel("Pareto k")
    ax.set_title(f"PSIS diagnostics: {model_label} ({loo.n_high_k} of {loo.n_subsample} above {PARETO_K_THRESHOLD})")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_loo_comparison(comparison: pd.DataFrame):
    """elpd_loo with its SE per model; differences to the best model in grey."""
    fig, ax = plt.subplots(figsize=(6, 0.6 * len(comparison) + 1.5))
    y_pos = np.arange(len(comparison))[::-1]
    for pos, (name, row) in zip(y_pos, comparison.iterrows()):
        ax.errorbar(row["elpd_loo"], pos, xerr=row["se"], fmt="o", color=model_color(name), capsize=3)
        if row["elpd_diff"] > 0:
            ax.errorbar(row["elpd_loo"], pos - 0.2, xerr=row["se_diff"], fmt="^", color=REPLICATED_COLOR, capsize=3)
    ax.set_yticks(y_pos)
    ax.set_yticklabels(list(comparison.index))
    ax.set_xlabel("elpd_loo")
    ax.set_title("Model comparison (PSIS-LOO)")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    return fig


def save_fit_figures(
    output_dir: Union[str, Path],
    stem: str,
    model_label: str,
    cells: pd.DataFrame,
    by_hour: pd.DataFrame,
    by_day: pd.DataFrame,
    y: Optional[np.ndarray] = None,
    y_rep: Optional[np.ndarray] = None,
    loo: Optional[LooResult] = None,
    outcome_label: str = "score",
) -> List[Path]:
    """Write every per-fit figure; returns the saved paths."""
    paths: List[Path] = []
    paths += save_figure(
        plot_expected_heatmap(cells, f"Expected {outcome_label}: {model_label}", outcome_label),
        output_dir,
        f"{stem}_expected_heatmap",
    )
    paths += save_figure(plot_prob_best(cells, title=f"Best time to post: {model_label}"), output_dir, f"{stem}_prob_best")
    paths += save_figure(plot_marginal(by_hour, "hour", model_label, outcome_label), output_dir, f"{stem}_by_hour")
    paths += save_figure(plot_marginal(by_day, "day", model_label, outcome_label), output_dir, f"{stem}_by_day")
    if y is not None and y_rep is not None:
        paths += save_figure(plot_ppc(y, y_rep, model_label), output_dir, f"{stem}_ppc")
    if loo is not None:
        paths += save_figure(plot_pareto_k(loo, model_label), output_dir, f"{stem}_pareto_k")
    return paths


__all__ = [
    "plot_expected_heatmap",
    "plot_prob_best",
    "plot_marginal",
    "plot_ppc",
    "plot_pareto_k",
    "plot_loo_comparison",
    "save_fit_figures",
]
