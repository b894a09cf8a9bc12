"""Posterior summaries answering "when should I post?".

All summaries work on the draws of ``log_mu_cell`` (draws x 7 x 24), the log
of the expected outcome for a post submitted in a given weekday/hour cell.
Hours and days are reported 0-based (hour 0..23, day 0=Monday..6=Sunday).
"""

from __future__ import annotations

from typing import Dict, Mapping

import numpy as np
import pandas as pd

from ...data_handling.simulate import nb2_rng
from ...plotting.palette import DAY_LABELS


def _quantile_bounds(credible_mass: float):
    if not 0.0 < credible_mass < 1.0:
        raise ValueError("credible_mass must be in (0, 1)")
    tail = (1.0 - credible_mass) / 2.0
    return tail, 1.0 - tail


def _summarise(expected: np.ndarray, credible_mass: float) -> Dict[str, np.ndarray]:
    """Summaries over the draw axis (0) of a draws x K matrix."""
    lo, hi = _quantile_bounds(credible_mass)
    n_draws, k = expected.shape
    best = expected.argmax(axis=1)
    prob_best = np.bincount(best, minlength=k) / n_draws
    # rank 1 = highest expected outcome within a draw
    ranks = (-expected).argsort(axis=1).argsort(axis=1) + 1
    return {
        "mean": expected.mean(axis=0),
        "median": np.median(expected, axis=0),
        "lower": np.quantile(expected, lo, axis=0),
        "upper": np.quantile(expected, hi, axis=0),
        "prob_best": prob_best,
        "mean_rank": ranks.mean(axis=0),
    }


def cell_summary(draws: Mapping[str, np.ndarray], credible_mass: float = 0.9) -> pd.DataFrame:
    """One row per (day, hour) cell with the expected outcome's posterior."""
    log_mu = np.asarray(draws["log_mu_cell"], dtype=float)
    n_draws, n_days, n_hours = log_mu.shape
    expected = np.exp(log_mu).reshape(n_draws, n_days * n_hours)
    stats = _summarise(expected, credible_mass)
    day_idx, hour_idx = np.divmod(np.arange(n_days * n_hours), n_hours)
    df = pd.DataFrame({"day": day_idx, "hour": hour_idx, **stats})
    df.insert(1, "day_name", [DAY_LABELS[d] for d in day_idx])
    return df


def marginal_summary(
    draws: Mapping[str, np.ndarray],
    by: str = "hour",
    credible_mass: float = 0.9,
) -> pd.DataFrame:
    """Expected outcome by hour (averaged over days) or by day (over hours)."""
    expected = np.exp(np.asarray(draws["log_mu_cell"], dtype=float))
    if by == "hour":
        marg = expected.mean(axis=1)
    elif by == "day":
        marg = expected.mean(axis=2)
    else:
        raise ValueError("by must be 'hour' or 'day'")
    stats = _summarise(marg, credible_mass)
    df = pd.DataFrame({by: np.arange(marg.shape[1]), **stats})
    if by == "day":
        df.insert(1, "day_name", [DAY_LABELS[d] for d in df["day"]])
    return df


def best_posting_times(summary: pd.DataFrame, top: int = 5) -> pd.DataFrame:
    """Top rows by probability of being best, ties broken by posterior mean."""
    return (
        summary.sort_values(["prob_best", "mean"], ascending=[False, False])
        .head(top)
        .reset_index(drop=True)
    )


def posterior_predictive(
    draws: Mapping[str, np.ndarray],
    hour,
    day,
    n_draws: int = 100,
    seed: int = 0,
) -> np.ndarray:
    """Replicated outcomes (n_draws x N) from a thinned set of posterior draws."""
    rng = np.random.default_rng(seed)
    log_mu_cell = np.asarray(draws["log_mu_cell"], dtype=float)
    phi = np.asarray(draws["phi"], dtype=float)
    total = log_mu_cell.shape[0]
    pick = rng.choice(total, size=min(n_draws, total), replace=False)
    hour = np.asarray(hour, dtype=int)
    day = np.asarray(day, dtype=int)
    mu = np.exp(log_mu_cell[pick][:, day, hour])
    return nb2_rng(rng, mu, phi[pick][:, np.newaxis])


__all__ = [
    "cell_summary",
    "marginal_summary",
    "best_posting_times",
    "posterior_predictive",
]
