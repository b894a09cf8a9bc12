"""Exploratory and posterior figures.

Modules:
- explore: outcome distribution and weekday/hour heatmaps of raw data
- posterior_plots: expected-outcome heatmaps, best-cell probabilities,
  marginals, posterior predictive checks, Pareto k and LOO comparison
"""

from .explore import explore_posts, save_figure
from .posterior_plots import plot_loo_comparison, save_fit_figures

__all__ = ["explore_posts", "save_figure", "plot_loo_comparison", "save_fit_figures"]
