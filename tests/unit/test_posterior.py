"""
Unit tests for posterior summaries and best posting times.
"""

import numpy as np
import pytest

from hntiming.analysis.model_fitting.posterior import (
    best_posting_times,
    cell_summary,
    marginal_summary,
    posterior_predictive,
)


def _peaked_draws(n_draws=100, day=4, hour=17):
    log_mu = np.zeros((n_draws, 7, 24))
    log_mu[:, day, hour] = 1.0
    return {"log_mu_cell": log_mu, "phi": np.ones(n_draws)}


def test_cell_summary_layout(draws):
    cells = cell_summary(draws)
    assert len(cells) == 168
    assert list(cells.columns[:3]) == ["day", "day_name", "hour"]
    assert cells["prob_best"].sum() == pytest.approx(1.0)
    assert (cells["lower"] <= cells["mean"]).all()
    assert (cells["mean"] <= cells["upper"]).all()
    assert cells["mean_rank"].min() >= 1


def test_best_cell_found():
    cells = cell_summary(_peaked_draws())
    best = best_posting_times(cells, top=3)
    assert len(best) == 3
    assert best.loc[0, "day_name"] == "Fri"
    assert best.loc[0, "hour"] == 17
    assert best.loc[0, "prob_best"] == pytest.approx(1.0)
    assert best.loc[0, "mean_rank"] == pytest.approx(1.0)


def test_marginals(draws):
    by_hour = marginal_summary(draws, by="hour")
    by_day = marginal_summary(draws, by="day")
    assert len(by_hour) == 24 and len(by_day) == 7
    assert by_day["day_name"].tolist()[0] == "Mon"
    with pytest.raises(ValueError):
        marginal_summary(draws, by="month")


def test_bad_credible_mass(draws):
    with pytest.raises(ValueError):
        cell_summary(draws, credible_mass=1.5)


def test_posterior_predictive(draws, processed_posts):
    y_rep = posterior_predictive(
        draws, processed_posts["hour"], processed_posts["day"], n_draws=20, seed=1
    )
    assert y_rep.shape == (20, len(processed_posts))
    assert (y_rep >= 0).all()
    # roughly the simulated mean of 10
    assert 5 < y_rep.mean() < 20
