"""
Unit tests for the figure helpers under the paper style.
"""

import matplotlib as mpl
import matplotlib.pyplot as plt
import pytest

from hntiming.analysis.model_fitting.loo import loo_subsample
from hntiming.analysis.model_fitting.posterior import cell_summary, marginal_summary
from hntiming.analysis.visualization.explore import explore_posts
from hntiming.analysis.visualization.posterior_plots import plot_pareto_k, save_fit_figures
from hntiming.plotting.style import apply_paper_style


@pytest.fixture
def paper_style():
    with mpl.rc_context():
        apply_paper_style()
        yield
    plt.close("all")


def test_paper_style_leaves_layout_engine_off(paper_style):
    assert not mpl.rcParams["figure.constrained_layout.use"]


def test_pareto_k_plot_colours_each_point(draws, processed_posts):
    loo = loo_subsample(
        draws,
        processed_posts["y"],
        processed_posts["hour"],
        processed_posts["day"],
        n_subsample=50,
        model="simple",
    )
    fig = plot_pareto_k(loo, "simple")
    offsets = fig.axes[0].collections[0].get_offsets()
    assert len(offsets) == 50
    plt.close(fig)


def test_explore_heatmaps_with_paper_style(paper_style, processed_posts, tmp_path):
    written = explore_posts(processed_posts, tmp_path, timezone="UTC")
    names = {p.name for p in written}
    assert {"posts_per_cell.png", "mean_outcome_per_cell.png", "cell_counts.csv"} <= names
    assert (tmp_path / "posts_per_cell.pdf").exists()


def test_fit_figures_with_paper_style(paper_style, draws, processed_posts, tmp_path):
    y, hour, day = (processed_posts[c].to_numpy() for c in ("y", "hour", "day"))
    loo = loo_subsample(draws, y, hour, day, n_subsample=40, model="simple")
    paths = save_fit_figures(
        tmp_path,
        "simple_nuts",
        "simple_nuts",
        cell_summary(draws),
        marginal_summary(draws, by="hour"),
        marginal_summary(draws, by="day"),
        loo=loo,
    )
    assert (tmp_path / "simple_nuts_expected_heatmap.png").exists()
    assert (tmp_path / "simple_nuts_pareto_k.pdf").exists()
    assert all(p.exists() for p in paths)
