"""
Pytest configuration and shared fixtures for hntiming tests.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from hntiming.data_handling.processors.post_processor import PostProcessor
from hntiming.data_handling.simulate import simulate_posts

# Effects used to simulate data: evenings and weekends are better
TRUE_HOUR_EFFECT = 0.4 * np.sin(np.linspace(0, 2 * np.pi, 24, endpoint=False))
TRUE_DAY_EFFECT = np.array([0.0, 0.05, 0.1, 0.05, 0.0, -0.2, -0.1])


def pytest_configure(config):
    config.addinivalue_line("markers", "stan: needs a CmdStan installation")


def make_draws(n_draws=200, seed=0, hour_scale=1.0, alpha=np.log(10.0), phi=1.0, noise=0.05):
    """Posterior-like draws with the same layout the Stan programs produce."""
    rng = np.random.default_rng(seed)
    alpha_d = alpha + noise * rng.standard_normal(n_draws)
    phi_d = phi * np.exp(noise * rng.standard_normal(n_draws))
    hour_d = hour_scale * TRUE_HOUR_EFFECT + noise * rng.standard_normal((n_draws, 24))
    day_d = TRUE_DAY_EFFECT + noise * rng.standard_normal((n_draws, 7))
    log_mu_cell = alpha_d[:, None, None] + day_d[:, :, None] + hour_d[:, None, :]
    return {
        "alpha": alpha_d,
        "phi": phi_d,
        "hour_effect": hour_d,
        "day_effect": day_d,
        "log_mu_cell": log_mu_cell,
    }


class FakeVariationalFit:
    """Stands in for cmdstanpy.CmdStanVB."""

    def __init__(self, draws, seed=0):
        self.draws = draws
        n = draws["phi"].shape[0]
        rng = np.random.default_rng(seed)
        log_g = rng.normal(size=n)
        self.variational_sample_pd = pd.DataFrame(
            {"lp__": 0.0, "log_p__": log_g + 0.05 * rng.normal(size=n), "log_g__": log_g}
        )

    def stan_variable(self, name, mean=None):
        return self.draws[name]


class FakeModel:
    """Stands in for a compiled cmdstanpy.CmdStanModel."""

    def __init__(self, draws):
        self.draws = draws
        self.calls = []

    def variational(self, **kwargs):
        self.calls.append(("variational", kwargs))
        return FakeVariationalFit(self.draws)

    def sample(self, **kwargs):
        self.calls.append(("sample", kwargs))
        return FakeVariationalFit(self.draws)


@pytest.fixture
def raw_posts():
    """Simulated raw dump with known hour/day effects."""
    return simulate_posts(
        n=600,
        hour_effect=TRUE_HOUR_EFFECT,
        day_effect=TRUE_DAY_EFFECT,
        phi=1.5,
        seed=1,
    )


@pytest.fixture
def processed_posts(raw_posts):
    return PostProcessor().process(raw_posts)


@pytest.fixture
def draws():
    return make_draws()


@pytest.fixture
def flat_draws():
    """Draws of a model without hour effects (worse fit to the simulated data)."""
    return make_draws(seed=1, hour_scale=0.0)


@pytest.fixture
def raw_posts_csv(raw_posts, tmp_path):
    path = tmp_path / "posts.csv"
    raw_posts.to_csv(path, index=False)
    return path
