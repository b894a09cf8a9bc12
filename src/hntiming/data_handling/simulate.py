"""Synthetic posts drawn from the negative-binomial generative model.

Used for prior-predictive checks and as fixture data: the true hour/day
effects are known, so fits can be checked for recovery.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .processors.post_processor import N_DAYS, N_HOURS


def nb2_rng(rng: np.random.Generator, mu: np.ndarray, phi: float | np.ndarray) -> np.ndarray:
    """Draw NB2 counts with mean ``mu`` and variance ``mu + mu**2 / phi``."""
    mu = np.asarray(mu, dtype=float)
    phi = np.asarray(phi, dtype=float)
    p = phi / (phi + mu)
    return rng.negative_binomial(phi, p)


def simulate_posts(
    n: int = 1000,
    alpha: float = math.log(10.0),
    hour_effect: Optional[Sequence[float]] = None,
    day_effect: Optional[Sequence[float]] = None,
    phi: float = 1.0,
    start: str = "2023-01-02",
    days: int = 364,
    seed: int = 0,
) -> pd.DataFrame:
    """Simulate ``n`` stories with UTC submission times spread over ``days`` days.

    Returns a raw-style frame (``id``, ``type``, ``time``, ``score``) that
    goes through the same PostProcessor path as real dumps.
    """
    if n <= 0:
        raise ValueError("n must be positive")
    if phi <= 0:
        raise ValueError("phi must be positive")
    hour_eff = np.zeros(N_HOURS) if hour_effect is None else np.asarray(hour_effect, dtype=float)
    day_eff = np.zeros(N_DAYS) if day_effect is None else np.asarray(day_effect, dtype=float)
    if hour_eff.shape != (N_HOURS,):
        raise ValueError(f"hour_effect must have length {N_HOURS}")
    if day_eff.shape != (N_DAYS,):
        raise ValueError(f"day_effect must have length {N_DAYS}")

    rng = np.random.default_rng(seed)
    t0 = int(pd.Timestamp(start, tz="UTC").timestamp())
    times = t0 + rng.integers(0, days * 86400, size=n)
    posted = pd.to_datetime(times, unit="s", utc=True)
    hour = posted.hour.to_numpy()
    day = posted.dayofweek.to_numpy()

    mu = np.exp(alpha + hour_eff[hour] + day_eff[day])
    score = nb2_rng(rng, mu, phi)

    return pd.DataFrame(
        {
            "id": np.arange(1, n + 1),
            "type": "story",
            "time": times.astype(np.int64),
            "score": score.astype(np.int64),
        }
    )


__all__ = ["nb2_rng", "simulate_posts"]
