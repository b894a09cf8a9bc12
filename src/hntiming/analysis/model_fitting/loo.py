"""
Approximate leave-one-out cross-validation with PSIS and subsampling.

With hundreds of thousands of posts, the S x N pointwise log-likelihood
matrix does not fit in memory and Pareto smoothing every column is slow.
Following Magnusson et al. (2019, "Bayesian leave-one-out cross-validation
for large data"), we:

1. compute a cheap surrogate of every observation's elpd_loo (``plpd``: log
   density at the posterior mean, or ``lpd``: log mean density over draws);
2. run exact PSIS-LOO on a simple random subsample of m observations;
3. combine both with the difference estimator

       elpd_hat = sum_i approx_i + N * mean_{j in S}(elpd_j - approx_j)

   which is unbiased for the full-data elpd_loo and has a subsampling
   variance that shrinks as the surrogate improves.

Pareto smoothing itself is delegated to ``arviz.psislw``.

The log likelihood is the NB2 density shared by every registered program, so
it is evaluated here from the posterior draws of ``log_mu_cell`` and ``phi``
rather than emitted from Stan.

Hours and days passed to this module are 0-based (as in the processed frame).
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Mapping, Optional

import arviz as az
import numpy as np
import pandas as pd
from scipy.special import gammaln, logsumexp

from .specs import LOO_APPROXIMATIONS as APPROXIMATIONS

logger = logging.getLogger(__name__)

PARETO_K_THRESHOLD = 0.7
DEFAULT_CHUNK_SIZE = 2048


@dataclass
class LooResult:
    elpd_loo: float
    se: float
    subsampling_se: float
    p_loo: float
    n_data: int
    n_subsample: int
    approximation: str
    r_eff: float
    sample_idx: np.ndarray
    elpd_pointwise: np.ndarray  # exact PSIS-LOO elpd at sample_idx
    approx_pointwise: np.ndarray  # surrogate for all N observations
    pareto_k: np.ndarray  # at sample_idx
    model: Optional[str] = None

    @property
    def looic(self) -> float:
        return -2.0 * self.elpd_loo

    @property
    def n_high_k(self) -> int:
        return int((self.pareto_k > PARETO_K_THRESHOLD).sum())

    @property
    def is_exact(self) -> bool:
        return self.n_subsample >= self.n_data

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly summary; pointwise arrays are left out."""
        return {
            "elpd_loo": float(self.elpd_loo),
            "se": float(self.se),
            "subsampling_se": float(self.subsampling_se),
            "p_loo": float(self.p_loo),
            "looic": float(self.looic),
            "n_data": int(self.n_data),
            "n_subsample": int(self.n_subsample),
            "approximation": self.approximation,
            "r_eff": float(self.r_eff),
            "max_pareto_k": float(np.max(self.pareto_k)) if self.pareto_k.size else None,
            "n_high_k": self.n_high_k,
        }


def nb2_log_lik(y, log_mu, phi):
    """Log pmf of NB2(y | mu = exp(log_mu), phi), broadcasting over inputs."""
    y = np.asarray(y, dtype=float)
    log_mu = np.asarray(log_mu, dtype=float)
    phi = np.asarray(phi, dtype=float)
    log_phi = np.log(phi)
    log_denom = np.logaddexp(log_phi, log_mu)
    return (
        gammaln(y + phi)
        - gammaln(phi)
        - gammaln(y + 1.0)
        + phi * (log_phi - log_denom)
        + y * (log_mu - log_denom)
    )


def _check_inputs(draws: Mapping[str, np.ndarray], y, hour, day):
    for key in ("log_mu_cell", "phi"):
        if key not in draws:
            raise KeyError(f"Posterior draws missing '{key}'")
    y = np.asarray(y)
    hour = np.asarray(hour, dtype=int)
    day = np.asarray(day, dtype=int)
    if not (len(y) == len(hour) == len(day)):
        raise ValueError("y, hour and day must have the same length")
    if len(y) == 0:
        raise ValueError("No observations")
    return y, hour, day


def pointwise_log_lik(
    draws: Mapping[str, np.ndarray],
    y,
    hour,
    day,
    idx: Optional[np.ndarray] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> np.ndarray:
    """S x n log likelihood for the observations in ``idx`` (all if None)."""
    y, hour, day = _check_inputs(draws, y, hour, day)
    if idx is None:
        idx = np.arange(len(y))
    idx = np.asarray(idx, dtype=int)
    log_mu_cell = np.asarray(draws["log_mu_cell"], dtype=float)
    phi = np.asarray(draws["phi"], dtype=float)[:, np.newaxis]
    out = np.empty((log_mu_cell.shape[0], len(idx)))
    for start in range(0, len(idx), chunk_size):
        cols = idx[start:start + chunk_size]
        log_mu = log_mu_cell[:, day[cols], hour[cols]]
        out[:, start:start + len(cols)] = nb2_log_lik(y[cols], log_mu, phi)
    return out


def elpd_approximation(
    draws: Mapping[str, np.ndarray],
    y,
    hour,
    day,
    method: str = "plpd",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> np.ndarray:
    """Cheap per-observation surrogate of elpd_loo for all N observations."""
    y, hour, day = _check_inputs(draws, y, hour, day)
    if method == "plpd":
        log_mu_mean = np.asarray(draws["log_mu_cell"], dtype=float).mean(axis=0)
        phi_mean = float(np.mean(draws["phi"]))
        return nb2_log_lik(y, log_mu_mean[day, hour], phi_mean)
    if method == "lpd":
        n_draws = np.asarray(draws["phi"]).shape[0]
        out = np.empty(len(y))
        for start in range(0, len(y), chunk_size):
            cols = np.arange(start, min(start + chunk_size, len(y)))
            ll = pointwise_log_lik(draws, y, hour, day, idx=cols, chunk_size=chunk_size)
            out[cols] = logsumexp(ll, axis=0) - np.log(n_draws)
        return out
    raise ValueError(f"Unknown approximation '{method}'. Expected one of {APPROXIMATIONS}")


def draw_subsample(n_data: int, n_subsample: Optional[int], seed: int = 0) -> np.ndarray:
    """Sorted simple random sample without replacement (everything if m >= N)."""
    if n_subsample is None or n_subsample >= n_data:
        return np.arange(n_data)
    if n_subsample < 2:
        raise ValueError("n_subsample must be at least 2")
    rng = np.random.default_rng(seed)
    return np.sort(rng.choice(n_data, size=n_subsample, replace=False))


def psis_elpd(log_lik: np.ndarray, r_eff: float = 1.0):
    """Exact PSIS-LOO elpd and Pareto k for each column of an S x n matrix."""
    log_lik_t = np.ascontiguousarray(log_lik.T)
    log_weights, khat = az.psislw(-log_lik_t, reff=r_eff)
    elpd_i = logsumexp(np.asarray(log_weights) + log_lik_t, axis=1)
    return elpd_i, np.atleast_1d(np.asarray(khat, dtype=float))


def difference_estimator(approx: np.ndarray, idx: np.ndarray, exact: np.ndarray):
    """Estimate sum_i exact_i from all surrogates and exact values on ``idx``.

    Returns (estimate, se, subsampling_se): ``se`` is the usual LOO standard
    error of the sum (population spread of the pointwise values), while
    ``subsampling_se`` is the extra uncertainty from not evaluating every
    observation exactly.
    """
    approx = np.asarray(approx, dtype=float)
    exact = np.asarray(exact, dtype=float)
    n_data = len(approx)
    m = len(idx)
    e = exact - approx[idx]
    estimate = float(approx.sum() + n_data * e.mean())
    if m < n_data and m > 1:
        sub_var = n_data ** 2 * (1.0 - m / n_data) * e.var(ddof=1) / m
    else:
        sub_var = 0.0
    sum_sq = (approx ** 2).sum() + (n_data / m) * (exact ** 2 - approx[idx] ** 2).sum()
    se = float(np.sqrt(max(sum_sq - estimate ** 2 / n_data, 0.0)))
    return estimate, se, float(np.sqrt(sub_var))


def loo_subsample(
    draws: Mapping[str, np.ndarray],
    y,
    hour,
    day,
    n_subsample: Optional[int] = 1000,
    approximation: str = "plpd",
    seed: int = 0,
    sample_idx: Optional[np.ndarray] = None,
    r_eff: float = 1.0,
    model: Optional[str] = None,
) -> LooResult:
    """PSIS-LOO on a subsample combined with a surrogate for the rest.

    Pass the same ``sample_idx`` for every model that will be compared.
    """
    y, hour, day = _check_inputs(draws, y, hour, day)
    n_data = len(y)
    if sample_idx is None:
        sample_idx = draw_subsample(n_data, n_subsample, seed)
    sample_idx = np.asarray(sample_idx, dtype=int)

    approx = elpd_approximation(draws, y, hour, day, method=approximation)
    log_lik = pointwise_log_lik(draws, y, hour, day, idx=sample_idx)
    elpd_s, khat = psis_elpd(log_lik, r_eff=r_eff)
    n_draws = log_lik.shape[0]
    lpd_s = logsumexp(log_lik, axis=0) - np.log(n_draws)

    elpd, se, sub_se = difference_estimator(approx, sample_idx, elpd_s)
    p_loo = float(n_data * np.mean(lpd_s - elpd_s))

    result = LooResult(
        elpd_loo=elpd,
        se=se,
        subsampling_se=sub_se,
        p_loo=p_loo,
        n_data=n_data,
        n_subsample=len(sample_idx),
        approximation=approximation,
        r_eff=r_eff,
        sample_idx=sample_idx,
        elpd_pointwise=elpd_s,
        approx_pointwise=approx,
        pareto_k=khat,
        model=model,
    )
    label = model or "model"
    logger.info(
        f"[{label}] elpd_loo={elpd:.1f} (se={se:.1f}, subsampling se={sub_se:.2f}, "
        f"m={len(sample_idx)}/{n_data}, p_loo={p_loo:.1f})"
    )
    if result.n_high_k:
        logger.warning(
            f"[{label}] {result.n_high_k} of {len(sample_idx)} subsampled observations have "
            f"Pareto k > {PARETO_K_THRESHOLD}; elpd estimate may be unreliable"
        )
    return result


def psis_loo(draws, y, hour, day, r_eff: float = 1.0, model: Optional[str] = None) -> LooResult:
    """Exact PSIS-LOO over every observation."""
    return loo_subsample(draws, y, hour, day, n_subsample=None, r_eff=r_eff, model=model)


def compare_loo(results: Mapping[str, LooResult]) -> pd.DataFrame:
    """Rank models by elpd_loo with paired differences.

    Differences use the difference estimator on pointwise differences, which
    is only valid when all results share the same subsample.
    """
    if not results:
        raise ValueError("At least one LOO result is required")
    names = list(results)
    ref = results[names[0]]
    for name in names[1:]:
        other = results[name]
        if other.n_data != ref.n_data:
            raise ValueError(f"Model '{name}' was evaluated on {other.n_data} rows, expected {ref.n_data}")
        if not np.array_equal(other.sample_idx, ref.sample_idx):
            raise ValueError(f"Model '{name}' uses a different LOO subsample; comparisons need shared indices")

    ordered = sorted(names, key=lambda n: results[n].elpd_loo, reverse=True)
    best = results[ordered[0]]
    elpds = np.array([results[n].elpd_loo for n in ordered])
    weights = np.exp(elpds - elpds.max())
    weights /= weights.sum()

    rows = []
    for rank, (name, weight) in enumerate(zip(ordered, weights)):
        res = results[name]
        if name == ordered[0]:
            diff, se_diff, sub_se_diff = 0.0, 0.0, 0.0
        else:
            diff, se_diff, sub_se_diff = difference_estimator(
                best.approx_pointwise - res.approx_pointwise,
                res.sample_idx,
                best.elpd_pointwise - res.elpd_pointwise,
            )
        rows.append({
            "model": name,
            "rank": rank,
            "elpd_loo": res.elpd_loo,
            "se": res.se,
            "p_loo": res.p_loo,
            "elpd_diff": diff,
            "se_diff": se_diff,
            "subsampling_se_diff": sub_se_diff,
            "looic": res.looic,
            "weight": float(weight),
            "n_high_k": res.n_high_k,
        })
    return pd.DataFrame(rows).set_index("model")


__all__ = [
    "APPROXIMATIONS",
    "PARETO_K_THRESHOLD",
    "LooResult",
    "nb2_log_lik",
    "pointwise_log_lik",
    "elpd_approximation",
    "draw_subsample",
    "psis_elpd",
    "difference_estimator",
    "loo_subsample",
    "psis_loo",
    "compare_loo",
]
