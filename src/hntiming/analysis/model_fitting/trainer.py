from __future__ import annotations

"""Fitting Stan programs with NUTS or ADVI.

Wraps cmdstanpy so callers get the same PosteriorFit regardless of the
algorithm: a dict of posterior draws (leading axis = draw) for the shared
quantities of interest plus an ArviZ InferenceData for diagnostics.
"""

from dataclasses import dataclass
import logging
from pathlib import Path
import time
from typing import Any, Dict, Optional, Tuple

import arviz as az
import numpy as np

from .models import POSTERIOR_VARIABLES, compile_model

logger = logging.getLogger(__name__)

METHODS = ("nuts", "advi")


class FitConfig:
    """Configuration for fitting one Stan program.

    Specifies the inference algorithm (NUTS or ADVI) and its settings, the
    random seed, and the compute backend (CPU, or OpenCL for the likelihood).
    """

    def __init__(
            self,
            method: str = "nuts",  # or "advi"
            chains: int = 4,
            iter_warmup: int = 1000,
            iter_sampling: int = 1000,
            adapt_delta: float = 0.9,
            max_treedepth: int = 10,
            parallel_chains: Optional[int] = None,
            advi_algorithm: str = "meanfield",  # or "fullrank"
            advi_iter: int = 10000,
            grad_samples: int = 1,
            elbo_samples: int = 100,
            eta: Optional[float] = None,
            tol_rel_obj: float = 0.01,
            output_draws: int = 1000,
            seed: int = 0,
            opencl: bool = False,
            opencl_ids: Tuple[int, int] = (0, 0),
            threads_per_chain: Optional[int] = None,
            show_progress: bool = False,
            force_compile: bool = False,
    ):
        self.method = method
        self.chains = chains
        self.iter_warmup = iter_warmup
        self.iter_sampling = iter_sampling
        self.adapt_delta = adapt_delta
        self.max_treedepth = max_treedepth
        self.parallel_chains = parallel_chains
        self.advi_algorithm = advi_algorithm
        self.advi_iter = advi_iter
        self.grad_samples = grad_samples
        self.elbo_samples = elbo_samples
        self.eta = eta
        self.tol_rel_obj = tol_rel_obj
        self.output_draws = output_draws
        self.seed = seed
        self.opencl = opencl
        self.opencl_ids = opencl_ids
        self.threads_per_chain = threads_per_chain
        self.show_progress = show_progress
        self.force_compile = force_compile


@dataclass
class PosteriorFit:
    model_name: str
    method: str
    fit: Any  # CmdStanMCMC | CmdStanVB
    draws: Dict[str, np.ndarray]
    chains: int
    idata: az.InferenceData
    elapsed_sec: float
    # log p(theta, y) - log q(theta) per draw; ADVI only
    vi_log_ratios: Optional[np.ndarray] = None

    @property
    def n_draws(self) -> int:
        return int(self.draws["phi"].shape[0])


def _run_nuts(model, stan_data: Dict[str, Any], config: FitConfig):
    return model.sample(
        data=stan_data,
        chains=config.chains,
        iter_warmup=config.iter_warmup,
        iter_sampling=config.iter_sampling,
        adapt_delta=config.adapt_delta,
        max_treedepth=config.max_treedepth,
        parallel_chains=config.parallel_chains,
        threads_per_chain=config.threads_per_chain,
        seed=config.seed,
        show_progress=config.show_progress,
    )


def _run_advi(model, stan_data: Dict[str, Any], config: FitConfig):
    # Non-converged runs still return draws; convergence is judged afterwards
    # from the Pareto k of the importance ratios.
    return model.variational(
        data=stan_data,
        algorithm=config.advi_algorithm,
        iter=config.advi_iter,
        grad_samples=config.grad_samples,
        elbo_samples=config.elbo_samples,
        eta=config.eta,
        tol_rel_obj=config.tol_rel_obj,
        output_samples=config.output_draws,
        seed=config.seed,
        require_converged=False,
    )


def extract_draws(fit, method: str) -> Dict[str, np.ndarray]:
    """Pull draws of the shared quantities with the draw axis first."""
    draws: Dict[str, np.ndarray] = {}
    for name in POSTERIOR_VARIABLES:
        if method == "advi":
            arr = fit.stan_variable(name, mean=False)
        else:
            arr = fit.stan_variable(name)
        draws[name] = np.asarray(arr, dtype=float)
    return draws


def _vi_log_ratios(fit) -> Optional[np.ndarray]:
    sample = fit.variational_sample_pd
    if "log_p__" not in sample.columns or "log_g__" not in sample.columns:
        logger.warning("ADVI output lacks log_p__/log_g__; skipping importance-ratio diagnostic")
        return None
    return (sample["log_p__"] - sample["log_g__"]).to_numpy(dtype=float)


def _idata_from_draws(draws: Dict[str, np.ndarray]) -> az.InferenceData:
    # Single pseudo-chain of independent approximate draws
    return az.from_dict(posterior={k: v[np.newaxis, ...] for k, v in draws.items()})


def fit_model(
    model_name: str,
    stan_data: Dict[str, Any],
    config: FitConfig,
    build_dir: Path,
    model=None,
) -> PosteriorFit:
    """Compile (if needed) and fit one registered program.

    ``model`` can be a pre-compiled CmdStanModel, which skips compilation.
    """
    if config.method not in METHODS:
        raise ValueError(f"Unknown method '{config.method}'. Expected one of {METHODS}")
    if model is None:
        model = compile_model(
            model_name,
            build_dir,
            opencl=config.opencl,
            opencl_ids=config.opencl_ids,
            force=config.force_compile,
        )

    logger.info(f"Fitting model={model_name} method={config.method} N={stan_data.get('N')}")
    start = time.perf_counter()
    vi_log_ratios = None
    if config.method == "nuts":
        fit = _run_nuts(model, stan_data, config)
        draws = extract_draws(fit, "nuts")
        idata = az.from_cmdstanpy(posterior=fit)
        chains = config.chains
    else:
        fit = _run_advi(model, stan_data, config)
        draws = extract_draws(fit, "advi")
        idata = _idata_from_draws(draws)
        vi_log_ratios = _vi_log_ratios(fit)
        chains = 1
    elapsed = time.perf_counter() - start
    logger.info(f"Finished model={model_name} method={config.method} in {elapsed:.1f}s")

    return PosteriorFit(
        model_name=model_name,
        method=config.method,
        fit=fit,
        draws=draws,
        chains=chains,
        idata=idata,
        elapsed_sec=elapsed,
        vi_log_ratios=vi_log_ratios,
    )


def relative_efficiency(posterior: PosteriorFit) -> float:
    """Relative ESS used by PSIS, averaged over the scalar parameters.

    ADVI draws are independent, so r_eff is 1.
    """
    if posterior.method != "nuts":
        return 1.0
    ess = az.ess(posterior.idata, var_names=["alpha", "phi"], method="mean")
    values = np.hstack([ess[v].values.ravel() for v in ess.data_vars])
    return float(np.clip(values.mean() / posterior.n_draws, 1e-3, None))


__all__ = [
    "METHODS",
    "FitConfig",
    "PosteriorFit",
    "extract_draws",
    "fit_model",
    "relative_efficiency",
]
