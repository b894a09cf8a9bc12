"""Adapters bridging FitConfig / processing config to specs and fit records.

Pure, side-effect free builders: a FitConfig plus processing settings become
a FitSpec (hashed for identity), and a PosteriorFit plus its summaries
become a FitRecord ready for validation and persistence.

Example (internal usage in the pipeline after a fit):

    fit_spec = build_fit_spec_from_config(model_name, fit_cfg, loo_spec, data_spec)
    spec_hash, short_spec_hash = compute_spec_hash(fit_spec.to_minimal_dict())
    record = build_fit_record(fit_spec, data_summary, posterior, diagnostics, ...)
"""
from __future__ import annotations

from datetime import datetime, timezone
from importlib import metadata
import platform
import sys
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ...data_handling.processors.post_processor import PostProcessingConfig
from .hashing import compute_data_hash, compute_spec_hash
from .result_types import SCHEMA_VERSION, DataSummary, FitRecord
from .specs import DataSpec, FitSpec, LooSpec, SamplerSpec, VariationalSpec
from .trainer import FitConfig

_TRACKED_PACKAGES = ("cmdstanpy", "arviz", "numpy", "pandas", "scipy")


def build_data_spec(config: PostProcessingConfig) -> DataSpec:
    return DataSpec(
        timezone=config.timezone,
        outcome=config.outcome,
        story_only=config.story_only,
        min_score=config.min_score,
        start=config.start,
        end=config.end,
        sample_size=config.sample_size,
        seed=config.seed,
    )


def build_fit_spec_from_config(
    model_name: str,
    config: FitConfig,
    loo_spec: Optional[LooSpec] = None,
    data_spec: Optional[DataSpec] = None,
) -> FitSpec:
    """Translate a FitConfig into the hashed FitSpec.

    Only the settings block matching the method is filled in, so switching
    unrelated ADVI knobs never changes a NUTS spec hash.
    """
    sampler = None
    variational = None
    if config.method == "nuts":
        sampler = SamplerSpec(
            chains=config.chains,
            iter_warmup=config.iter_warmup,
            iter_sampling=config.iter_sampling,
            adapt_delta=config.adapt_delta,
            max_treedepth=config.max_treedepth,
        )
    else:
        variational = VariationalSpec(
            algorithm=config.advi_algorithm,
            iter=config.advi_iter,
            grad_samples=config.grad_samples,
            elbo_samples=config.elbo_samples,
            eta=config.eta,
            tol_rel_obj=config.tol_rel_obj,
            output_draws=config.output_draws,
        )
    return FitSpec(
        model=model_name,
        method=config.method,
        seed=config.seed,
        backend="opencl" if config.opencl else "cpu",
        sampler=sampler,
        variational=variational,
        loo=loo_spec or LooSpec(),
        data=data_spec or DataSpec(),
    )


def build_data_summary(df: pd.DataFrame, config: PostProcessingConfig) -> DataSummary:
    data_hash, short_data_hash = compute_data_hash(df)
    y = df["y"].to_numpy(dtype=float)
    date_min = date_max = None
    if "posted_at" in df.columns and len(df):
        date_min = df["posted_at"].min().isoformat()
        date_max = df["posted_at"].max().isoformat()
    return DataSummary(
        num_rows=int(len(df)),
        data_hash=data_hash,
        short_data_hash=short_data_hash,
        outcome=config.outcome,
        timezone=config.timezone,
        outcome_mean=float(y.mean()) if len(y) else None,
        outcome_var=float(y.var(ddof=1)) if len(y) > 1 else None,
        date_min=date_min,
        date_max=date_max,
    )


def capture_environment() -> Dict[str, Any]:
    versions = {}
    for pkg in _TRACKED_PACKAGES:
        try:
            versions[pkg] = metadata.version(pkg)
        except metadata.PackageNotFoundError:
            versions[pkg] = None
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "packages": versions,
    }


def summarize_parameters(draws: Dict[str, np.ndarray]) -> Dict[str, Any]:
    """Posterior mean/sd of the scalar parameters and the effect vectors."""
    out: Dict[str, Any] = {}
    for name in ("alpha", "phi"):
        arr = np.asarray(draws[name], dtype=float)
        out[name] = {"mean": float(arr.mean()), "sd": float(arr.std(ddof=1))}
    for name in ("hour_effect", "day_effect"):
        arr = np.asarray(draws[name], dtype=float)
        out[name] = {"mean": arr.mean(axis=0).tolist(), "sd": arr.std(axis=0, ddof=1).tolist()}
    return out


def build_fit_record(
    fit_spec: FitSpec,
    data_summary: DataSummary,
    posterior,
    diagnostics: Dict[str, Any],
    best_times: pd.DataFrame,
    loo: Optional[Dict[str, Any]] = None,
    provenance: Optional[Dict[str, Any]] = None,
) -> FitRecord:
    spec_dict = fit_spec.to_minimal_dict()
    spec_hash, short_spec_hash = compute_spec_hash(spec_dict)
    best_rows: List[Dict[str, Any]] = []
    for row in best_times.to_dict(orient="records"):
        best_rows.append({k: (v.item() if isinstance(v, np.generic) else v) for k, v in row.items()})
    prov = {"run_timestamp": datetime.now(timezone.utc).isoformat()}
    prov.update(provenance or {})
    return FitRecord(
        schema_version=SCHEMA_VERSION,
        spec_hash=spec_hash,
        short_spec_hash=short_spec_hash,
        data_hash=data_summary.data_hash,
        short_data_hash=data_summary.short_data_hash,
        model=fit_spec.model,
        method=fit_spec.method,
        spec=spec_dict,
        data_spec=data_summary.to_dict(),
        diagnostics=diagnostics,
        best_times=best_rows,
        posterior=summarize_parameters(posterior.draws),
        loo=loo,
        timing={"elapsed_sec": float(posterior.elapsed_sec), "n_draws": posterior.n_draws, "chains": posterior.chains},
        environment=capture_environment(),
        provenance=prov,
    )


__all__ = [
    "build_data_spec",
    "build_fit_spec_from_config",
    "build_data_summary",
    "capture_environment",
    "summarize_parameters",
    "build_fit_record",
]
