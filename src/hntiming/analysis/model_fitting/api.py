"""Public API for running the full analysis on a processed post table.

This module provides a thin, stable surface area so scripts and notebooks do
not need to import the CLI or the adapter modules directly.

Functions:
  run_analysis(df, fit_configs, output_dir, ...) -> AnalysisResult
  load_index(output_dir) -> pandas.DataFrame
  top_by_metric(df, metric, group_cols) -> pandas.DataFrame

Notes:
- Every model is scored on the same LOO subsample so differences are paired.
- A model whose LOO computation fails is logged and left out of the
  comparison; sampler failures propagate.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from ...data_handling.processors.post_processor import PostProcessingConfig, build_stan_data
from ...data_handling.validators import ProcessedPostValidator, validate_or_raise
from ..visualization.explore import save_figure
from ..visualization.posterior_plots import plot_loo_comparison, save_fit_figures
from .adapters import (
    build_data_spec,
    build_data_summary,
    build_fit_record,
    build_fit_spec_from_config,
)
from .diagnostics import diagnose
from .io import (
    INDEX_FILENAME,
    save_cell_summary_csv,
    save_comparison_csv,
    save_draws_npz,
    save_fit_record_json,
    update_fit_index_parquet,
    update_spec_manifest,
)
from .loo import LooResult, compare_loo, draw_subsample, loo_subsample
from .models import get_model_def
from .posterior import best_posting_times, cell_summary, marginal_summary, posterior_predictive
from .specs import LooSpec
from .trainer import FitConfig, PosteriorFit, fit_model, relative_efficiency

logger = logging.getLogger(__name__)

# Metrics where higher values indicate better fit (others assumed lower is better)
_HIGHER_IS_BETTER = {"elpd_loo", "best_prob"}


@dataclass
class AnalysisResult:
    records: List[Dict[str, Any]] = field(default_factory=list)
    posteriors: Dict[str, PosteriorFit] = field(default_factory=dict)
    loo: Dict[str, LooResult] = field(default_factory=dict)
    cells: Dict[str, pd.DataFrame] = field(default_factory=dict)
    comparison: Optional[pd.DataFrame] = None


def _metric_direction(metric: str) -> int:
    """Return +1 if higher is better for metric, else -1."""
    return 1 if metric in _HIGHER_IS_BETTER else -1


def _fit_key(model_name: str, config: FitConfig) -> str:
    return f"{model_name}_{config.method}"


def run_analysis(
    df: pd.DataFrame,
    fit_configs: Mapping[str, FitConfig],
    output_dir: Path,
    *,
    build_dir: Path,
    processing_config: Optional[PostProcessingConfig] = None,
    loo_spec: Optional[LooSpec] = None,
    credible_mass: float = 0.9,
    top: int = 5,
    make_figures: bool = True,
    save_draws: bool = True,
    compiled_models: Optional[Mapping[str, Any]] = None,
    provenance: Optional[Dict[str, Any]] = None,
) -> AnalysisResult:
    """Fit, diagnose, score and summarise every model in ``fit_configs``.

    ``fit_configs`` maps registered model names to their FitConfig. Outputs
    land in ``output_dir``; figures under ``output_dir / "figures"``.
    ``compiled_models`` (name -> CmdStanModel) skips compilation.
    """
    validate_or_raise(ProcessedPostValidator(), df)
    processing_config = processing_config or PostProcessingConfig()
    loo_spec = loo_spec or LooSpec()
    if not 0.0 < credible_mass < 1.0:
        raise ValueError(f"credible_mass must be in (0, 1), got {credible_mass}")
    output_dir.mkdir(parents=True, exist_ok=True)
    figures_dir = output_dir / "figures"

    stan_data = build_stan_data(df)
    data_summary = build_data_summary(df, processing_config)
    data_spec = build_data_spec(processing_config)
    y = df["y"].to_numpy()
    hour = df["hour"].to_numpy()
    day = df["day"].to_numpy()
    sample_idx = draw_subsample(len(df), loo_spec.n_subsample, loo_spec.seed) if loo_spec.enabled else None
    outcome_label = processing_config.outcome

    result = AnalysisResult()
    for model_name, config in fit_configs.items():
        model_def = get_model_def(model_name)
        key = _fit_key(model_name, config)
        compiled = (compiled_models or {}).get(model_name)
        posterior = fit_model(model_name, stan_data, config, build_dir, model=compiled)
        result.posteriors[key] = posterior

        report = diagnose(posterior, var_names=model_def.summary_vars, max_treedepth=config.max_treedepth)

        loo_res = None
        if loo_spec.enabled:
            try:
                loo_res = loo_subsample(
                    posterior.draws,
                    y,
                    hour,
                    day,
                    approximation=loo_spec.approximation,
                    sample_idx=sample_idx,
                    r_eff=relative_efficiency(posterior),
                    model=key,
                )
                result.loo[key] = loo_res
            except (ValueError, FloatingPointError) as e:
                logger.warning(f"LOO failed for {key}: {e}")

        cells = cell_summary(posterior.draws, credible_mass=credible_mass)
        best = best_posting_times(cells, top=top)
        result.cells[key] = cells
        logger.info(
            f"[{key}] best cell: day={best.loc[0, 'day_name']} hour={int(best.loc[0, 'hour']):02d} "
            f"(P(best)={best.loc[0, 'prob_best']:.2f}, E[{outcome_label}]={best.loc[0, 'mean']:.1f})"
        )

        fit_spec = build_fit_spec_from_config(model_name, config, loo_spec=loo_spec, data_spec=data_spec)
        record = build_fit_record(
            fit_spec,
            data_summary,
            posterior,
            diagnostics=report.to_dict(),
            best_times=best,
            loo=loo_res.to_dict() if loo_res is not None else None,
            provenance=provenance,
        )
        save_fit_record_json(output_dir, f"{record.file_stem}.json", record)
        update_spec_manifest(output_dir, record.spec_hash, record.short_spec_hash, record.spec)
        save_cell_summary_csv(output_dir, f"cells_{record.file_stem[4:]}.csv", cells)
        if save_draws:
            save_draws_npz(
                output_dir,
                f"draws_{record.file_stem[4:]}.npz",
                {k: posterior.draws[k] for k in ("log_mu_cell", "phi")},
            )
        result.records.append(record.to_dict())

        if make_figures:
            y_rep = posterior_predictive(posterior.draws, hour, day, n_draws=50, seed=loo_spec.seed)
            save_fit_figures(
                figures_dir,
                key,
                key,
                cells,
                marginal_summary(posterior.draws, by="hour", credible_mass=credible_mass),
                marginal_summary(posterior.draws, by="day", credible_mass=credible_mass),
                y=y,
                y_rep=y_rep,
                loo=loo_res,
                outcome_label=outcome_label,
            )

    if result.records:
        update_fit_index_parquet(output_dir, result.records)

    if len(result.loo) > 1:
        result.comparison = compare_loo(result.loo)
        save_comparison_csv(output_dir, result.comparison)
        logger.info("LOO comparison:\n" + result.comparison.to_string(float_format=lambda v: f"{v:.2f}"))
        if make_figures:
            save_figure(plot_loo_comparison(result.comparison), figures_dir, "loo_comparison")

    logger.info(f"Saved results to {output_dir}")
    return result


def load_index(output_dir: Path) -> pd.DataFrame:
    """Load the Parquet index for a given output directory."""
    return pd.read_parquet(output_dir / INDEX_FILENAME)


def top_by_metric(df: pd.DataFrame, metric: str, group_cols: Optional[List[str]] = None) -> pd.DataFrame:
    """Select best row per group based on metric.

    If group_cols is None returns single best overall row.
    """
    if metric not in df.columns:
        raise ValueError(f"Metric '{metric}' not found in index columns")
    ascending = _metric_direction(metric) == -1
    ordered = df.sort_values(metric, ascending=ascending)
    if group_cols:
        return ordered.drop_duplicates(subset=group_cols, keep="first")
    return ordered.head(1)


__all__ = ["AnalysisResult", "run_analysis", "load_index", "top_by_metric"]
