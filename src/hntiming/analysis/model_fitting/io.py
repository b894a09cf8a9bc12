from __future__ import annotations

"""Persistence of fit records, summaries and the Parquet index.

Each fit writes:
  fit_<model>_<method>_<shortSpecHash>_<shortDataHash>.json   validated FitRecord
  cells_<model>_<method>_<...>.csv                              per-cell posterior summary
  draws_<model>_<method>_<...>.npz                              log_mu_cell and phi draws
Per output directory:
  fit_index.parquet      one row per fit, deduplicated by (spec_hash, data_hash)
  spec_manifest.csv      one row per distinct spec
  loo_comparison.csv     latest model comparison table
"""

from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

import numpy as np
import pandas as pd

from .validation import validate_fit_record_dict

INDEX_FILENAME = "fit_index.parquet"
MANIFEST_FILENAME = "spec_manifest.csv"
COMPARISON_FILENAME = "loo_comparison.csv"


def save_fit_record_json(output_dir: Path, filename: str, record, validate: bool = True) -> Path:
    """Write a FitRecord (dataclass or dict) as JSON, validating first."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    payload = record.to_dict() if hasattr(record, "to_dict") else record
    if validate:
        # Catch schema regressions before anything lands on disk
        validate_fit_record_dict(payload)
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)
    return path


def load_fit_record_json(path: Path, validate: bool = False) -> Dict[str, Any]:
    with open(path) as f:
        data = json.load(f)
    if validate:
        validate_fit_record_dict(data)
    return data


def save_cell_summary_csv(output_dir: Path, filename: str, summary: pd.DataFrame) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    summary.to_csv(path, index=False)
    return path


def save_comparison_csv(output_dir: Path, comparison: pd.DataFrame, filename: str = COMPARISON_FILENAME) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    comparison.to_csv(path, index=True)
    return path


def save_draws_npz(output_dir: Path, filename: str, draws: Mapping[str, np.ndarray]) -> Path:
    """Store the draws needed to redo summaries and LOO without refitting."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    np.savez_compressed(path, **{k: np.asarray(v) for k, v in draws.items()})
    return path


def load_draws_npz(path: Path) -> Dict[str, np.ndarray]:
    with np.load(path) as data:
        return {k: data[k] for k in data.files}


def _row_for_index(record: Dict[str, Any]) -> Dict[str, Any]:
    """Extract a minimal set of fields for Parquet indexing.

    Full details remain in the per-fit JSON files. Adding a column here is a
    backward-compatible change; removing or renaming requires a migration.
    """
    loo = record.get("loo") or {}
    diag = record.get("diagnostics") or {}
    metrics = diag.get("metrics") or {}
    data_spec = record.get("data_spec") or {}
    best = (record.get("best_times") or [{}])[0]
    timing = record.get("timing") or {}
    return {
        "spec_hash": record.get("spec_hash"),
        "short_spec_hash": record.get("short_spec_hash"),
        "data_hash": record.get("data_hash"),
        "short_data_hash": record.get("short_data_hash"),
        "schema_version": record.get("schema_version"),
        "model": record.get("model"),
        "method": record.get("method"),
        # Data provenance
        "num_rows": data_spec.get("num_rows"),
        "outcome": data_spec.get("outcome"),
        "timezone": data_spec.get("timezone"),
        # LOO
        "elpd_loo": loo.get("elpd_loo"),
        "elpd_loo_se": loo.get("se"),
        "loo_subsampling_se": loo.get("subsampling_se"),
        "p_loo": loo.get("p_loo"),
        "looic": loo.get("looic"),
        "loo_n_subsample": loo.get("n_subsample"),
        "loo_n_high_k": loo.get("n_high_k"),
        # Diagnostics
        "diagnostics_ok": diag.get("ok"),
        "max_rhat": metrics.get("max_rhat"),
        "min_ess_bulk": metrics.get("min_ess_bulk"),
        "divergences": metrics.get("divergences"),
        "vi_pareto_k": metrics.get("pareto_k"),
        # Headline answer
        "best_day": best.get("day"),
        "best_hour": best.get("hour"),
        "best_prob": best.get("prob_best"),
        "best_mean": best.get("mean"),
        "elapsed_sec": timing.get("elapsed_sec"),
    }


def update_fit_index_parquet(output_dir: Path, new_records: Iterable[Dict[str, Any]], index_filename: str = INDEX_FILENAME) -> Path:
    """Append (or create) the Parquet index of fit records.

    Idempotent on (spec_hash, data_hash): a refit with identical spec and data
    replaces its earlier row.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / index_filename
    df_new = pd.DataFrame([_row_for_index(r) for r in new_records])
    if path.exists():
        df_existing = pd.read_parquet(path)
        df_all = pd.concat([df_existing, df_new], ignore_index=True)
        df_all.drop_duplicates(subset=["spec_hash", "data_hash"], keep="last", inplace=True)
    else:
        df_all = df_new
    df_all.to_parquet(path, index=False)
    return path


def update_spec_manifest(output_dir: Path, spec_hash: str, short_spec_hash: str, spec_dict: Dict[str, Any]) -> Path:
    """Append a row describing a spec (if new) to spec_manifest.csv.

    Idempotent: if spec_hash already present, no duplicate row is added.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / MANIFEST_FILENAME
    method = spec_dict.get("method")
    sampler = spec_dict.get("sampler") or {}
    variational = spec_dict.get("variational") or {}
    loo = spec_dict.get("loo") or {}
    data = spec_dict.get("data") or {}

    parts = [spec_dict.get("model"), method, spec_dict.get("backend")]
    if method == "nuts":
        parts += [f"c{sampler.get('chains')}", f"w{sampler.get('iter_warmup')}", f"s{sampler.get('iter_sampling')}"]
    elif method == "advi":
        parts += [variational.get("algorithm"), f"d{variational.get('output_draws')}"]
    if loo.get("enabled"):
        parts.append(f"loo-{loo.get('approximation')}-m{loo.get('n_subsample') or 'all'}")
    parts.append(data.get("timezone"))
    friendly = "-".join(str(p) for p in parts if p is not None)

    row = {
        "spec_hash": spec_hash,
        "short_spec_hash": short_spec_hash,
        "friendly_name": friendly,
        "model": spec_dict.get("model"),
        "method": method,
        "backend": spec_dict.get("backend"),
        "seed": spec_dict.get("seed"),
        "loo_enabled": loo.get("enabled"),
        "loo_n_subsample": loo.get("n_subsample"),
        "timezone": data.get("timezone"),
        "outcome": data.get("outcome"),
        "timestamp_first_seen": datetime.now(timezone.utc).isoformat(),
    }
    df_new = pd.DataFrame([row])
    if path.exists():
        df_old = pd.read_csv(path)
        if spec_hash in set(df_old["spec_hash"].values):
            return path
        df_all = pd.concat([df_old, df_new], ignore_index=True)
    else:
        df_all = df_new
    df_all.to_csv(path, index=False)
    return path


__all__ = [
    "INDEX_FILENAME",
    "MANIFEST_FILENAME",
    "COMPARISON_FILENAME",
    "save_fit_record_json",
    "load_fit_record_json",
    "save_cell_summary_csv",
    "save_comparison_csv",
    "save_draws_npz",
    "load_draws_npz",
    "update_fit_index_parquet",
    "update_spec_manifest",
]
