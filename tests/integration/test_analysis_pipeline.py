"""
Integration tests for run_analysis with stand-in compiled models.
"""

import json

import pandas as pd
import pytest

from conftest import FakeModel, make_draws
from hntiming.analysis.model_fitting.api import load_index, run_analysis, top_by_metric
from hntiming.analysis.model_fitting.specs import LooSpec
from hntiming.analysis.model_fitting.trainer import FitConfig


def _models():
    # "simple" carries the true hour effects, "hierarchical" does not
    return {
        "simple": FakeModel(make_draws(seed=0)),
        "hierarchical": FakeModel(make_draws(seed=1, hour_scale=0.0)),
    }


def _configs():
    return {name: FitConfig(method="advi", output_draws=200) for name in ("simple", "hierarchical")}


def test_full_pipeline_writes_outputs(processed_posts, tmp_path):
    out = tmp_path / "results"
    result = run_analysis(
        processed_posts,
        _configs(),
        out,
        build_dir=tmp_path / "build",
        loo_spec=LooSpec(n_subsample=200, seed=1),
        compiled_models=_models(),
        provenance={"experiment": "test"},
    )

    assert len(result.records) == 2
    assert set(result.loo) == {"simple_advi", "hierarchical_advi"}
    assert result.comparison.index[0] == "simple_advi"
    assert result.loo["simple_advi"].n_subsample == 200
    # every model scored on the same observations
    assert (result.loo["simple_advi"].sample_idx == result.loo["hierarchical_advi"].sample_idx).all()

    json_files = sorted(out.glob("fit_*.json"))
    assert len(json_files) == 2
    with open(json_files[0]) as f:
        record = json.load(f)
    assert record["provenance"]["experiment"] == "test"
    assert record["loo"]["n_subsample"] == 200
    assert record["diagnostics"]["method"] == "advi"
    assert len(record["best_times"]) == 5

    assert len(list(out.glob("cells_*.csv"))) == 2
    assert len(list(out.glob("draws_*.npz"))) == 2
    assert (out / "spec_manifest.csv").exists()
    comparison = pd.read_csv(out / "loo_comparison.csv", index_col=0)
    assert list(comparison.index) == ["simple_advi", "hierarchical_advi"]
    assert (out / "figures" / "loo_comparison.png").exists()
    assert (out / "figures" / "simple_advi_expected_heatmap.pdf").exists()
    assert (out / "figures" / "hierarchical_advi_pareto_k.png").exists()

    cells = pd.read_csv(next(out.glob("cells_simple_*.csv")))
    assert len(cells) == 168


def test_rerun_is_idempotent_in_index(processed_posts, tmp_path):
    out = tmp_path / "results"
    kwargs = dict(
        build_dir=tmp_path / "build",
        loo_spec=LooSpec(n_subsample=100),
        make_figures=False,
    )
    run_analysis(processed_posts, _configs(), out, compiled_models=_models(), **kwargs)
    run_analysis(processed_posts, _configs(), out, compiled_models=_models(), **kwargs)
    index = load_index(out)
    assert len(index) == 2
    best = top_by_metric(index, "elpd_loo")
    assert best.iloc[0]["model"] == "simple"
    per_model = top_by_metric(index, "elpd_loo", group_cols=["model"])
    assert set(per_model["model"]) == {"simple", "hierarchical"}
    with pytest.raises(ValueError):
        top_by_metric(index, "accuracy")


def test_without_loo(processed_posts, tmp_path):
    out = tmp_path / "results"
    result = run_analysis(
        processed_posts,
        {"simple": FitConfig(method="advi")},
        out,
        build_dir=tmp_path / "build",
        loo_spec=LooSpec(enabled=False),
        make_figures=False,
        save_draws=False,
        compiled_models={"simple": FakeModel(make_draws())},
    )
    assert result.comparison is None
    assert result.records[0]["loo"] is None
    assert not list(out.glob("draws_*.npz"))
    assert pd.isna(load_index(out).loc[0, "elpd_loo"])


def test_rejects_unprocessed_frame(raw_posts, tmp_path):
    with pytest.raises(ValueError, match="Data validation failed"):
        run_analysis(raw_posts, _configs(), tmp_path, build_dir=tmp_path, compiled_models=_models())
