"""
CLI tests for run_analysis.py and the hntiming-fit entry point.
"""

import subprocess
import sys
from pathlib import Path

import matplotlib as mpl
import pytest

from conftest import FakeModel, make_draws
from hntiming.analysis.model_fitting import cli, trainer
from hntiming.analysis.model_fitting.api import AnalysisResult

PROJECT_ROOT = Path(__file__).parent.parent.parent


def _run(*args):
    return subprocess.run(
        [sys.executable, "run_analysis.py", *args],
        capture_output=True,
        text=True,
        cwd=PROJECT_ROOT,
    )


class TestCLI:
    """Test command-line interface functionality."""

    def test_cli_help_message(self):
        result = _run("--help")
        assert result.returncode == 0
        assert "explore" in result.stdout
        assert "fit" in result.stdout

    def test_fit_help_lists_options(self):
        result = _run("fit", "--help")
        assert result.returncode == 0
        for flag in ("--models", "--method", "--opencl", "--loo-subsample", "--timezone"):
            assert flag in result.stdout

    def test_missing_subcommand(self):
        result = _run()
        assert result.returncode != 0
        assert "required" in result.stderr.lower()

    def test_invalid_method(self):
        result = _run("fit", "--method", "laplace")
        assert result.returncode != 0
        assert "invalid choice" in result.stderr.lower()

    def test_missing_input_file(self, tmp_path):
        result = _run("fit", "--input-file", str(tmp_path / "missing.csv"), "--output-dir", str(tmp_path))
        assert result.returncode == 1
        assert "not found" in result.stderr.lower()

    def test_explore_on_simulated_posts(self, tmp_path):
        result = _run("explore", "--simulate", "300", "--output-dir", str(tmp_path))
        assert result.returncode == 0, result.stderr
        assert (tmp_path / "explore" / "posts_per_cell.png").exists()
        assert (tmp_path / "explore" / "cell_counts.csv").exists()


class TestMain:
    def test_bad_csv_columns_exit_1(self, tmp_path):
        path = tmp_path / "posts.csv"
        path.write_text("id,title\n1,hello\n")
        assert cli.main(["fit", "--input-file", str(path), "--output-dir", str(tmp_path)]) == 1

    def test_unknown_model_exit_1(self, raw_posts_csv, tmp_path):
        argv = ["fit", "--input-file", str(raw_posts_csv), "--models", "poisson", "--output-dir", str(tmp_path)]
        assert cli.main(argv) == 1

    def test_fit_builds_configs(self, raw_posts_csv, tmp_path, monkeypatch):
        captured = {}

        def fake_run_analysis(df, fit_configs, output_dir, **kwargs):
            captured.update(df=df, fit_configs=fit_configs, output_dir=output_dir, **kwargs)
            return AnalysisResult()

        monkeypatch.setattr(cli, "run_analysis", fake_run_analysis)
        argv = [
            "fit",
            "--input-file", str(raw_posts_csv),
            "--models", "hierarchical",
            "--method", "advi",
            "--opencl", "--opencl-ids", "1,0",
            "--loo-subsample", "0",
            "--timezone", "Europe/Berlin",
            "--output-dir", str(tmp_path / "out"),
            "--no-figures",
        ]
        assert cli.main(argv) == 0
        cfg = captured["fit_configs"]["hierarchical"]
        assert cfg.method == "advi"
        assert cfg.opencl and cfg.opencl_ids == (1, 0)
        assert captured["loo_spec"].n_subsample is None
        assert captured["processing_config"].timezone == "Europe/Berlin"
        assert captured["make_figures"] is False
        assert captured["output_dir"] == tmp_path / "out"
        assert len(captured["df"]) == 600

    def test_unknown_timezone_exit_1(self, raw_posts_csv, tmp_path):
        argv = ["explore", "--input-file", str(raw_posts_csv), "--timezone", "Mars/Olympus", "--output-dir", str(tmp_path)]
        assert cli.main(argv) == 1

    @pytest.mark.parametrize(
        "extra",
        [
            ["--loo-subsample", "1"],
            ["--credible-mass", "1.5"],
            ["--credible-mass", "0"],
        ],
    )
    def test_bad_fit_settings_exit_1_before_fitting(self, raw_posts_csv, tmp_path, monkeypatch, extra):
        def fail_run_analysis(*args, **kwargs):
            raise AssertionError("run_analysis should not be reached")

        monkeypatch.setattr(cli, "run_analysis", fail_run_analysis)
        argv = ["fit", "--input-file", str(raw_posts_csv), "--output-dir", str(tmp_path), *extra]
        assert cli.main(argv) == 1

    def test_fit_end_to_end_with_figures(self, raw_posts_csv, tmp_path, monkeypatch):
        models = {
            "simple": FakeModel(make_draws(seed=0)),
            "hierarchical": FakeModel(make_draws(seed=1, hour_scale=0.0)),
        }

        def fake_compile(model_name, build_dir, **kwargs):
            return models[model_name]

        monkeypatch.setattr(trainer, "compile_model", fake_compile)
        out = tmp_path / "out"
        argv = [
            "fit",
            "--input-file", str(raw_posts_csv),
            "--method", "advi",
            "--loo-subsample", "100",
            "--output-dir", str(out),
        ]
        with mpl.rc_context():
            assert cli.main(argv) == 0
        assert all(m.calls and m.calls[0][0] == "variational" for m in models.values())
        figures = out / "figures"
        for key in ("simple_advi", "hierarchical_advi"):
            assert (figures / f"{key}_expected_heatmap.png").exists()
            assert (figures / f"{key}_pareto_k.png").exists()
        assert (figures / "loo_comparison.pdf").exists()
        assert (out / "loo_comparison.csv").exists()
        assert (out / "fit_index.parquet").exists()
