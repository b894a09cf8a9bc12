"""
Unit tests for loading, processing, validating and simulating posts.
"""

import numpy as np
import pandas as pd
import pytest

from hntiming.config.paths import PathManager
from hntiming.data_handling.loaders import load_posts, resolve_posts_path
from hntiming.data_handling.processors.post_processor import (
    PostProcessingConfig,
    PostProcessor,
    build_stan_data,
    cell_counts,
)
from hntiming.data_handling.simulate import nb2_rng, simulate_posts
from hntiming.data_handling.validators import (
    PostDataValidator,
    ProcessedPostValidator,
    validate_or_raise,
)


def _raw(**extra):
    # 2024-01-01 was a Monday; 13:30 UTC is 08:30 in New York
    base = {
        "id": [1, 2, 3],
        "type": ["story", "story", "job"],
        "time": [
            int(pd.Timestamp("2024-01-01 13:30", tz="UTC").timestamp()),
            int(pd.Timestamp("2024-01-06 23:10", tz="UTC").timestamp()),
            int(pd.Timestamp("2024-01-03 10:00", tz="UTC").timestamp()),
        ],
        "score": [5, 120, 3],
    }
    base.update(extra)
    return pd.DataFrame(base)


class TestPostProcessor:
    def test_derives_hour_and_day_in_utc(self):
        df = PostProcessor().process(_raw())
        assert len(df) == 2  # job dropped
        assert df["hour"].tolist() == [13, 23]
        assert df["day"].tolist() == [0, 5]
        assert df["y"].tolist() == [5, 120]
        assert df["y"].dtype == np.int64

    def test_timezone_shifts_hour_and_day(self):
        df = PostProcessor(PostProcessingConfig(timezone="America/New_York")).process(_raw())
        assert df["hour"].tolist() == [8, 18]
        assert df["day"].tolist() == [0, 5]

    def test_unknown_timezone_is_value_error(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            PostProcessingConfig(timezone="Mars/Olympus")

    def test_keeps_non_stories_when_asked(self):
        df = PostProcessor(PostProcessingConfig(story_only=False)).process(_raw())
        assert len(df) == 3

    def test_drops_dead_and_deleted(self):
        raw = _raw(dead=[True, None, None], deleted=[None, None, False])
        df = PostProcessor().process(raw)
        assert df["y"].tolist() == [120]

    def test_timestamp_column_fallback(self):
        raw = _raw().drop(columns=["time"])
        raw["timestamp"] = ["2024-01-01T13:30:00Z", "2024-01-06T23:10:00Z", "2024-01-03T10:00:00Z"]
        df = PostProcessor().process(raw)
        assert df["hour"].tolist() == [13, 23]

    def test_missing_time_column_raises(self):
        with pytest.raises(ValueError, match="No time column"):
            PostProcessor().process(_raw().drop(columns=["time"]))

    def test_negative_outcome_raises(self):
        with pytest.raises(ValueError, match="negative"):
            PostProcessor().process(_raw(score=[-1, 2, 3]))

    def test_missing_outcome_rows_dropped(self):
        df = PostProcessor().process(_raw(score=[None, 2, 3]))
        assert df["y"].tolist() == [2]

    def test_date_bounds_and_min_score(self):
        cfg = PostProcessingConfig(start="2024-01-02", end="2024-01-10", story_only=False)
        df = PostProcessor(cfg).process(_raw())
        assert df["y"].tolist() == [3, 120]
        cfg = PostProcessingConfig(min_score=10)
        df = PostProcessor(cfg).process(_raw())
        assert df["y"].tolist() == [120]

    def test_sample_size_is_reproducible(self, raw_posts):
        cfg = PostProcessingConfig(sample_size=100, seed=3)
        a = PostProcessor(cfg).process(raw_posts)
        b = PostProcessor(cfg).process(raw_posts)
        assert len(a) == 100
        pd.testing.assert_frame_equal(a, b)

    def test_output_sorted_by_time(self, processed_posts):
        assert processed_posts["posted_at"].is_monotonic_increasing

    def test_config_rejects_unknown_outcome(self):
        with pytest.raises(ValueError, match="Unsupported outcome"):
            PostProcessingConfig(outcome="karma")


class TestStanData:
    def test_one_based_indices(self, processed_posts):
        data = build_stan_data(processed_posts)
        assert data["N"] == len(processed_posts)
        assert data["hour"].min() >= 1 and data["hour"].max() <= 24
        assert data["day"].min() >= 1 and data["day"].max() <= 7
        np.testing.assert_array_equal(data["hour"], processed_posts["hour"].to_numpy() + 1)

    def test_empty_frame_raises(self, processed_posts):
        with pytest.raises(ValueError):
            build_stan_data(processed_posts.iloc[0:0])

    def test_cell_counts_shape(self, processed_posts):
        counts = cell_counts(processed_posts)
        assert counts.shape == (7, 24)
        assert counts.values.sum() == len(processed_posts)
        means = cell_counts(processed_posts, value="y", agg="mean")
        assert means.shape == (7, 24)


class TestValidators:
    def test_raw_posts_pass(self, raw_posts):
        assert PostDataValidator().validate_dataframe(raw_posts) == []

    def test_raw_posts_errors(self):
        bad = pd.DataFrame({"id": [1, 1], "score": [1, -2]})
        errors = PostDataValidator().validate_dataframe(bad)
        joined = "\n".join(errors)
        assert "one of ['time', 'timestamp']" in joined
        assert "outside range" in joined
        assert "Found 1 duplicate post ids" in joined

    def test_empty_frame(self):
        assert PostDataValidator().validate_dataframe(pd.DataFrame()) == ["DataFrame is empty"]

    def test_processed_ranges(self, processed_posts):
        assert ProcessedPostValidator().validate_dataframe(processed_posts) == []
        bad = processed_posts.copy()
        bad.loc[0, "hour"] = 24
        errors = ProcessedPostValidator().validate_dataframe(bad)
        assert any("'hour'" in e for e in errors)

    def test_validate_or_raise(self):
        with pytest.raises(ValueError, match="Data validation failed"):
            validate_or_raise(PostDataValidator(), pd.DataFrame({"id": [1]}))


class TestLoaders:
    def test_resolve_prefers_parquet(self, tmp_path, raw_posts):
        paths = PathManager(tmp_path)
        paths.raw_data_dir.mkdir(parents=True)
        raw_posts.to_csv(paths.get_raw_posts_path("hn_posts.csv"), index=False)
        assert resolve_posts_path(paths).suffix == ".csv"
        raw_posts.to_parquet(paths.get_raw_posts_path("hn_posts.parquet"), index=False)
        assert resolve_posts_path(paths).suffix == ".parquet"

    def test_missing_dataset_lists_available(self, tmp_path):
        paths = PathManager(tmp_path)
        paths.raw_data_dir.mkdir(parents=True)
        (paths.raw_data_dir / "other.csv").write_text("id\n1\n")
        with pytest.raises(FileNotFoundError, match="other.csv"):
            resolve_posts_path(paths)

    def test_explicit_file_must_exist(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            resolve_posts_path(PathManager(tmp_path), input_file=str(tmp_path / "nope.csv"))

    def test_load_csv_and_reject_other_suffix(self, raw_posts_csv, tmp_path):
        df = load_posts(raw_posts_csv)
        assert len(df) == 600
        other = tmp_path / "posts.json"
        other.write_text("[]")
        with pytest.raises(ValueError):
            load_posts(other)

    def test_home_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HNTIMING_HOME", str(tmp_path))
        assert PathManager().base_dir == tmp_path


class TestSimulate:
    def test_simulated_columns(self, raw_posts):
        assert list(raw_posts.columns) == ["id", "type", "time", "score"]
        assert (raw_posts["score"] >= 0).all()

    def test_reproducible(self):
        pd.testing.assert_frame_equal(simulate_posts(n=50, seed=4), simulate_posts(n=50, seed=4))

    def test_bad_effect_length(self):
        with pytest.raises(ValueError, match="hour_effect"):
            simulate_posts(n=10, hour_effect=[0.0] * 23)

    def test_nb2_moments(self):
        rng = np.random.default_rng(0)
        y = nb2_rng(rng, np.full(200_000, 20.0), 2.0)
        assert abs(y.mean() - 20.0) < 0.3
        # variance mu + mu^2 / phi = 220
        assert abs(y.var() - 220.0) / 220.0 < 0.05
