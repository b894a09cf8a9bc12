"""
Post Processing

Turns a raw HackerNews dump into an analysis-ready table with one row per
story, the outcome column ``y`` and the submission ``hour`` / ``day`` in the
analysis timezone. Also builds the data dictionary consumed by the Stan
programs.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

N_HOURS = 24
N_DAYS = 7

OUTCOME_COLUMNS = ("score", "descendants")

logger = logging.getLogger(__name__)


@dataclass
class PostProcessingConfig:
    """
    Configuration for turning raw posts into model input.

    Every field here influences which rows reach the model, so the whole
    config is recorded in the data spec of each fit.
    """

    timezone: str = "UTC"
    """Timezone in which hour-of-day and weekday are measured (IANA name)."""

    outcome: str = "score"
    """Count column modelled as the response: 'score' or 'descendants'."""

    story_only: bool = True
    """Keep only rows with type == 'story' when a type column is present."""

    min_score: Optional[int] = None
    """Drop posts whose outcome is below this value."""

    start: Optional[str] = None
    """Inclusive lower date bound, interpreted in ``timezone``."""

    end: Optional[str] = None
    """Exclusive upper date bound, interpreted in ``timezone``."""

    sample_size: Optional[int] = None
    """Random subsample of posts after filtering (None keeps all)."""

    seed: int = 0

    def __post_init__(self):
        if self.outcome not in OUTCOME_COLUMNS:
            raise ValueError(f"Unsupported outcome '{self.outcome}'. Expected one of {OUTCOME_COLUMNS}")
        if self.sample_size is not None and self.sample_size <= 0:
            raise ValueError("sample_size must be positive")
        try:
            pd.Timestamp.now(tz=self.timezone)
        except (KeyError, ValueError) as e:
            # unknown names raise ZoneInfoNotFoundError / UnknownTimeZoneError (KeyError subclasses)
            raise ValueError(f"Unknown timezone '{self.timezone}'") from e

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PostProcessor:
    """Clean raw posts and derive time-of-week features."""

    def __init__(self, config: Optional[PostProcessingConfig] = None):
        self.config = config or PostProcessingConfig()

    def process(self, df: pd.DataFrame) -> pd.DataFrame:
        cfg = self.config
        df = df.copy()
        logger.info(f"Processing {len(df)} raw posts (timezone={cfg.timezone}, outcome={cfg.outcome})")

        df["posted_at"] = self._parse_times(df)
        df = self._drop_removed(df)

        if cfg.story_only and "type" in df.columns:
            before = len(df)
            df = df[df["type"].astype(str).str.lower() == "story"]
            self._log_dropped("non-story", before, len(df))

        if cfg.outcome not in df.columns:
            raise ValueError(f"Outcome column '{cfg.outcome}' not found in data")
        before = len(df)
        df = df.dropna(subset=[cfg.outcome, "posted_at"])
        self._log_dropped("missing outcome/time", before, len(df))
        if (df[cfg.outcome] < 0).any():
            raise ValueError(f"Outcome column '{cfg.outcome}' contains negative values")
        df["y"] = df[cfg.outcome].astype(np.int64)

        df["posted_at"] = df["posted_at"].dt.tz_convert(cfg.timezone)
        df["hour"] = df["posted_at"].dt.hour.astype(np.int64)
        df["day"] = df["posted_at"].dt.dayofweek.astype(np.int64)

        df = self._apply_bounds(df)

        if cfg.sample_size is not None and cfg.sample_size < len(df):
            df = df.sample(n=cfg.sample_size, random_state=cfg.seed, replace=False)
            logger.info(f"Subsampled {cfg.sample_size} posts (seed={cfg.seed})")

        df = df.sort_values("posted_at", kind="mergesort").reset_index(drop=True)
        logger.info(f"{len(df)} posts ready for modelling")
        return df

    def _parse_times(self, df: pd.DataFrame) -> pd.Series:
        if "time" in df.columns:
            return pd.to_datetime(pd.to_numeric(df["time"], errors="coerce"), unit="s", utc=True)
        if "timestamp" in df.columns:
            return pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
        raise ValueError("No time column found. Expected 'time' (unix seconds) or 'timestamp'.")

    def _drop_removed(self, df: pd.DataFrame) -> pd.DataFrame:
        for col in ("dead", "deleted"):
            if col in df.columns:
                before = len(df)
                flags = df[col].fillna(False).astype(bool)
                df = df[~flags]
                self._log_dropped(col, before, len(df))
        return df

    def _apply_bounds(self, df: pd.DataFrame) -> pd.DataFrame:
        cfg = self.config
        if cfg.start is not None:
            before = len(df)
            df = df[df["posted_at"] >= self._localize(cfg.start)]
            self._log_dropped("before start", before, len(df))
        if cfg.end is not None:
            before = len(df)
            df = df[df["posted_at"] < self._localize(cfg.end)]
            self._log_dropped("after end", before, len(df))
        if cfg.min_score is not None:
            before = len(df)
            df = df[df["y"] >= cfg.min_score]
            self._log_dropped(f"outcome < {cfg.min_score}", before, len(df))
        return df

    def _localize(self, value: str) -> pd.Timestamp:
        ts = pd.Timestamp(value)
        if ts.tzinfo is None:
            return ts.tz_localize(self.config.timezone)
        return ts.tz_convert(self.config.timezone)

    @staticmethod
    def _log_dropped(reason: str, before: int, after: int) -> None:
        if before != after:
            logger.info(f"Dropped {before - after} rows ({reason})")


def build_stan_data(df: pd.DataFrame) -> Dict[str, Any]:
    """Build the data block shared by all Stan programs.

    Stan indexes from 1, so hour 0..23 maps to 1..24 and Monday..Sunday to 1..7.
    """
    if df.empty:
        raise ValueError("Cannot build Stan data from an empty frame")
    missing = [c for c in ("y", "hour", "day") if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")
    return {
        "N": int(len(df)),
        "y": df["y"].astype(int).to_numpy(),
        "hour": df["hour"].astype(int).to_numpy() + 1,
        "day": df["day"].astype(int).to_numpy() + 1,
    }


def cell_counts(df: pd.DataFrame, value: Optional[str] = None, agg: str = "size") -> pd.DataFrame:
    """Return a 7 x 24 (day x hour) table, zeros included.

    With ``value`` set, aggregates that column (e.g. ``agg='mean'`` of ``y``).
    Empty cells are NaN for aggregates other than counts.
    """
    full_index = pd.MultiIndex.from_product([range(N_DAYS), range(N_HOURS)], names=["day", "hour"])
    if value is None:
        s = df.groupby(["day", "hour"]).size()
        s = s.reindex(full_index, fill_value=0)
    else:
        s = df.groupby(["day", "hour"])[value].agg(agg)
        s = s.reindex(full_index)
    return s.unstack("hour")


__all__ = [
    "N_HOURS",
    "N_DAYS",
    "PostProcessingConfig",
    "PostProcessor",
    "build_stan_data",
    "cell_counts",
]
