"""
Loading raw HackerNews post dumps.

Dumps are exported from the public HackerNews dataset and stored under
data/raw/ as Parquet (preferred) or CSV. The loader does no cleaning; see
processors.post_processor for that.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.paths import PathManager

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".parquet", ".csv")


def resolve_posts_path(
    paths: PathManager,
    dataset: str = "hn_posts",
    input_file: Optional[str] = None,
) -> Path:
    """Resolve the file holding raw posts.

    An explicit ``input_file`` always wins. Otherwise look for
    ``data/raw/<dataset>.parquet`` and fall back to ``.csv``.
    """
    if input_file:
        path = Path(input_file)
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")
        return path

    for suffix in SUPPORTED_SUFFIXES:
        candidate = paths.get_raw_posts_path(f"{dataset}{suffix}")
        if candidate.exists():
            return candidate

    raw_dir = paths.raw_data_dir
    available = sorted(p.name for p in raw_dir.glob("*")) if raw_dir.exists() else []
    msg = f"No post data found for dataset '{dataset}' in {raw_dir}\n"
    if available:
        msg += "Available files in directory:\n" + "\n".join(f"- {name}" for name in available)
    else:
        msg += "Directory is empty or missing."
    raise FileNotFoundError(msg)


def load_posts(path: Path | str) -> pd.DataFrame:
    """Read a CSV or Parquet dump into a DataFrame."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        df = pd.read_parquet(path)
    elif suffix == ".csv":
        df = pd.read_csv(path)
    else:
        raise ValueError(f"Unsupported file type '{suffix}'. Expected one of {SUPPORTED_SUFFIXES}")
    logger.info(f"Loaded {len(df)} rows from {path}")
    return df


__all__ = ["resolve_posts_path", "load_posts", "SUPPORTED_SUFFIXES"]
