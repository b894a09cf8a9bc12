"""Hashing utilities for reproducible fit-spec and data fingerprints.

Centralizes all hashing so that changes to canonicalization rules are applied
consistently across spec and data hashes.

Design decisions:
* Use SHA256 → hex digest, truncate to 12 chars for filenames while retaining
  full hash in JSON metadata.
* Spec hashes only see `FitSpec.to_minimal_dict()` (exclude runtime knobs).
* Data hashes cover the modelled columns only (y, hour, day), in row order.
"""
from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping

import numpy as np
import pandas as pd


def _canonicalize(obj: Any) -> Any:
    """Produce a JSON-serializable object with deterministic ordering."""
    if isinstance(obj, Mapping):
        return {str(k): _canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [_canonicalize(v) for v in obj]
    if isinstance(obj, np.generic):
        return obj.item()
    return obj


def to_canonical_json(data: Any) -> str:
    """Return canonical JSON string with sorted keys & no extraneous whitespace."""
    canon = _canonicalize(data)
    return json.dumps(canon, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def sha256_digest(data: Any) -> str:
    """Full SHA256 hex digest of canonical JSON representation of data."""
    payload = to_canonical_json(data).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def short_hash(full_hash: str, length: int = 12) -> str:
    """Return stable shortened hash for filenames (default 12 chars)."""
    if length <= 0:
        raise ValueError("length must be positive")
    return full_hash[:length]


def compute_spec_hash(spec_dict: Mapping[str, Any]) -> tuple[str, str]:
    """Compute full & short hash for a FitSpec minimal dict."""
    full = sha256_digest(spec_dict)
    return full, short_hash(full)


def compute_data_hash(df: pd.DataFrame, columns: tuple[str, ...] = ("y", "hour", "day")) -> tuple[str, str]:
    """Hash the modelled columns of a processed frame.

    Uses the raw int64 bytes of each column so large frames hash quickly.
    """
    h = hashlib.sha256()
    for col in columns:
        h.update(col.encode("utf-8"))
        h.update(np.ascontiguousarray(df[col].to_numpy(dtype=np.int64)).tobytes())
    full = h.hexdigest()
    return full, short_hash(full)


__all__ = [
    "to_canonical_json",
    "sha256_digest",
    "short_hash",
    "compute_spec_hash",
    "compute_data_hash",
]
