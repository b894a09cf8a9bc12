from __future__ import annotations

"""Pydantic models for validating persisted fit record JSON.

These models mirror the dataclass schema in `result_types`. Validation runs
at IO boundaries only (before writing and, optionally, after reading).

Versioning strategy:
- The top-level object carries `schema_version` (string semver).
- Files with a different major version, or a newer minor version than this
  code knows, are rejected; older minors parse with missing optional blocks.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .result_types import SCHEMA_VERSION

CURRENT_SCHEMA_VERSION = SCHEMA_VERSION

# ---------------------------- Helper utilities ----------------------------

def _split_semver(v: str) -> List[int]:
    parts = v.split(".")
    out = []
    for p in parts:
        try:
            out.append(int(p))
        except ValueError:
            out.append(0)
    while len(out) < 3:
        out.append(0)
    return out[:3]


def ensure_schema_version_compatible(version: str) -> None:
    cur = _split_semver(CURRENT_SCHEMA_VERSION)
    other = _split_semver(version)
    if other[0] != cur[0]:
        raise ValueError(
            f"Incompatible schema_version major: file={version} expected~={CURRENT_SCHEMA_VERSION}."
            " Re-run the fit or migrate the artifact."
        )
    if other[1] > cur[1]:
        raise ValueError(
            f"Artifact schema minor version {version} is newer than supported {CURRENT_SCHEMA_VERSION}. Upgrade code."
        )

# ---------------------------- Pydantic models -----------------------------

class DiagnosticsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")
    method: str
    ok: bool
    warnings: List[str] = Field(default_factory=list)
    metrics: Dict[str, Any] = Field(default_factory=dict)


class LooSummaryModel(BaseModel):
    model_config = ConfigDict(extra="ignore")
    elpd_loo: float
    se: float
    subsampling_se: float = 0.0
    p_loo: float
    looic: float
    n_data: int
    n_subsample: int
    approximation: str = "plpd"
    r_eff: float = 1.0
    max_pareto_k: Optional[float] = None
    n_high_k: int = 0

    @field_validator("n_subsample")
    @classmethod
    def _subsample_within_data(cls, v: int, info):  # noqa: D401
        n_data = info.data.get("n_data")
        if n_data is not None and v > n_data:
            raise ValueError("n_subsample cannot exceed n_data")
        return v


class BestTimeModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    day: int = Field(ge=0, le=6)
    hour: int = Field(ge=0, le=23)
    prob_best: float = Field(ge=0.0, le=1.0)
    mean: float


class FitRecordModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    schema_version: str
    spec_hash: str
    short_spec_hash: str
    data_hash: str
    short_data_hash: str
    model: str
    method: str
    spec: Dict[str, Any]
    data_spec: Dict[str, Any]
    diagnostics: DiagnosticsModel
    best_times: List[BestTimeModel]
    posterior: Dict[str, Any]
    loo: Optional[LooSummaryModel] = None
    timing: Optional[Dict[str, Any]] = None
    environment: Optional[Dict[str, Any]] = None
    provenance: Optional[Dict[str, Any]] = None

    @field_validator("schema_version")
    @classmethod
    def _check_version(cls, v: str):  # noqa: D401
        ensure_schema_version_compatible(v)
        return v

    @field_validator("method")
    @classmethod
    def _known_method(cls, v: str):  # noqa: D401
        if v not in ("nuts", "advi"):
            raise ValueError(f"Unknown method '{v}'")
        return v


# ---------------------------- Public helpers ------------------------------

def validate_fit_record_dict(data: Dict[str, Any]) -> FitRecordModel:
    if not isinstance(data, dict):
        raise TypeError("Expected dict for fit record JSON")
    return FitRecordModel(**data)


__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "ensure_schema_version_compatible",
    "validate_fit_record_dict",
    "FitRecordModel",
]
