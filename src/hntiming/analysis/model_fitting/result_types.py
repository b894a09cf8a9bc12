"""Result dataclasses for persisted fit records."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

# Schema version history:
# 1.0.0: NUTS/ADVI fit records with diagnostics, best times and the LOO block
SCHEMA_VERSION = "1.0.0"


@dataclass
class DataSummary:
    num_rows: int
    data_hash: str
    short_data_hash: str
    outcome: str
    timezone: str
    outcome_mean: Optional[float] = None
    outcome_var: Optional[float] = None
    date_min: Optional[str] = None
    date_max: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FitRecord:
    schema_version: str
    spec_hash: str
    short_spec_hash: str
    data_hash: str
    short_data_hash: str
    model: str
    method: str
    spec: Dict[str, Any]
    data_spec: Dict[str, Any]
    diagnostics: Dict[str, Any]
    best_times: List[Dict[str, Any]]
    posterior: Dict[str, Any]
    loo: Optional[Dict[str, Any]] = None
    timing: Optional[Dict[str, Any]] = None
    environment: Optional[Dict[str, Any]] = None
    provenance: Optional[Dict[str, Any]] = None

    @property
    def file_stem(self) -> str:
        return f"fit_{self.model}_{self.method}_{self.short_spec_hash}_{self.short_data_hash}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "SCHEMA_VERSION",
    "DataSummary",
    "FitRecord",
]
