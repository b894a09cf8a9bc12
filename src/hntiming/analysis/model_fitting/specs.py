"""Spec dataclasses describing fitting runs.

A FitSpec fully describes *how* a model was fit (program, algorithm and
settings, LOO settings, data processing). Its minimal dict is what gets
hashed, so only fields that change results belong in it; runtime-only knobs
(progress bars, parallel chains, thread counts) are left out.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

LOO_APPROXIMATIONS = ("plpd", "lpd")


@dataclass
class SamplerSpec:
    chains: int = 4
    iter_warmup: int = 1000
    iter_sampling: int = 1000
    adapt_delta: float = 0.9
    max_treedepth: int = 10


@dataclass
class VariationalSpec:
    algorithm: str = "meanfield"  # or "fullrank"
    iter: int = 10000
    grad_samples: int = 1
    elbo_samples: int = 100
    eta: Optional[float] = None  # None lets CmdStan adapt the step size
    tol_rel_obj: float = 0.01
    output_draws: int = 1000


@dataclass
class LooSpec:
    enabled: bool = True
    n_subsample: Optional[int] = 1000  # None means exact PSIS-LOO over all rows
    approximation: str = "plpd"  # or "lpd"
    seed: int = 0

    def __post_init__(self):
        if self.n_subsample is not None and self.n_subsample < 2:
            raise ValueError(f"n_subsample must be at least 2 (or None for exact LOO), got {self.n_subsample}")
        if self.approximation not in LOO_APPROXIMATIONS:
            raise ValueError(f"Unknown approximation '{self.approximation}'. Expected one of {LOO_APPROXIMATIONS}")


@dataclass
class DataSpec:
    timezone: str = "UTC"
    outcome: str = "score"
    story_only: bool = True
    min_score: Optional[int] = None
    start: Optional[str] = None
    end: Optional[str] = None
    sample_size: Optional[int] = None
    seed: int = 0


@dataclass
class FitSpec:
    model: str
    method: str  # "nuts" | "advi"
    seed: int = 0
    backend: str = "cpu"  # "cpu" | "opencl"
    sampler: Optional[SamplerSpec] = None
    variational: Optional[VariationalSpec] = None
    loo: LooSpec = field(default_factory=LooSpec)
    data: DataSpec = field(default_factory=DataSpec)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_minimal_dict(self) -> Dict[str, Any]:
        """Fields that determine results; the input to the spec hash."""
        d: Dict[str, Any] = {
            "model": self.model,
            "method": self.method,
            "seed": self.seed,
            "backend": self.backend,
            "loo": asdict(self.loo),
            "data": asdict(self.data),
        }
        if self.method == "nuts" and self.sampler is not None:
            d["sampler"] = asdict(self.sampler)
        if self.method == "advi" and self.variational is not None:
            d["variational"] = asdict(self.variational)
        return d


__all__ = ["LOO_APPROXIMATIONS", "SamplerSpec", "VariationalSpec", "LooSpec", "DataSpec", "FitSpec"]
