from __future__ import annotations

"""
Stan program registry and compilation.

Each program reads the same data block (N, y, hour, day) and exposes the same
quantities of interest (alpha, phi, hour_effect, day_effect, log_mu_cell), so
fitting, LOO and posterior summaries can treat models interchangeably.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from cmdstanpy import CmdStanModel

logger = logging.getLogger(__name__)

STAN_DIR = Path(__file__).with_name("stan")

# Quantities every program must expose; draws of these are extracted after fitting
POSTERIOR_VARIABLES = ("alpha", "phi", "hour_effect", "day_effect", "log_mu_cell")


@dataclass(frozen=True)
class StanModelDef:
    """A registered Stan program.

    - name: short identifier used on the CLI and in result files
    - stan_file: path of the program inside the package
    - summary_vars: scalar/vector parameters reported in convergence summaries
    """

    name: str
    stan_file: Path
    description: str
    summary_vars: Tuple[str, ...] = field(default=("alpha", "phi"))

    def read_source(self) -> str:
        if not self.stan_file.exists():
            raise RuntimeError(f"Stan program file is missing: {self.stan_file}")
        return self.stan_file.read_text(encoding="utf-8")


MODEL_REGISTRY: Dict[str, StanModelDef] = {
    "simple": StanModelDef(
        name="simple",
        stan_file=STAN_DIR / "nb_simple.stan",
        description="Pooled NB2 with additive hour and weekday fixed effects",
        summary_vars=("alpha", "phi", "hour_effect", "day_effect"),
    ),
    "hierarchical": StanModelDef(
        name="hierarchical",
        stan_file=STAN_DIR / "nb_hierarchical.stan",
        description="NB2 with partially pooled hour, weekday and cell effects",
        summary_vars=("alpha", "phi", "sigma_hour", "sigma_day", "sigma_cell"),
    ),
}


def get_model_def(name: str) -> StanModelDef:
    try:
        return MODEL_REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown model '{name}'. Known models: {sorted(MODEL_REGISTRY)}") from None


def opencl_cpp_options(opencl_ids: Tuple[int, int] = (0, 0)) -> Dict[str, object]:
    platform_id, device_id = opencl_ids
    return {
        "STAN_OPENCL": True,
        "OPENCL_PLATFORM_ID": int(platform_id),
        "OPENCL_DEVICE_ID": int(device_id),
    }


def build_stan_path(
    name: str,
    build_dir: Path,
    opencl: bool = False,
    opencl_ids: Tuple[int, int] = (0, 0),
) -> Path:
    """Copy a program into ``build_dir`` and return the copy's path.

    CPU and OpenCL builds get different file names so their executables do
    not overwrite each other. The copy is rewritten only when the source
    changed, which keeps cmdstanpy from recompiling needlessly.
    """
    model_def = get_model_def(name)
    build_dir = Path(build_dir)
    build_dir.mkdir(parents=True, exist_ok=True)
    stem = model_def.stan_file.stem
    if opencl:
        stem = f"{stem}_opencl_p{opencl_ids[0]}d{opencl_ids[1]}"
    target = build_dir / f"{stem}.stan"
    source = model_def.read_source()
    if not target.exists() or target.read_text(encoding="utf-8") != source:
        target.write_text(source, encoding="utf-8")
        logger.debug(f"Wrote Stan source to {target}")
    return target


def compile_model(
    name: str,
    build_dir: Path,
    opencl: bool = False,
    opencl_ids: Tuple[int, int] = (0, 0),
    force: bool = False,
    cpp_options: Optional[Dict[str, object]] = None,
) -> CmdStanModel:
    """Return a compiled CmdStanModel for a registered program."""
    stan_path = build_stan_path(name, build_dir, opencl=opencl, opencl_ids=opencl_ids)
    options: Dict[str, object] = dict(cpp_options or {})
    if opencl:
        options.update(opencl_cpp_options(opencl_ids))
    logger.info(f"Compiling model '{name}' ({'OpenCL' if opencl else 'CPU'}) from {stan_path}")
    return CmdStanModel(stan_file=str(stan_path), cpp_options=options or None, force_compile=force)


__all__ = [
    "STAN_DIR",
    "POSTERIOR_VARIABLES",
    "StanModelDef",
    "MODEL_REGISTRY",
    "get_model_def",
    "opencl_cpp_options",
    "build_stan_path",
    "compile_model",
]
