"""Convergence diagnostics for NUTS and ADVI fits.

Thresholds follow current Stan/ArviZ guidance:
- R-hat above 1.01
- bulk or tail ESS below 100 per chain
- any divergent transition
- transitions saturating max_treedepth
- E-BFMI below 0.3 in any chain
- ADVI: Pareto k of the importance ratios above 0.7
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import logging
from typing import Any, Dict, List, Optional, Sequence

import arviz as az
import numpy as np

logger = logging.getLogger(__name__)

RHAT_THRESHOLD = 1.01
ESS_PER_CHAIN_THRESHOLD = 100
BFMI_THRESHOLD = 0.3
PARETO_K_THRESHOLD = 0.7


@dataclass
class DiagnosticsReport:
    method: str
    ok: bool
    warnings: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _finish(report: DiagnosticsReport, label: str) -> DiagnosticsReport:
    report.ok = not report.warnings
    for w in report.warnings:
        logger.warning(f"[{label}] {w}")
    if report.ok:
        logger.info(f"[{label}] diagnostics passed")
    return report


def check_nuts(
    idata: az.InferenceData,
    var_names: Optional[Sequence[str]] = None,
    max_treedepth: int = 10,
    label: str = "nuts",
) -> DiagnosticsReport:
    report = DiagnosticsReport(method="nuts", ok=True)
    n_chains = int(idata.posterior.sizes["chain"])

    summary = az.summary(idata, var_names=list(var_names) if var_names else None, kind="diagnostics")
    max_rhat = float(summary["r_hat"].max())
    min_ess_bulk = float(summary["ess_bulk"].min())
    min_ess_tail = float(summary["ess_tail"].min())
    report.metrics.update(
        {"max_rhat": max_rhat, "min_ess_bulk": min_ess_bulk, "min_ess_tail": min_ess_tail}
    )
    if max_rhat > RHAT_THRESHOLD:
        worst = summary["r_hat"].idxmax()
        report.warnings.append(f"R-hat {max_rhat:.3f} > {RHAT_THRESHOLD} (worst: {worst})")
    ess_floor = ESS_PER_CHAIN_THRESHOLD * n_chains
    if min_ess_bulk < ess_floor:
        report.warnings.append(f"Bulk ESS {min_ess_bulk:.0f} < {ess_floor}")
    if min_ess_tail < ess_floor:
        report.warnings.append(f"Tail ESS {min_ess_tail:.0f} < {ess_floor}")

    stats = getattr(idata, "sample_stats", None)
    if stats is not None:
        if "diverging" in stats:
            n_div = int(stats["diverging"].values.sum())
            report.metrics["divergences"] = n_div
            if n_div > 0:
                report.warnings.append(f"{n_div} divergent transitions")
        if "tree_depth" in stats:
            n_sat = int((stats["tree_depth"].values >= max_treedepth).sum())
            report.metrics["treedepth_saturated"] = n_sat
            if n_sat > 0:
                report.warnings.append(f"{n_sat} transitions hit max_treedepth={max_treedepth}")
        if "energy" in stats:
            bfmi = np.asarray(az.bfmi(idata), dtype=float)
            report.metrics["min_bfmi"] = float(bfmi.min())
            low = np.flatnonzero(bfmi < BFMI_THRESHOLD)
            if low.size:
                report.warnings.append(f"E-BFMI below {BFMI_THRESHOLD} in chains {low.tolist()}")

    return _finish(report, label)


def check_advi(log_ratios: Optional[np.ndarray], label: str = "advi") -> DiagnosticsReport:
    """Pareto k of log p(theta, y) - log q(theta) over the ADVI draws."""
    report = DiagnosticsReport(method="advi", ok=True)
    if log_ratios is None:
        report.warnings.append("No importance ratios available; ADVI fit unchecked")
        return _finish(report, label)
    log_ratios = np.asarray(log_ratios, dtype=float)
    _, khat = az.psislw(log_ratios.copy())
    khat = float(np.asarray(khat))
    report.metrics["pareto_k"] = khat
    if khat > PARETO_K_THRESHOLD:
        report.warnings.append(
            f"Pareto k {khat:.2f} > {PARETO_K_THRESHOLD}: variational approximation is unreliable"
        )
    return _finish(report, label)


def diagnose(posterior, var_names: Optional[Sequence[str]] = None, max_treedepth: int = 10) -> DiagnosticsReport:
    """Dispatch on the fit's method."""
    label = f"{posterior.model_name}/{posterior.method}"
    if posterior.method == "nuts":
        return check_nuts(posterior.idata, var_names=var_names, max_treedepth=max_treedepth, label=label)
    return check_advi(posterior.vi_log_ratios, label=label)


__all__ = [
    "DiagnosticsReport",
    "check_nuts",
    "check_advi",
    "diagnose",
    "RHAT_THRESHOLD",
    "ESS_PER_CHAIN_THRESHOLD",
    "BFMI_THRESHOLD",
    "PARETO_K_THRESHOLD",
]
