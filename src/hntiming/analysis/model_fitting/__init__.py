"""Bayesian count models of HackerNews post success by weekday and hour (CmdStan).

Modules:
- models: registry of Stan programs and compilation (CPU or OpenCL)
- specs: hashed descriptions of how a fit was produced
- trainer: NUTS / ADVI fitting via cmdstanpy
- diagnostics: R-hat, ESS, divergences, BFMI and ADVI Pareto k checks
- loo: PSIS-LOO with subsampling and model comparison
- posterior: per-cell summaries and best posting times
- adapters, hashing, result_types, validation, io: structured fit records
- api: end-to-end analysis of a processed post table
- cli: command-line interface

Import ``api`` or ``cli`` explicitly; they pull in plotting.
"""

from . import models, specs, trainer, diagnostics, loo, posterior, io  # noqa: F401
