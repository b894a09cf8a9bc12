"""
Data processing modules for hntiming package.

This module cleans raw HackerNews dumps and shapes them for the Stan programs.
"""

from .post_processor import (
    N_DAYS,
    N_HOURS,
    PostProcessingConfig,
    PostProcessor,
    build_stan_data,
    cell_counts,
)

__all__ = [
    "N_DAYS",
    "N_HOURS",
    "PostProcessingConfig",
    "PostProcessor",
    "build_stan_data",
    "cell_counts",
]
