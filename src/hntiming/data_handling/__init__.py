"""
Data Handling Package

Loading, cleaning, validation and simulation of HackerNews post data.
"""

from .loaders import load_posts, resolve_posts_path
from .processors import PostProcessingConfig, PostProcessor, build_stan_data, cell_counts
from .simulate import simulate_posts
from .validators import PostDataValidator, ProcessedPostValidator, validate_or_raise

__all__ = [
    "load_posts",
    "resolve_posts_path",
    "PostProcessingConfig",
    "PostProcessor",
    "build_stan_data",
    "cell_counts",
    "simulate_posts",
    "PostDataValidator",
    "ProcessedPostValidator",
    "validate_or_raise",
]
