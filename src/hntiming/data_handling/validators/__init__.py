"""
Data validation modules for hntiming package.

This module provides data validation classes for raw and processed
HackerNews posts.
"""

from .data_validator import PostDataValidator, ProcessedPostValidator, validate_or_raise

__all__ = ["PostDataValidator", "ProcessedPostValidator", "validate_or_raise"]
