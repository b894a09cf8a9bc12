"""
Data Validators

This module provides validation classes for ensuring post data is usable
before and after processing.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Mapping

import pandas as pd


class BaseDataValidator(ABC):
    """Base class for data validators"""

    @abstractmethod
    def validate_dataframe(self, df: pd.DataFrame) -> List[str]:
        """Validate a dataframe and return list of error messages"""
        pass

    def _check_required_columns(
        self, df: pd.DataFrame, required_columns: List[str]
    ) -> List[str]:
        """Check if dataframe has required columns"""
        errors = []
        missing_columns = set(required_columns) - set(df.columns)
        if missing_columns:
            errors.append(f"Missing required columns: {sorted(missing_columns)}")
        return errors

    def _check_any_column(self, df: pd.DataFrame, candidates: List[str]) -> List[str]:
        """Check that at least one of the candidate columns is present"""
        if not any(c in df.columns for c in candidates):
            return [f"Missing required column: one of {candidates}"]
        return []

    def _check_data_types(
        self, df: pd.DataFrame, expected_types: Mapping[str, object]
    ) -> List[str]:
        """Check if columns have expected data types"""
        errors = []
        for col, expected_type in expected_types.items():
            if col in df.columns:
                if expected_type == "numeric":
                    if not pd.api.types.is_numeric_dtype(df[col]):
                        errors.append(f"Column '{col}' should be numeric")
                elif expected_type == "string":
                    if not pd.api.types.is_string_dtype(
                        df[col]
                    ) and not pd.api.types.is_object_dtype(df[col]):
                        errors.append(f"Column '{col}' should be string/object type")
        return errors

    def _check_value_ranges(
        self, df: pd.DataFrame, value_ranges: Dict[str, tuple]
    ) -> List[str]:
        """Check if numeric columns are within expected ranges"""
        errors = []
        for col, (min_val, max_val) in value_ranges.items():
            if col in df.columns:
                numeric_values = pd.to_numeric(df[col], errors="coerce").dropna()
                if not numeric_values.empty:
                    if numeric_values.min() < min_val or numeric_values.max() > max_val:
                        errors.append(
                            f"Column '{col}' has values outside range [{min_val}, {max_val}]"
                        )
        return errors


class PostDataValidator(BaseDataValidator):
    """Validator for raw HackerNews post dumps"""

    def __init__(self, outcome: str = "score"):
        self.outcome = outcome
        self.required_columns = ["id", outcome]
        self.expected_types: Mapping[str, object] = {
            "id": "numeric",
            outcome: "numeric",
            "time": "numeric",
            "type": "string",
        }
        self.value_ranges = {outcome: (0, float("inf"))}

    def validate_dataframe(self, df: pd.DataFrame) -> List[str]:
        errors = []

        if df.empty:
            errors.append("DataFrame is empty")
            return errors

        errors.extend(self._check_required_columns(df, self.required_columns))
        errors.extend(self._check_any_column(df, ["time", "timestamp"]))
        errors.extend(self._check_data_types(df, self.expected_types))
        errors.extend(self._check_value_ranges(df, self.value_ranges))

        if "id" in df.columns:
            duplicates = df["id"].duplicated().sum()
            if duplicates > 0:
                errors.append(f"Found {duplicates} duplicate post ids")

        return errors


class ProcessedPostValidator(BaseDataValidator):
    """Validator for processed posts handed to the models"""

    def __init__(self):
        self.required_columns = ["y", "hour", "day", "posted_at"]
        self.expected_types: Mapping[str, object] = {
            "y": "numeric",
            "hour": "numeric",
            "day": "numeric",
        }
        self.value_ranges = {
            "y": (0, float("inf")),
            "hour": (0, 23),
            "day": (0, 6),
        }

    def validate_dataframe(self, df: pd.DataFrame) -> List[str]:
        errors = []

        if df.empty:
            errors.append("DataFrame is empty")
            return errors

        errors.extend(self._check_required_columns(df, self.required_columns))
        errors.extend(self._check_data_types(df, self.expected_types))
        errors.extend(self._check_value_ranges(df, self.value_ranges))

        for col in ("y", "hour", "day"):
            if col in df.columns and df[col].isna().any():
                errors.append(f"Column '{col}' contains missing values")

        return errors


def validate_or_raise(validator: BaseDataValidator, df: pd.DataFrame) -> None:
    """Run a validator and raise ValueError with all messages if any fail"""
    errors = validator.validate_dataframe(df)
    if errors:
        raise ValueError("Data validation failed:\n" + "\n".join(f"- {e}" for e in errors))
