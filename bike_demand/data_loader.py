"""
Data Loader Module
==================

Handles CSV ingestion, schema validation, and basic data quality checks.

Functions:
    - load_config: Load YAML configuration file
    - load_data: Load the raw hourly CSV with a fixed text encoding
    - validate_data: Check the header set and data quality constraints
    - summarize_missing: Missing-value counts per column
    - get_data_summary: Generate basic statistics
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import pandas as pd
import numpy as np
import yaml

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "latin-1"

# Header set of the raw hourly file
RAW_COLUMNS = [
    "Date",
    "Rented Bike Count",
    "Hour",
    "Temperature(°C)",
    "Humidity(%)",
    "Wind speed (m/s)",
    "Visibility (10m)",
    "Dew point temperature(°C)",
    "Solar Radiation (MJ/m2)",
    "Rainfall(mm)",
    "Snowfall (cm)",
    "Seasons",
    "Holiday",
    "Functioning Day",
]


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def load_data(
    file_path: str,
    encoding: str = DEFAULT_ENCODING
) -> pd.DataFrame:
    """
    Load the raw hourly rental CSV.

    Args:
        file_path: Path to the CSV file
        encoding: Text encoding of the file (the raw headers carry a degree sign)

    Returns:
        DataFrame containing the loaded data

    Raises:
        FileNotFoundError: If data file doesn't exist
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(file_path, encoding=encoding)
    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    return df


def summarize_missing(df: pd.DataFrame) -> pd.DataFrame:
    """Count and percentage of missing values for every column."""
    counts = df.isnull().sum()
    return pd.DataFrame({
        "missing": counts,
        "missing_pct": (counts / max(len(df), 1) * 100).round(2)
    })


def validate_data(
    df: pd.DataFrame,
    required_columns: Optional[list] = None,
    strict: bool = True
) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate the raw hourly table before cleaning.

    Checks:
        - All expected raw columns are present (schema drift)
        - No missing values
        - No duplicate rows
        - Rental counts are non-negative

    Args:
        df: DataFrame to validate
        required_columns: Expected header set (default: RAW_COLUMNS)
        strict: If True, raise errors on validation failure

    Returns:
        Tuple of (is_valid, validation_report)
    """
    required_columns = RAW_COLUMNS if required_columns is None else required_columns

    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "column_names": list(df.columns),
        "issues": []
    }

    # Check 1: Header set
    missing_cols = [col for col in required_columns if col not in df.columns]
    if missing_cols:
        issue = f"Missing expected columns: {missing_cols}"
        report["issues"].append(issue)
        report["missing_columns"] = missing_cols
        logger.warning(issue)

    unexpected_cols = [col for col in df.columns if col not in required_columns]
    if unexpected_cols:
        issue = f"Unexpected columns found: {unexpected_cols}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 2: Missing values
    missing_counts = df.isnull().sum()
    total_missing = missing_counts.sum()
    if total_missing > 0:
        missing_pct = (total_missing / (df.shape[0] * df.shape[1])) * 100
        issue = f"Missing values: {total_missing} ({missing_pct:.2f}%)"
        report["issues"].append(issue)
        report["missing_by_column"] = missing_counts[missing_counts > 0].to_dict()
        logger.warning(issue)

    # Check 3: Duplicate rows
    duplicates = df.duplicated().sum()
    if duplicates > 0:
        issue = f"Duplicate rows found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 4: Negative rental counts
    count_col = "Rented Bike Count"
    if count_col in df.columns and pd.api.types.is_numeric_dtype(df[count_col]):
        negative = int((df[count_col] < 0).sum())
        if negative > 0:
            issue = f"Column '{count_col}' has {negative} negative values"
            report["issues"].append(issue)
            logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def get_data_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Generate summary statistics for the dataset.

    Args:
        df: DataFrame to summarize

    Returns:
        Dictionary containing summary statistics
    """
    summary = {
        "shape": df.shape,
        "columns": list(df.columns),
        "dtypes": df.dtypes.astype(str).to_dict(),
        "memory_usage_mb": df.memory_usage(deep=True).sum() / 1024 / 1024,
        "missing": summarize_missing(df)["missing"].to_dict(),
        "statistics": {}
    }

    for col in df.select_dtypes(include=[np.number]).columns:
        summary["statistics"][col] = {
            "count": int(df[col].count()),
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "25%": float(df[col].quantile(0.25)),
            "50%": float(df[col].quantile(0.50)),
            "75%": float(df[col].quantile(0.75)),
            "max": float(df[col].max())
        }

    return summary


def print_data_summary(df: pd.DataFrame) -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
    """
    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
    print("=" * 60)
    summary = get_data_summary(df)
    n_rows, n_cols = summary["shape"]

    print(f"Shape: {n_rows} rows × {n_cols} columns")
    print(f"Memory Usage: {summary['memory_usage_mb'] * 1024:.2f} KB")
    print("\nColumn Information:")
    print("-" * 40)

    for col in summary["columns"]:
        n_missing = summary["missing"][col]
        pct = 100 * n_missing / n_rows if n_rows else 0.0
        print(f"  {col}: {summary['dtypes'][col]} | {n_missing} missing ({pct:.1f}%)")

    print("\nBasic Statistics:")
    print("-" * 40)
    print(pd.DataFrame(summary["statistics"]).round(4).to_string())
    print("=" * 60 + "\n")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    data_path = "data/raw/SeoulBikeData.csv"
    if os.path.exists(data_path):
        df = load_data(data_path)
        print_data_summary(df)
        is_valid, report = validate_data(df, strict=False)
        print(f"Validation passed: {is_valid}")
    else:
        print(f"No data file found at {data_path}")
        print("Place the raw hourly CSV there to test the data loader.")
