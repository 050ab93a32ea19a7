"""
Data Preprocessing Module
=========================

Turns the raw hourly table into one observation per operating day and
splits it for modeling.

Functions:
    - clean_data: Normalize column names, parse dates, convert text to categories
    - filter_operating_days: Drop rows for days the service was not running
    - aggregate_daily: Collapse hourly rows to one row per (date, season, holiday)
    - split_train_test: Stratified train/test split on the outcome
    - make_folds: K-fold cross-validation indices on the training partition
"""

import logging
import re
import unicodedata
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, train_test_split

logger = logging.getLogger(__name__)

DATE_COLUMN = "date"
DATE_FORMAT = "%d/%m/%Y"
TARGET_COLUMN = "rented_bike_count"
OPERATING_COLUMN = "functioning_day"
OPERATING_VALUE = "Yes"
RANDOM_SEED = 123456

# Unit suffixes dropped after normalization. Air temperature becomes
# "temperature" so it never shares a name with the dew point column.
DEFAULT_RENAMES = {
    "temperature_c": "temperature",
    "wind_speed_m_s": "wind_speed",
    "visibility_10m": "visibility",
    "dew_point_temperature_c": "dew_point_temperature",
    "solar_radiation_mj_m2": "solar_radiation",
    "rainfall_mm": "rainfall",
    "snowfall_cm": "snowfall",
    "seasons": "season",
}

GROUP_COLUMNS = ["date", "season", "holiday"]

# Flow quantities accumulate over the day
SUM_COLUMNS = ["rented_bike_count", "rainfall", "snowfall"]

# Intensity quantities are averaged over the day
MEAN_COLUMNS = [
    "temperature",
    "humidity",
    "wind_speed",
    "visibility",
    "dew_point_temperature",
    "solar_radiation",
]


def normalize_column_name(name: str) -> str:
    """
    Convert a raw header into snake_case.

    Non-ASCII characters are dropped, punctuation becomes a word break,
    and words are lowercased and joined with underscores.

    >>> normalize_column_name("Temperature(°C)")
    'temperature_c'
    """
    text = unicodedata.normalize("NFKD", str(name))
    text = text.encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^0-9A-Za-z]+", " ", text)
    return "_".join(text.lower().split())


def clean_column_names(
    df: pd.DataFrame,
    renames: Optional[Dict[str, str]] = None
) -> pd.DataFrame:
    """
    Normalize every column name and apply the rename map.

    Names that collide after normalization get numeric suffixes
    (``name``, ``name_2``, ...).

    Args:
        df: DataFrame with raw headers
        renames: Mapping from normalized name to final name

    Returns:
        Copy of the DataFrame with cleaned column names
    """
    renames = DEFAULT_RENAMES if renames is None else renames

    seen: Dict[str, int] = {}
    names = []
    for column in df.columns:
        name = normalize_column_name(column)
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 1
        names.append(name)

    cleaned = df.copy()
    cleaned.columns = names
    return cleaned.rename(columns=renames)


def parse_dates(
    df: pd.DataFrame,
    column: str = DATE_COLUMN,
    date_format: str = DATE_FORMAT
) -> pd.DataFrame:
    """
    Parse a day-month-year string column into datetimes.

    Malformed dates raise ``ValueError``. Columns that are already
    datetimes are left as they are.
    """
    if pd.api.types.is_datetime64_any_dtype(df[column]):
        return df

    df = df.copy()
    df[column] = pd.to_datetime(df[column], format=date_format)
    return df


def convert_categoricals(df: pd.DataFrame) -> pd.DataFrame:
    """Convert every text column into a categorical column."""
    df = df.copy()
    for column in df.columns:
        dtype = df[column].dtype
        if isinstance(dtype, pd.CategoricalDtype):
            continue
        if pd.api.types.is_object_dtype(dtype) or pd.api.types.is_string_dtype(dtype):
            df[column] = df[column].astype("category")
    return df


def clean_data(
    df: pd.DataFrame,
    config: Optional[Dict[str, Any]] = None
) -> pd.DataFrame:
    """
    Clean the raw hourly table.

    Running this on its own output leaves names and dtypes unchanged.

    Args:
        df: Raw DataFrame as read from CSV
        config: Configuration dictionary (uses 'cleaning' and 'data' sections)

    Returns:
        Cleaned DataFrame
    """
    config = config or {}
    cleaning_config = config.get('cleaning', {})
    data_config = config.get('data', {})

    df = clean_column_names(df, cleaning_config.get('column_renames', DEFAULT_RENAMES))
    df = parse_dates(
        df,
        column=cleaning_config.get('date_column', DATE_COLUMN),
        date_format=data_config.get('date_format', DATE_FORMAT)
    )
    df = convert_categoricals(df)

    logger.info(f"Cleaned columns: {list(df.columns)}")
    return df


def filter_operating_days(
    df: pd.DataFrame,
    column: str = OPERATING_COLUMN,
    operating_value: str = OPERATING_VALUE
) -> pd.DataFrame:
    """
    Keep only rows recorded on operating days, then drop the flag column.

    Args:
        df: Cleaned hourly DataFrame
        column: Name of the operating-day flag column
        operating_value: Flag value marking an operating day

    Returns:
        Filtered DataFrame without the flag column
    """
    mask = (df[column] == operating_value).to_numpy()
    filtered = df.loc[mask].drop(columns=column).reset_index(drop=True)

    logger.info(
        f"Removed {int((~mask).sum())} rows from non-operating days "
        f"({len(filtered)} rows remain)"
    )
    return filtered


def aggregate_daily(
    df: pd.DataFrame,
    group_columns: Sequence[str] = GROUP_COLUMNS,
    sum_columns: Sequence[str] = SUM_COLUMNS,
    mean_columns: Sequence[str] = MEAN_COLUMNS
) -> pd.DataFrame:
    """
    Collapse hourly rows into one row per (date, season, holiday).

    Flow columns are summed and intensity columns averaged. Every other
    column (the hour of day, for instance) is dropped.

    Args:
        df: Filtered hourly DataFrame
        group_columns: Grouping keys
        sum_columns: Columns aggregated by summation
        mean_columns: Columns aggregated by averaging

    Returns:
        Daily DataFrame sorted by date
    """
    aggregations = {col: "sum" for col in sum_columns if col in df.columns}
    aggregations.update({col: "mean" for col in mean_columns if col in df.columns})

    daily = (
        df.groupby(list(group_columns), observed=True, sort=True)
        .agg(aggregations)
        .reset_index()
    )

    # Group keys come back as plain values for some pandas versions
    for column in group_columns:
        if isinstance(df[column].dtype, pd.CategoricalDtype):
            daily[column] = daily[column].astype(df[column].dtype)

    ordered = [col for col in df.columns if col in daily.columns]
    daily = daily[ordered].sort_values(list(group_columns)).reset_index(drop=True)

    logger.info(f"Aggregated {len(df)} hourly rows into {len(daily)} daily rows")
    return daily


def check_one_row_per_date(daily: pd.DataFrame, column: str = DATE_COLUMN) -> None:
    """Raise ``ValueError`` if any date appears on more than one row."""
    duplicated = daily[column].duplicated(keep=False)
    if duplicated.any():
        dates = sorted(daily.loc[duplicated, column].dt.strftime("%Y-%m-%d").unique())
        raise ValueError(
            f"Expected one row per date after aggregation, "
            f"found {len(dates)} dates with several rows: {dates[:5]}"
        )


def prepare_daily_data(
    raw: pd.DataFrame,
    config: Optional[Dict[str, Any]] = None
) -> pd.DataFrame:
    """
    Clean, filter and aggregate the raw hourly table.

    Args:
        raw: Raw DataFrame as read from CSV
        config: Configuration dictionary

    Returns:
        One row per operating date
    """
    config = config or {}
    agg_config = config.get('aggregation', {})

    df = clean_data(raw, config)
    df = filter_operating_days(df)
    daily = aggregate_daily(
        df,
        group_columns=agg_config.get('group_columns', GROUP_COLUMNS),
        sum_columns=agg_config.get('sum_columns', SUM_COLUMNS),
        mean_columns=agg_config.get('mean_columns', MEAN_COLUMNS)
    )
    check_one_row_per_date(daily)
    return daily


def split_train_test(
    daily: pd.DataFrame,
    target: str = TARGET_COLUMN,
    train_fraction: float = 0.75,
    seed: int = RANDOM_SEED,
    strata_bins: int = 4
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split the daily table into train and test partitions.

    The split is stratified on quantile bins of the outcome so both
    partitions cover the full range of rental counts.

    Args:
        daily: Daily DataFrame
        target: Outcome column used for stratification
        train_fraction: Fraction of rows in the training partition
        seed: Random seed
        strata_bins: Number of quantile bins of the outcome

    Returns:
        Tuple of (train, test) with fresh integer indices
    """
    strata = pd.qcut(daily[target], q=strata_bins, labels=False, duplicates="drop")

    train, test = train_test_split(
        daily,
        train_size=train_fraction,
        random_state=seed,
        stratify=strata
    )

    logger.info(f"Train/Test split: {len(train)} train rows, {len(test)} test rows")
    return train.reset_index(drop=True), test.reset_index(drop=True)


def make_folds(
    train: pd.DataFrame,
    n_folds: int = 10,
    seed: int = RANDOM_SEED
) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    Build shuffled k-fold (train, validation) index pairs.

    The validation parts are disjoint and together cover every row.
    The same folds are reused for every model variant.
    """
    kfold = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    folds = list(kfold.split(train))
    logger.info(f"Created {len(folds)} cross-validation folds on {len(train)} rows")
    return folds


def preprocess_pipeline(
    raw: pd.DataFrame,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Complete preprocessing: daily table, train/test split and CV folds.

    Args:
        raw: Raw DataFrame as read from CSV
        config: Configuration dictionary

    Returns:
        Dictionary containing:
            - daily: Aggregated daily table
            - train, test: Split partitions
            - folds: List of (train_idx, val_idx) on the training partition
    """
    config = config or {}
    split_config = config.get('split', {})
    target = config.get('model', {}).get('target', TARGET_COLUMN)
    seed = split_config.get('seed', RANDOM_SEED)

    logger.info("=" * 60)
    logger.info("STARTING DATA PREPROCESSING")
    logger.info("=" * 60)

    daily = prepare_daily_data(raw, config)

    train, test = split_train_test(
        daily,
        target=target,
        train_fraction=split_config.get('train_fraction', 0.75),
        seed=seed,
        strata_bins=split_config.get('strata_bins', 4)
    )
    folds = make_folds(train, n_folds=split_config.get('n_folds', 10), seed=seed)

    return {
        'daily': daily,
        'train': train,
        'test': test,
        'folds': folds
    }


def print_preprocessing_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the preprocessing results.

    Args:
        result: Dictionary from preprocess_pipeline
    """
    daily = result['daily']
    print("\n" + "=" * 50)
    print("PREPROCESSING SUMMARY")
    print("=" * 50)
    print(f"Daily rows: {len(daily)}")
    print(f"Date range: {daily[DATE_COLUMN].min():%Y-%m-%d} to {daily[DATE_COLUMN].max():%Y-%m-%d}")
    print(f"Training rows: {len(result['train'])}")
    print(f"Test rows: {len(result['test'])}")
    print(f"Cross-validation folds: {len(result['folds'])}")
    print("=" * 50 + "\n")
