"""
Shared fixtures: a synthetic hourly rental table with the raw header set.
"""

import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bike_demand.data_loader import RAW_COLUMNS
from bike_demand.preprocessing import prepare_daily_data, split_train_test


def _season(month: int) -> str:
    if month in (12, 1, 2):
        return "Winter"
    if month in (3, 4, 5):
        return "Spring"
    if month in (6, 7, 8):
        return "Summer"
    return "Autumn"


def make_raw_hourly(
    n_days: int = 365,
    seed: int = 42,
    non_operating_days=(),
    start: str = "2017-12-01"
) -> pd.DataFrame:
    """
    Simulate the raw hourly file.

    Daily rentals depend quadratically on the daily mean temperature and
    drop with rain, holidays and weekends. Hourly temperature swings
    around the daily mean so the mean of the 24 hours is the daily value.
    """
    rng = np.random.default_rng(seed)
    dates = pd.date_range(start, periods=n_days, freq="D")
    hours = np.arange(24)

    hour_share = 0.5 + np.sin(np.pi * hours / 24)
    hour_share = hour_share / hour_share.sum()

    frames = []
    for i, day in enumerate(dates):
        temp = 12 + 14 * np.sin(2 * np.pi * (day.dayofyear - 110) / 365) + rng.normal(0, 3)
        rain = np.where(rng.random(24) < 0.05, rng.uniform(0.5, 5.0, 24), 0.0)
        snow = np.where((temp < 0) & (rng.random(24) < 0.05), rng.uniform(0.1, 2.0, 24), 0.0)
        holiday = "Holiday" if i % 15 == 7 else "No Holiday"
        operating = i not in non_operating_days

        daily = (
            20000 + 3600 * temp - 100 * temp ** 2
            - 600 * rain.sum()
            - 4000 * (holiday == "Holiday")
            - 2000 * (day.dayofweek >= 5)
            + rng.normal(0, 800)
        )
        counts = np.round(max(daily, 0.0) * hour_share).astype(int)
        if not operating:
            counts = np.zeros(24, dtype=int)

        frames.append(pd.DataFrame({
            "Date": day.strftime("%d/%m/%Y"),
            "Rented Bike Count": counts,
            "Hour": hours,
            "Temperature(°C)": temp + 3 * np.sin(2 * np.pi * (hours - 9) / 24),
            "Humidity(%)": rng.normal(60, 10, 24).clip(10, 98),
            "Wind speed (m/s)": np.abs(rng.normal(1.5, 0.7, 24)),
            "Visibility (10m)": rng.normal(1500, 300, 24).clip(30, 2000),
            "Dew point temperature(°C)": temp - 8 + rng.normal(0, 1, 24),
            "Solar Radiation (MJ/m2)": np.maximum(0, np.sin(np.pi * (hours - 6) / 12)) * rng.uniform(0.5, 1.5),
            "Rainfall(mm)": rain,
            "Snowfall (cm)": snow,
            "Seasons": _season(day.month),
            "Holiday": holiday,
            "Functioning Day": "Yes" if operating else "No",
        }))

    return pd.concat(frames, ignore_index=True)[RAW_COLUMNS]


@pytest.fixture(scope="session")
def raw_hourly():
    """One simulated year of hourly rows with three non-operating days."""
    return make_raw_hourly(n_days=365, non_operating_days=(40, 41, 200))


@pytest.fixture
def raw_factory():
    """Build smaller simulated tables on demand."""
    return make_raw_hourly


@pytest.fixture(scope="session")
def daily_data(raw_hourly):
    """Cleaned and aggregated daily table."""
    return prepare_daily_data(raw_hourly)


@pytest.fixture(scope="session")
def split_data(daily_data):
    """Seeded (train, test) partitions of the daily table."""
    return split_train_test(daily_data)
