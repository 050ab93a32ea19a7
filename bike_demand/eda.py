"""
Exploratory Data Analysis (EDA) Module
======================================

Summary tables and figures for the daily rental table.

Functions:
    - summarize_by_group: Rental statistics per season and holiday
    - plot_correlation_matrix: Correlation heatmap
    - plot_rentals_histogram: Distribution of daily rentals
    - plot_rentals_by_season: Histogram faceted by season
    - plot_temperature_scatter: Daily rentals against mean temperature
    - plot_rentals_time_series: Daily rentals over time
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Sequence, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

from .preprocessing import DATE_COLUMN, TARGET_COLUMN

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")


def summarize_by_group(
    df: pd.DataFrame,
    group_columns: Sequence[str] = ("season", "holiday"),
    target: str = TARGET_COLUMN
) -> pd.DataFrame:
    """
    Daily rental statistics for every observed group.

    Args:
        df: Daily DataFrame
        group_columns: Columns to group by
        target: Outcome column

    Returns:
        DataFrame with days, mean, median, std, min and max per group
    """
    summary = (
        df.groupby(list(group_columns), observed=True)[target]
        .agg(days="count", mean="mean", median="median", std="std", min="min", max="max")
        .reset_index()
    )
    return summary


def plot_correlation_matrix(
    df: pd.DataFrame,
    method: str = 'pearson',
    figsize: Tuple[int, int] = (10, 8),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Create a correlation heatmap for all numerical columns.

    Args:
        df: DataFrame with numerical data
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    corr_matrix = df.select_dtypes(include=[np.number]).corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.2f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def plot_rentals_histogram(
    df: pd.DataFrame,
    target: str = TARGET_COLUMN,
    bins: int = 30,
    figsize: Tuple[int, int] = (9, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram with KDE of daily rentals.

    Args:
        df: Daily DataFrame
        target: Outcome column
        bins: Number of histogram bins
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    values = df[target].dropna()
    sns.histplot(values, kde=True, ax=ax, bins=bins, alpha=0.7)

    mean_val = values.mean()
    median_val = values.median()
    ax.axvline(mean_val, color='red', linestyle='--', label=f'Mean: {mean_val:.0f}')
    ax.axvline(median_val, color='green', linestyle='--', label=f'Median: {median_val:.0f}')

    title = 'Daily Rented Bike Count'
    # normaltest needs a reasonable sample size
    if len(values) >= 20:
        _, p_value = stats.normaltest(values)
        normality = "Normal" if p_value > 0.05 else "Non-Normal"
        title += f' ({normality}, p={p_value:.3f})'

    ax.set_title(title, fontsize=12, fontweight='bold')
    ax.set_xlabel('Rented bikes per day')
    ax.legend(fontsize=8)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Rentals histogram saved to {save_path}")

    return fig


def plot_rentals_by_season(
    df: pd.DataFrame,
    target: str = TARGET_COLUMN,
    facet: str = "season",
    bins: int = 20,
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram of daily rentals, one panel per season.

    Args:
        df: Daily DataFrame
        target: Outcome column
        facet: Categorical column defining the panels
        bins: Number of histogram bins
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    grid = sns.displot(
        data=df, x=target, col=facet, col_wrap=2,
        bins=bins, height=3.5, aspect=1.3,
        facet_kws={"sharey": False}
    )
    grid.set_axis_labels('Rented bikes per day', 'Days')
    grid.figure.suptitle(f'Daily Rentals by {facet.capitalize()}', fontsize=14, fontweight='bold')
    grid.figure.tight_layout()

    if save_path:
        grid.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Faceted histogram saved to {save_path}")

    return grid.figure


def plot_temperature_scatter(
    df: pd.DataFrame,
    x: str = "temperature",
    target: str = TARGET_COLUMN,
    hue: Optional[str] = "season",
    figsize: Tuple[int, int] = (9, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter of daily rentals against a covariate with a quadratic trend.

    Args:
        df: Daily DataFrame
        x: Covariate on the horizontal axis
        target: Outcome column
        hue: Optional categorical column for point colors
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    sns.scatterplot(data=df, x=x, y=target, hue=hue, alpha=0.7, ax=ax)

    # Quadratic trend
    z = np.polyfit(df[x].to_numpy(dtype=float), df[target].to_numpy(dtype=float), 2)
    xs = np.linspace(df[x].min(), df[x].max(), 200)
    ax.plot(xs, np.poly1d(z)(xs), "k--", alpha=0.7, label='Quadratic trend')

    ax.set_title(f'Daily Rentals vs {x.replace("_", " ").capitalize()}',
                 fontsize=12, fontweight='bold')
    ax.legend(fontsize=8)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Scatter plot saved to {save_path}")

    return fig


def plot_rentals_time_series(
    df: pd.DataFrame,
    date_column: str = DATE_COLUMN,
    target: str = TARGET_COLUMN,
    window: int = 7,
    figsize: Tuple[int, int] = (14, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Daily rentals over time with a rolling mean.

    Args:
        df: Daily DataFrame
        date_column: Date column
        target: Outcome column
        window: Rolling window in days
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    ordered = df.sort_values(date_column)

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(ordered[date_column], ordered[target], linewidth=0.8, alpha=0.6, label='Daily')
    ax.plot(
        ordered[date_column],
        ordered[target].rolling(window=window, min_periods=1).mean(),
        color='red', linewidth=1.5, label=f'Rolling Mean ({window} days)'
    )

    ax.set_xlabel('Date')
    ax.set_ylabel('Rented bikes per day')
    ax.set_title('Daily Rentals Over Time', fontsize=12, fontweight='bold')
    ax.legend(loc='upper left', fontsize=8)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Time series plot saved to {save_path}")

    return fig


def generate_eda_report(
    df: pd.DataFrame,
    target: str = TARGET_COLUMN,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate the EDA tables and figures for the daily table.

    Args:
        df: Daily DataFrame
        target: Outcome column
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing EDA results and file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = {
        "data_shape": df.shape,
        "columns": list(df.columns),
        "figures": [],
        "group_summary": None,
        "correlation_matrix": None
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    logger.info("Summarizing rentals by season and holiday...")
    report["group_summary"] = summarize_by_group(df, target=target)

    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        df,
        save_path=str(output_dir / "01_correlation_matrix.png")
    )
    report["figures"].append("01_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    logger.info("Plotting rentals distribution...")
    plot_rentals_histogram(
        df, target=target,
        save_path=str(output_dir / "02_rentals_histogram.png")
    )
    report["figures"].append("02_rentals_histogram.png")

    logger.info("Plotting rentals distribution by season...")
    plot_rentals_by_season(
        df, target=target,
        save_path=str(output_dir / "03_rentals_by_season.png")
    )
    report["figures"].append("03_rentals_by_season.png")

    logger.info("Plotting rentals against temperature...")
    plot_temperature_scatter(
        df, target=target,
        save_path=str(output_dir / "04_rentals_vs_temperature.png")
    )
    report["figures"].append("04_rentals_vs_temperature.png")

    logger.info("Plotting rentals over time...")
    plot_rentals_time_series(
        df, target=target,
        save_path=str(output_dir / "05_rentals_time_series.png")
    )
    report["figures"].append("05_rentals_time_series.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_group_summary(summary: pd.DataFrame) -> None:
    """Print the per-group rental table."""
    print("\n" + "=" * 70)
    print("DAILY RENTALS BY SEASON AND HOLIDAY")
    print("=" * 70)
    print(summary.round(1).to_string(index=False))
    print("=" * 70 + "\n")


def print_correlation_insights(
    corr_matrix: pd.DataFrame,
    target: str = TARGET_COLUMN,
    threshold: float = 0.7
) -> None:
    """
    Print predictor correlations with the outcome and collinear pairs.

    Args:
        corr_matrix: Correlation matrix DataFrame
        target: Outcome column
        threshold: |r| above which two predictors are flagged as collinear
    """
    print("\n" + "=" * 50)
    print("CORRELATION INSIGHTS")
    print("=" * 50)

    if target in corr_matrix.columns:
        with_target = corr_matrix[target].drop(target).sort_values(key=np.abs, ascending=False)
        print(f"\nCorrelation with {target}:")
        for col, value in with_target.items():
            print(f"  • {col}: {value:.3f}")

    predictors = [col for col in corr_matrix.columns if col != target]
    collinear = []
    for i, col1 in enumerate(predictors):
        for col2 in predictors[i + 1:]:
            value = corr_matrix.loc[col1, col2]
            if abs(value) >= threshold:
                collinear.append((col1, col2, value))

    if collinear:
        print(f"\nCollinear predictors (|r| >= {threshold}):")
        for col1, col2, value in sorted(collinear, key=lambda item: abs(item[2]), reverse=True):
            print(f"  • {col1} ↔ {col2}: {value:.3f}")
    else:
        print(f"\nNo collinear predictor pairs (|r| >= {threshold})")

    print("=" * 50 + "\n")
