"""
Model Evaluation Module
=======================

Evaluates the selected model once on the untouched test partition.

Features:
    - RMSE, MAE, R² on the test partition
    - Coefficient table (estimate, std error, t statistic, p value)
    - Actual vs Predicted and residual plots
    - Metrics / coefficients written to reports/metrics
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import mean_squared_error, mean_absolute_error, r2_score
from sklearn.pipeline import Pipeline

from .model import coefficient_table, split_xy
from .preprocessing import TARGET_COLUMN

logger = logging.getLogger(__name__)


def calculate_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, Any]:
    """
    Calculate regression metrics.

    Args:
        y_true: Observed values
        y_pred: Predicted values

    Returns:
        Dictionary with rmse, rsq, mae and n_samples
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    return {
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'rsq': float(r2_score(y_true, y_pred)),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'n_samples': int(len(y_true))
    }


def plot_actual_vs_predicted(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    figsize: Tuple[int, int] = (7, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter of observed against predicted daily rentals.

    Args:
        y_true: Observed values
        y_pred: Predicted values
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    ax.scatter(y_true, y_pred, alpha=0.6, s=25)

    min_val = min(np.min(y_true), np.min(y_pred))
    max_val = max(np.max(y_true), np.max(y_pred))
    ax.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=2, label='Perfect')

    metrics = calculate_metrics(y_true, y_pred)
    ax.set_xlabel('Observed daily rentals')
    ax.set_ylabel('Predicted daily rentals')
    ax.set_title(f"Test set: R²={metrics['rsq']:.4f}, RMSE={metrics['rmse']:.1f}",
                 fontsize=12, fontweight='bold')
    ax.legend(loc='upper left')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def plot_residuals(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Residual distribution and residuals against fitted values.

    Args:
        y_true: Observed values
        y_pred: Predicted values
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    residuals = np.asarray(y_true, dtype=float) - np.asarray(y_pred, dtype=float)

    fig, axes = plt.subplots(1, 2, figsize=figsize)

    sns.histplot(residuals, kde=True, ax=axes[0], bins=30, alpha=0.7)
    axes[0].axvline(0, color='red', linestyle='--', linewidth=2, label='Zero')
    axes[0].axvline(residuals.mean(), color='green', linestyle='--',
                    linewidth=2, label=f'Mean: {residuals.mean():.1f}')
    axes[0].set_xlabel('Residual (Observed - Predicted)')
    axes[0].set_title(f'Residuals (Std: {residuals.std():.1f})', fontweight='bold')
    axes[0].legend(fontsize=8)

    axes[1].scatter(y_pred, residuals, alpha=0.6, s=25)
    axes[1].axhline(0, color='red', linestyle='--', linewidth=1)
    axes[1].set_xlabel('Predicted daily rentals')
    axes[1].set_ylabel('Residual')
    axes[1].set_title('Residuals vs Fitted', fontweight='bold')

    plt.suptitle('Residual Analysis', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Residuals plot saved to {save_path}")

    return fig


def evaluate_model(
    pipeline: Pipeline,
    train: pd.DataFrame,
    test: pd.DataFrame,
    variant: str,
    target: str = TARGET_COLUMN,
    output_dir: str = "reports/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Evaluate the final model on the test partition and write reports.

    Args:
        pipeline: Pipeline fitted on the full training partition
        train: Training partition (for the coefficient table)
        test: Untouched test partition
        variant: Recipe variant name
        target: Outcome column
        output_dir: Directory for output files
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing metrics, coefficients, figures and file paths
    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    metrics_dir = output_dir / "metrics"

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info(f"STARTING FINAL EVALUATION ({variant})")
    logger.info("=" * 60)

    X_test, y_test = split_xy(test, target)
    y_pred = pipeline.predict(X_test)

    metrics = calculate_metrics(y_test.to_numpy(), y_pred)
    metrics['variant'] = variant

    metrics_file = metrics_dir / "test_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump(metrics, f, indent=2)
    logger.info(f"Metrics saved to {metrics_file}")

    coefficients = coefficient_table(pipeline, train, target)
    coefficients_file = metrics_dir / "coefficients.csv"
    coefficients.to_csv(coefficients_file, index=False)
    logger.info(f"Coefficients saved to {coefficients_file}")

    figures = []

    plot_actual_vs_predicted(
        y_test.to_numpy(), y_pred,
        save_path=str(figures_dir / "eval_actual_vs_predicted.png")
    )
    figures.append("eval_actual_vs_predicted.png")

    plot_residuals(
        y_test.to_numpy(), y_pred,
        save_path=str(figures_dir / "eval_residuals.png")
    )
    figures.append("eval_residuals.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info(f"  RMSE: {metrics['rmse']:.4f}")
    logger.info(f"  MAE: {metrics['mae']:.4f}")
    logger.info(f"  R²: {metrics['rsq']:.4f}")
    logger.info("=" * 60)

    return {
        'metrics': metrics,
        'coefficients': coefficients,
        'predictions': y_pred,
        'figures': figures,
        'metrics_file': str(metrics_file),
        'coefficients_file': str(coefficients_file)
    }


def print_evaluation_report(result: Dict[str, Any]) -> None:
    """
    Print test metrics and the coefficient table.

    Args:
        result: Dictionary from evaluate_model
    """
    metrics = result['metrics']

    print("\n" + "=" * 70)
    print(f"TEST SET EVALUATION - {metrics['variant']}")
    print("=" * 70)
    print(f"  • RMSE: {metrics['rmse']:.4f}")
    print(f"  • MAE: {metrics['mae']:.4f}")
    print(f"  • R²: {metrics['rsq']:.4f}")
    print(f"  • Days evaluated: {metrics['n_samples']}")

    print("\nCoefficients:")
    print("-" * 70)
    print(result['coefficients'].to_string(index=False, float_format=lambda v: f"{v:.4f}"))
    print("=" * 70 + "\n")
