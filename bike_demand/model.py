"""
Model Training Module
=====================

Fits ordinary least squares models under each feature recipe, compares
them with k-fold cross-validation and refits the winner.

Features:
    - One scikit-learn Pipeline (recipe + LinearRegression) per variant
    - Shared folds across variants, RMSE / R² / MAE per fold
    - Best-variant selection by mean resampled RMSE
    - Coefficient table with standard errors via statsmodels
    - Model persistence (save/load)
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Tuple
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
import statsmodels.api as sm
from sklearn.linear_model import LinearRegression
from sklearn.model_selection import cross_validate
from sklearn.pipeline import Pipeline

from .preprocessing import TARGET_COLUMN
from .recipes import INTERACTION_TERMS, VARIANT_ORDER, build_recipe

logger = logging.getLogger(__name__)

# Scorer name and sign that turns the score back into the metric
SCORING = {
    "rmse": ("neg_root_mean_squared_error", -1.0),
    "rsq": ("r2", 1.0),
    "mae": ("neg_mean_absolute_error", -1.0),
}

HIGHER_IS_BETTER = {"rsq"}


def split_xy(df: pd.DataFrame, target: str = TARGET_COLUMN) -> Tuple[pd.DataFrame, pd.Series]:
    """Separate predictors from the outcome."""
    return df.drop(columns=target), df[target].astype(float)


def build_model_pipeline(
    variant: str,
    interactions: Sequence[Sequence[str]] = INTERACTION_TERMS
) -> Pipeline:
    """
    Pair a recipe variant with an OLS regressor.

    Args:
        variant: Recipe variant name
        interactions: Interaction pairs for the richer variants

    Returns:
        Unfitted scikit-learn Pipeline
    """
    return Pipeline(steps=[
        ("recipe", build_recipe(variant, interactions)),
        ("regressor", LinearRegression())
    ])


def cross_validate_recipes(
    train: pd.DataFrame,
    folds: List[Tuple[np.ndarray, np.ndarray]],
    target: str = TARGET_COLUMN,
    variants: Sequence[str] = VARIANT_ORDER,
    interactions: Sequence[Sequence[str]] = INTERACTION_TERMS,
    n_jobs: Optional[int] = 1
) -> Dict[str, pd.DataFrame]:
    """
    Evaluate every variant on the same cross-validation folds.

    Each fold clones the pipeline, fits the recipe and model on the
    training part and scores the held-out part.

    Args:
        train: Training partition
        folds: List of (train_idx, val_idx) pairs
        target: Outcome column
        variants: Variant names to evaluate
        interactions: Interaction pairs for the richer variants
        n_jobs: Parallel jobs for fold evaluation

    Returns:
        Dictionary containing:
            - summary: variant, metric, mean, n, std_err
            - per_fold: variant, fold, and one column per metric
    """
    X, y = split_xy(train, target)
    scoring = {metric: scorer for metric, (scorer, _) in SCORING.items()}

    summary_rows = []
    fold_frames = []

    logger.info("=" * 60)
    logger.info(f"CROSS-VALIDATING {len(variants)} VARIANTS ON {len(folds)} FOLDS")
    logger.info("=" * 60)

    for variant in variants:
        pipeline = build_model_pipeline(variant, interactions)
        scores = cross_validate(
            pipeline, X, y,
            cv=folds,
            scoring=scoring,
            n_jobs=n_jobs,
            error_score="raise"
        )

        per_fold = pd.DataFrame({
            "variant": variant,
            "fold": np.arange(1, len(folds) + 1)
        })
        for metric, (_, sign) in SCORING.items():
            values = sign * scores[f"test_{metric}"]
            per_fold[metric] = values

            n = len(values)
            summary_rows.append({
                "variant": variant,
                "metric": metric,
                "mean": float(np.mean(values)),
                "n": n,
                "std_err": float(np.std(values, ddof=1) / np.sqrt(n)) if n > 1 else float("nan")
            })
        fold_frames.append(per_fold)

        logger.info(
            f"  {variant}: mean RMSE {per_fold['rmse'].mean():.2f}, "
            f"mean R² {per_fold['rsq'].mean():.4f}"
        )

    return {
        "summary": pd.DataFrame(summary_rows),
        "per_fold": pd.concat(fold_frames, ignore_index=True)
    }


def select_best_variant(
    summary: pd.DataFrame,
    metric: str = "rmse",
    variant_order: Sequence[str] = VARIANT_ORDER
) -> str:
    """
    Pick the variant with the best mean resampled metric.

    Exact ties go to the variant listed first in ``variant_order``
    (the simpler model).

    Args:
        summary: Summary table from cross_validate_recipes
        metric: Metric to rank by
        variant_order: Variants from simplest to most complex

    Returns:
        Name of the selected variant
    """
    table = summary[summary["metric"] == metric].copy()
    if table.empty:
        raise ValueError(f"No cross-validation results for metric: {metric}")

    order = list(variant_order)
    table["complexity"] = [
        order.index(v) if v in order else len(order) for v in table["variant"]
    ]
    table["score"] = -table["mean"] if metric in HIGHER_IS_BETTER else table["mean"]

    best = table.sort_values(["score", "complexity"], kind="mergesort").iloc[0]
    logger.info(f"Selected variant '{best['variant']}' (mean {metric}: {best['mean']:.4f})")
    return str(best["variant"])


def train_final_model(
    train: pd.DataFrame,
    variant: str,
    target: str = TARGET_COLUMN,
    interactions: Sequence[Sequence[str]] = INTERACTION_TERMS
) -> Pipeline:
    """
    Refit a variant's recipe and model on the whole training partition.

    Args:
        train: Training partition
        variant: Recipe variant name
        target: Outcome column
        interactions: Interaction pairs for the richer variants

    Returns:
        Fitted Pipeline
    """
    start_time = datetime.now()
    X, y = split_xy(train, target)

    pipeline = build_model_pipeline(variant, interactions)
    pipeline.fit(X, y)

    duration = (datetime.now() - start_time).total_seconds()
    n_features = len(pipeline.named_steps["recipe"].feature_names_out_)
    logger.info(
        f"Trained final '{variant}' model on {len(train)} rows, "
        f"{n_features} features in {duration:.2f} seconds"
    )
    return pipeline


def coefficient_table(
    pipeline: Pipeline,
    train: pd.DataFrame,
    target: str = TARGET_COLUMN
) -> pd.DataFrame:
    """
    Coefficient estimates with their standard errors.

    The fitted recipe builds the design matrix and statsmodels OLS fits
    it with an intercept, giving the same estimates as the pipeline's
    regressor along with inference statistics.

    Args:
        pipeline: Fitted Pipeline from train_final_model
        train: Training partition the pipeline was fitted on
        target: Outcome column

    Returns:
        DataFrame with term, estimate, std_error, statistic, p_value
    """
    X, y = split_xy(train, target)
    design = pipeline.named_steps["recipe"].transform(X)
    design = sm.add_constant(design, has_constant="add")

    results = sm.OLS(y.to_numpy(), design).fit()

    table = pd.DataFrame({
        "term": results.params.index,
        "estimate": results.params.to_numpy(),
        "std_error": results.bse.to_numpy(),
        "statistic": results.tvalues.to_numpy(),
        "p_value": results.pvalues.to_numpy()
    })
    table["term"] = table["term"].replace({"const": "intercept"})
    return table.reset_index(drop=True)


def save_model(
    pipeline: Pipeline,
    filepath: str,
    variant: str,
    metrics: Optional[Dict[str, Any]] = None
) -> None:
    """
    Save the fitted pipeline to disk.

    Args:
        pipeline: Fitted Pipeline
        filepath: Path to save the model
        variant: Recipe variant name
        metrics: Test metrics to store alongside the model
    """
    state = {
        'pipeline': pipeline,
        'variant': variant,
        'metrics': metrics or {},
        'trained_at': datetime.now().isoformat()
    }

    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(state, filepath)
    logger.info(f"Model saved to {filepath}")


def load_model(filepath: str) -> Dict[str, Any]:
    """
    Load a saved pipeline and its metadata.

    Args:
        filepath: Path to the saved model

    Returns:
        Dictionary with pipeline, variant, metrics and trained_at
    """
    state = joblib.load(filepath)
    logger.info(f"Model loaded from {filepath}")
    return state


def print_cv_results(summary: pd.DataFrame, best_variant: Optional[str] = None) -> None:
    """
    Print the cross-validation comparison table.

    Args:
        summary: Summary table from cross_validate_recipes
        best_variant: Selected variant to highlight
    """
    print("\n" + "=" * 70)
    print("CROSS-VALIDATION RESULTS")
    print("=" * 70)
    print(f"{'Variant':<15} {'Metric':<8} {'Mean':<14} {'Std Err':<12} {'Folds':<6}")
    print("-" * 70)

    for _, row in summary.iterrows():
        marker = " *" if row["variant"] == best_variant else ""
        print(f"{row['variant']:<15} {row['metric']:<8} {row['mean']:<14.4f} "
              f"{row['std_err']:<12.4f} {row['n']:<6}{marker}")

    print("-" * 70)
    if best_variant:
        print(f"Selected variant: {best_variant} (lowest mean RMSE)")
    print("=" * 70 + "\n")
