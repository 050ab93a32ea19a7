#!/usr/bin/env python3
"""
Seoul Bike Demand - Main Pipeline
=================================

Orchestrates the daily bike rental analysis.

Phases:
    1. EDA - Cleaning, daily aggregation and exploratory analysis
    2. CV - Cross-validated comparison of three OLS recipe variants
    3. Evaluate - Refit the best variant and evaluate on the test split

Usage:
    # Run complete pipeline
    python main.py --data data/raw/SeoulBikeData.csv

    # Run specific phase
    python main.py --data data/raw/SeoulBikeData.csv --phase eda

    # Run with custom config
    python main.py --data data/raw/SeoulBikeData.csv --config config/config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from bike_demand.data_loader import load_config, load_data, validate_data, print_data_summary
from bike_demand.eda import generate_eda_report, print_correlation_insights, print_group_summary
from bike_demand.preprocessing import preprocess_pipeline, print_preprocessing_summary, TARGET_COLUMN
from bike_demand.recipes import INTERACTION_TERMS
from bike_demand.model import (
    cross_validate_recipes, select_best_variant, train_final_model,
    save_model, print_cv_results
)
from bike_demand.evaluation import evaluate_model, print_evaluation_report


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        ]
    )


def run_preprocessing(raw: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Clean, aggregate and split the raw hourly table.

    Args:
        raw: Raw hourly data
        config: Configuration dictionary

    Returns:
        Preprocessing result dictionary
    """
    print("\n" + "=" * 70)
    print("DATA PREPROCESSING")
    print("=" * 70)

    result = preprocess_pipeline(raw, config)
    print_preprocessing_summary(result)

    return result


def run_eda(daily: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 1: Exploratory Data Analysis on the daily table.

    Args:
        daily: Aggregated daily data
        config: Configuration dictionary

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 1: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')
    target = config.get('model', {}).get('target', TARGET_COLUMN)

    report = generate_eda_report(daily, target=target, output_dir=output_dir, show_plots=False)

    print_group_summary(report["group_summary"])
    corr_df = pd.DataFrame(report["correlation_matrix"])
    print_correlation_insights(corr_df, target=target)

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_cross_validation(prep_result: Dict[str, Any], config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 2: Cross-validated comparison of the recipe variants.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Cross-validation result dictionary with the selected variant
    """
    print("\n" + "=" * 70)
    print("PHASE 2: CROSS-VALIDATION")
    print("=" * 70)

    model_config = config.get('model', {})
    target = model_config.get('target', TARGET_COLUMN)

    cv_result = cross_validate_recipes(
        prep_result['train'],
        prep_result['folds'],
        target=target,
        interactions=model_config.get('interactions', INTERACTION_TERMS),
        n_jobs=model_config.get('n_jobs', 1)
    )
    best_variant = select_best_variant(
        cv_result['summary'],
        metric=model_config.get('selection_metric', 'rmse')
    )
    cv_result['best_variant'] = best_variant

    metrics_dir = Path(config.get('output', {}).get('reports_path', 'reports/')) / "metrics"
    metrics_dir.mkdir(parents=True, exist_ok=True)
    cv_result['summary'].to_csv(metrics_dir / "cv_summary.csv", index=False)
    cv_result['per_fold'].to_csv(metrics_dir / "cv_per_fold.csv", index=False)

    print_cv_results(cv_result['summary'], best_variant)

    return cv_result


def run_evaluation(
    prep_result: Dict[str, Any],
    variant: str,
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 3: Refit the chosen variant and evaluate on the test split.

    Args:
        prep_result: Preprocessing result dictionary
        variant: Selected recipe variant
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 3: FINAL EVALUATION")
    print("=" * 70)

    model_config = config.get('model', {})
    output_config = config.get('output', {})
    target = model_config.get('target', TARGET_COLUMN)

    pipeline = train_final_model(
        prep_result['train'],
        variant,
        target=target,
        interactions=model_config.get('interactions', INTERACTION_TERMS)
    )

    result = evaluate_model(
        pipeline,
        prep_result['train'],
        prep_result['test'],
        variant,
        target=target,
        output_dir=output_config.get('reports_path', 'reports/'),
        show_plots=False
    )

    model_path = output_config.get('model_path')
    if model_path:
        save_model(pipeline, model_path, variant, result['metrics'])

    print_evaluation_report(result)

    return result


def run_full_pipeline(
    data_path: str,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute the complete pipeline.

    Args:
        data_path: Path to input CSV file
        config_path: Path to configuration file
        log_level: Overrides the configured logging level

    Returns:
        Dictionary containing all phase results
    """
    print("\n" + "=" * 70)
    print("SEOUL BIKE DEMAND PIPELINE")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    print("\n📊 Loading data...")
    raw = load_data(data_path, encoding=config.get('data', {}).get('encoding', 'latin-1'))
    print_data_summary(raw)

    is_valid, validation_report = validate_data(raw, strict=False)
    if not is_valid:
        print("⚠️  Data validation warnings detected. Proceeding anyway...")

    results = {
        'config': config,
        'data_shape': raw.shape
    }

    results['preprocessing'] = run_preprocessing(raw, config)
    results['eda'] = run_eda(results['preprocessing']['daily'], config)
    results['cv'] = run_cross_validation(results['preprocessing'], config)
    results['evaluation'] = run_evaluation(
        results['preprocessing'], results['cv']['best_variant'], config
    )

    metrics = results['evaluation']['metrics']
    print("\n" + "=" * 70)
    print("PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  • Input data: {raw.shape[0]} rows × {raw.shape[1]} columns")
    print(f"  • Daily rows: {len(results['preprocessing']['daily'])}")
    print(f"  • Selected variant: {results['cv']['best_variant']}")
    print(f"  • Test RMSE: {metrics['rmse']:.2f}")
    print(f"  • Test R²: {metrics['rsq']:.4f}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    data_path: str,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute a single phase of the pipeline.

    Args:
        phase: Phase to run ('eda', 'cv', 'evaluate')
        data_path: Path to input CSV file
        config_path: Path to configuration file
        log_level: Overrides the configured logging level

    Returns:
        Phase result dictionary
    """
    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    raw = load_data(data_path, encoding=config.get('data', {}).get('encoding', 'latin-1'))
    print_data_summary(raw)

    is_valid, _ = validate_data(raw, strict=False)
    if not is_valid:
        print("⚠️  Data validation warnings detected. Proceeding anyway...")

    prep_result = run_preprocessing(raw, config)

    if phase == 'eda':
        return run_eda(prep_result['daily'], config)

    elif phase == 'cv':
        return run_cross_validation(prep_result, config)

    elif phase == 'evaluate':
        cv_result = run_cross_validation(prep_result, config)
        return run_evaluation(prep_result, cv_result['best_variant'], config)

    else:
        raise ValueError(f"Unknown phase: {phase}. Choose from: eda, cv, evaluate")


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Daily bike rental analysis and linear regression modeling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --data data/raw/SeoulBikeData.csv
  python main.py --data data/raw/SeoulBikeData.csv --phase eda
  python main.py --data data/raw/SeoulBikeData.csv --config config/custom.yaml
        """
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        required=True,
        help='Path to the raw hourly CSV file'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['eda', 'cv', 'evaluate', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args()

    if not Path(args.data).exists():
        print(f"Error: Data file not found: {args.data}")
        print("\nPlease place the raw hourly CSV file in the specified location.")
        sys.exit(1)

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)

    log_level = "DEBUG" if args.verbose else None

    try:
        if args.phase == 'all':
            run_full_pipeline(args.data, args.config, log_level)
        else:
            run_single_phase(args.phase, args.data, args.config, log_level)

        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
