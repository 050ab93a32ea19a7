"""
Seoul Bike Demand Analysis
==========================

Exploratory analysis and linear regression modeling of daily bike rentals.

Modules:
    - data_loader: CSV ingestion, schema validation and missing-value summary
    - preprocessing: Cleaning, daily aggregation and train/test/fold splitting
    - eda: Exploratory Data Analysis (summary tables and figures)
    - recipes: Feature engineering recipes for the three model variants
    - model: Cross-validated OLS fitting and variant selection
    - evaluation: Held-out test evaluation and coefficient reporting
"""

__version__ = "1.0.0"
