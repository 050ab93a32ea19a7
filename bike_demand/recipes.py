"""
Feature Recipes Module
======================

Declarative feature engineering for the daily rental models.

A recipe is a scikit-learn transformer. Every parameter it needs
(normalization mean/sd, encoding levels) is learned in ``fit`` and
``transform`` only applies those parameters, so the same fitted recipe
can be applied to the training fold and its validation fold without
leaking information.

Variants:
    - basic: weekday/weekend indicator, normalized numerics, one-hot categoricals
    - interactions: basic + holiday x season, season x temperature, temperature x rainfall
    - polynomial: interactions + squared numeric predictors (before normalization)
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.utils.validation import check_is_fitted

from .preprocessing import DATE_COLUMN, normalize_column_name

logger = logging.getLogger(__name__)

DAY_TYPE_COLUMN = "day_type"
DAY_TYPE_LEVELS = ["weekday", "weekend"]

INTERACTION_TERMS: Tuple[Tuple[str, str], ...] = (
    ("holiday", "season"),
    ("season", "temperature"),
    ("temperature", "rainfall"),
)

RECIPE_VARIANTS = {
    "basic": {"use_interactions": False, "squared": False},
    "interactions": {"use_interactions": True, "squared": False},
    "polynomial": {"use_interactions": True, "squared": True},
}

# Simplest first; used to break ties between variants
VARIANT_ORDER = list(RECIPE_VARIANTS)


class FeatureRecipe(BaseEstimator, TransformerMixin):
    """
    Feature engineering steps for the daily rental table.

    Steps, in order:
        1. Derive ``day_type`` (weekday/weekend) from the date
        2. Drop the raw date column
        3. Optionally add ``<col>_sq`` for every numeric predictor
        4. Normalize numeric predictors to zero mean and unit variance
        5. One-hot encode categorical predictors (first level is the reference)
        6. Optionally add pairwise interaction products
    """

    def __init__(
        self,
        interactions: Optional[Sequence[Tuple[str, str]]] = None,
        squared: bool = False,
        date_column: str = DATE_COLUMN
    ):
        """
        Initialize the recipe.

        Args:
            interactions: Pairs of column names to multiply. A categorical
                name expands to all of its dummy columns.
            squared: Whether to add squared numeric predictors
            date_column: Name of the date column
        """
        self.interactions = interactions
        self.squared = squared
        self.date_column = date_column

    def _derive(self, X: pd.DataFrame) -> pd.DataFrame:
        """Steps 1-3: row-wise derivations that need no fitted state."""
        frame = X.copy()

        weekday = pd.to_datetime(frame[self.date_column]).dt.dayofweek.to_numpy()
        frame[DAY_TYPE_COLUMN] = pd.Categorical(
            np.where(weekday >= 5, "weekend", "weekday"),
            categories=DAY_TYPE_LEVELS
        )
        frame = frame.drop(columns=self.date_column)

        if self.squared:
            numeric = frame.select_dtypes(include=[np.number]).columns.tolist()
            squares = {f"{col}_sq": frame[col] ** 2 for col in numeric}
            frame = frame.assign(**squares)

        return frame

    @staticmethod
    def _levels(series: pd.Series) -> List[str]:
        if isinstance(series.dtype, pd.CategoricalDtype):
            return [str(level) for level in series.cat.categories]
        return sorted(str(level) for level in series.dropna().unique())

    def _expand(self, name: str) -> List[str]:
        if name in self.dummy_columns_:
            return self.dummy_columns_[name]
        if name in self.numeric_columns_:
            return [name]
        raise ValueError(f"Unknown interaction term: {name}")

    def fit(self, X: pd.DataFrame, y=None) -> 'FeatureRecipe':
        """
        Learn normalization statistics and encoding levels.

        Args:
            X: Daily predictors (without the outcome)
            y: Ignored

        Returns:
            Self for method chaining
        """
        frame = self._derive(X)

        self.numeric_columns_ = frame.select_dtypes(include=[np.number]).columns.tolist()
        self.categorical_columns_ = [
            col for col in frame.columns if col not in self.numeric_columns_
        ]

        self.scaler_ = StandardScaler().fit(frame[self.numeric_columns_])

        categories = [self._levels(frame[col]) for col in self.categorical_columns_]
        self.encoder_ = OneHotEncoder(
            categories=categories,
            drop="first",
            sparse_output=False
        ).fit(frame[self.categorical_columns_].astype(str))

        self.dummy_columns_: Dict[str, List[str]] = {}
        for col, levels, drop_idx in zip(
            self.categorical_columns_, self.encoder_.categories_, self.encoder_.drop_idx_
        ):
            self.dummy_columns_[col] = [
                normalize_column_name(f"{col}_{level}")
                for idx, level in enumerate(levels)
                if idx != drop_idx
            ]

        self.interaction_columns_: List[Tuple[str, str, str]] = []
        for left_name, right_name in self.interactions or ():
            for left in self._expand(left_name):
                for right in self._expand(right_name):
                    self.interaction_columns_.append((f"{left}_x_{right}", left, right))

        dummies = [name for col in self.categorical_columns_ for name in self.dummy_columns_[col]]
        self.feature_names_out_ = (
            self.numeric_columns_
            + dummies
            + [name for name, _, _ in self.interaction_columns_]
        )

        logger.debug(
            f"Fitted recipe with {len(self.feature_names_out_)} features "
            f"(squared={self.squared}, interactions={len(self.interaction_columns_)})"
        )
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Apply the fitted steps to new data.

        Args:
            X: Daily predictors with the same columns seen in fit

        Returns:
            Design matrix as a DataFrame
        """
        check_is_fitted(self, "scaler_")

        frame = self._derive(X)

        numeric = pd.DataFrame(
            self.scaler_.transform(frame[self.numeric_columns_]),
            columns=self.numeric_columns_,
            index=frame.index
        )
        dummies = pd.DataFrame(
            self.encoder_.transform(frame[self.categorical_columns_].astype(str)),
            columns=[name for col in self.categorical_columns_ for name in self.dummy_columns_[col]],
            index=frame.index
        )
        design = pd.concat([numeric, dummies], axis=1)

        if self.interaction_columns_:
            products = pd.DataFrame(
                {name: design[left] * design[right] for name, left, right in self.interaction_columns_},
                index=frame.index
            )
            design = pd.concat([design, products], axis=1)

        return design[self.feature_names_out_]

    def get_feature_names_out(self, input_features=None) -> np.ndarray:
        check_is_fitted(self, "feature_names_out_")
        return np.asarray(self.feature_names_out_, dtype=object)


def build_recipe(
    variant: str,
    interactions: Sequence[Sequence[str]] = INTERACTION_TERMS
) -> FeatureRecipe:
    """
    Create an unfitted recipe for a named variant.

    Args:
        variant: One of 'basic', 'interactions', 'polynomial'
        interactions: Interaction pairs used by the richer variants

    Returns:
        FeatureRecipe instance
    """
    if variant not in RECIPE_VARIANTS:
        raise ValueError(
            f"Unknown recipe variant: {variant}. Choose from: {', '.join(VARIANT_ORDER)}"
        )

    settings = RECIPE_VARIANTS[variant]
    pairs = tuple(tuple(pair) for pair in interactions) if settings["use_interactions"] else None
    return FeatureRecipe(interactions=pairs, squared=settings["squared"])
