"""
Test Suite for Feature Recipes
==============================

Tests for the FeatureRecipe transformer and the three variants.
"""

import pytest
import numpy as np
import pandas as pd
from sklearn.exceptions import NotFittedError

from bike_demand.model import split_xy
from bike_demand.recipes import FeatureRecipe, build_recipe, VARIANT_ORDER

NUMERIC_PREDICTORS = [
    "rainfall", "snowfall", "temperature", "humidity", "wind_speed",
    "visibility", "dew_point_temperature", "solar_radiation"
]


@pytest.fixture
def train_test_x(split_data):
    train, test = split_data
    X_train, _ = split_xy(train)
    X_test, _ = split_xy(test)
    return X_train, X_test


class TestFeatureRecipe:
    """Tests for the recipe steps."""

    def test_basic_feature_names(self, train_test_x):
        X_train, _ = train_test_x
        recipe = build_recipe("basic").fit(X_train)

        names = list(recipe.get_feature_names_out())
        assert sorted(recipe.numeric_columns_) == sorted(NUMERIC_PREDICTORS)
        assert "date" not in names
        assert "season_spring" in names
        assert "season_autumn" not in names  # reference level
        assert "holiday_no_holiday" in names
        assert "day_type_weekend" in names
        assert not any("_x_" in name for name in names)
        assert not any(name.endswith("_sq") for name in names)

    def test_interaction_feature_names(self, train_test_x):
        X_train, _ = train_test_x
        recipe = build_recipe("interactions").fit(X_train)

        interactions = [name for name in recipe.feature_names_out_ if "_x_" in name]
        assert sorted(interactions) == sorted([
            "holiday_no_holiday_x_season_spring",
            "holiday_no_holiday_x_season_summer",
            "holiday_no_holiday_x_season_winter",
            "season_spring_x_temperature",
            "season_summer_x_temperature",
            "season_winter_x_temperature",
            "temperature_x_rainfall",
        ])

    def test_polynomial_adds_squares(self, train_test_x):
        X_train, _ = train_test_x
        recipe = build_recipe("polynomial").fit(X_train)

        squares = [name for name in recipe.feature_names_out_ if name.endswith("_sq")]
        assert sorted(squares) == sorted(f"{col}_sq" for col in NUMERIC_PREDICTORS)
        assert "temperature_x_rainfall" in recipe.feature_names_out_

    def test_squares_computed_before_normalization(self, train_test_x):
        X_train, _ = train_test_x
        recipe = build_recipe("polynomial").fit(X_train)

        idx = recipe.numeric_columns_.index("temperature_sq")
        assert recipe.scaler_.mean_[idx] == pytest.approx((X_train["temperature"] ** 2).mean())

    def test_numeric_columns_are_normalized(self, train_test_x):
        X_train, _ = train_test_x
        design = build_recipe("basic").fit_transform(X_train)

        np.testing.assert_allclose(design[NUMERIC_PREDICTORS].mean(), 0, atol=1e-8)
        np.testing.assert_allclose(design[NUMERIC_PREDICTORS].std(ddof=0), 1, atol=1e-8)

    def test_interaction_is_product_of_columns(self, train_test_x):
        X_train, _ = train_test_x
        design = build_recipe("interactions").fit_transform(X_train)

        np.testing.assert_allclose(
            design["temperature_x_rainfall"],
            design["temperature"] * design["rainfall"]
        )
        np.testing.assert_allclose(
            design["season_summer_x_temperature"],
            design["season_summer"] * design["temperature"]
        )

    def test_day_type_from_weekday(self):
        X = pd.DataFrame({
            "date": pd.to_datetime(["2018-06-01", "2018-06-02", "2018-06-03", "2018-06-04"]),
            "temperature": [20.0, 21.0, 22.0, 23.0],
            "holiday": pd.Categorical(["No Holiday"] * 4, categories=["Holiday", "No Holiday"]),
        })
        design = FeatureRecipe().fit_transform(X)

        # Friday, Saturday, Sunday, Monday
        assert design["day_type_weekend"].tolist() == [0.0, 1.0, 1.0, 0.0]
        assert design["holiday_no_holiday"].tolist() == [1.0, 1.0, 1.0, 1.0]

    def test_transform_before_fit(self, train_test_x):
        X_train, _ = train_test_x

        with pytest.raises(NotFittedError):
            build_recipe("basic").transform(X_train)

    def test_unknown_variant(self):
        with pytest.raises(ValueError, match="Unknown recipe variant"):
            build_recipe("cubic")

    def test_unknown_interaction_term(self, train_test_x):
        X_train, _ = train_test_x

        with pytest.raises(ValueError, match="Unknown interaction term"):
            FeatureRecipe(interactions=(("season", "pressure"),)).fit(X_train)


class TestLeakagePrevention:
    """Recipe parameters come from training data only."""

    @pytest.mark.parametrize("variant", VARIANT_ORDER)
    def test_parameters_come_from_training_data(self, train_test_x, variant):
        X_train, _ = train_test_x
        recipe = build_recipe(variant).fit(X_train)

        expected = X_train[NUMERIC_PREDICTORS].mean().to_numpy()
        idx = [recipe.numeric_columns_.index(col) for col in NUMERIC_PREDICTORS]
        np.testing.assert_allclose(recipe.scaler_.mean_[idx], expected)

    @pytest.mark.parametrize("variant", VARIANT_ORDER)
    def test_transform_does_not_refit(self, train_test_x, variant):
        X_train, X_test = train_test_x
        recipe = build_recipe(variant).fit(X_train)

        mean_before = recipe.scaler_.mean_.copy()
        scale_before = recipe.scaler_.scale_.copy()

        first = recipe.transform(X_test)
        second = recipe.transform(X_test)

        np.testing.assert_array_equal(recipe.scaler_.mean_, mean_before)
        np.testing.assert_array_equal(recipe.scaler_.scale_, scale_before)
        pd.testing.assert_frame_equal(first, second)

    @pytest.mark.parametrize("variant", VARIANT_ORDER)
    def test_test_rows_use_training_statistics(self, train_test_x, variant):
        X_train, X_test = train_test_x
        recipe = build_recipe(variant).fit(X_train)
        design = recipe.transform(X_test)

        expected = (X_test["temperature"] - X_train["temperature"].mean()) / X_train["temperature"].std(ddof=0)
        np.testing.assert_allclose(design["temperature"].to_numpy(), expected.to_numpy())

    def test_single_test_row_transforms_alone(self, train_test_x):
        X_train, X_test = train_test_x
        recipe = build_recipe("polynomial").fit(X_train)

        full = recipe.transform(X_test)
        single = recipe.transform(X_test.iloc[[3]])

        pd.testing.assert_frame_equal(single, full.iloc[[3]])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
