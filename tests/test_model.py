"""
Test Suite for Model Module
===========================

Tests for cross-validation, variant selection and the final fit.
"""

import os
import tempfile

import pytest
import numpy as np
import pandas as pd

from bike_demand.model import (
    build_model_pipeline,
    coefficient_table,
    cross_validate_recipes,
    load_model,
    save_model,
    select_best_variant,
    split_xy,
    train_final_model,
)
from bike_demand.preprocessing import make_folds
from bike_demand.recipes import VARIANT_ORDER


@pytest.fixture(scope="module")
def cv_result(split_data):
    train, _ = split_data
    folds = make_folds(train, n_folds=10, seed=123456)
    return cross_validate_recipes(train, folds)


class TestCrossValidation:
    """Tests for cross_validate_recipes."""

    def test_summary_shape(self, cv_result):
        summary = cv_result["summary"]

        assert list(summary.columns) == ["variant", "metric", "mean", "n", "std_err"]
        assert len(summary) == len(VARIANT_ORDER) * 3
        assert set(summary["variant"]) == set(VARIANT_ORDER)
        assert set(summary["metric"]) == {"rmse", "rsq", "mae"}
        assert (summary["n"] == 10).all()

    def test_errors_are_positive(self, cv_result):
        per_fold = cv_result["per_fold"]

        assert len(per_fold) == len(VARIANT_ORDER) * 10
        assert (per_fold["rmse"] > 0).all()
        assert (per_fold["mae"] > 0).all()
        assert (per_fold["rmse"] >= per_fold["mae"]).all()

    def test_summary_mean_matches_folds(self, cv_result):
        summary = cv_result["summary"].set_index(["variant", "metric"])
        per_fold = cv_result["per_fold"]

        for variant in VARIANT_ORDER:
            expected = per_fold.loc[per_fold["variant"] == variant, "rmse"].mean()
            assert summary.loc[(variant, "rmse"), "mean"] == pytest.approx(expected)

    def test_polynomial_variant_is_selected(self, cv_result):
        summary = cv_result["summary"]
        rmse = summary[summary["metric"] == "rmse"].set_index("variant")["mean"]

        assert rmse["polynomial"] < rmse["interactions"]
        assert rmse["polynomial"] < rmse["basic"]
        assert select_best_variant(summary) == "polynomial"

    def test_folds_are_shared_across_variants(self, split_data):
        train, _ = split_data
        folds = make_folds(train, n_folds=5, seed=123456)

        first = cross_validate_recipes(train, folds, variants=["basic"])
        second = cross_validate_recipes(train, folds, variants=["basic"])

        pd.testing.assert_frame_equal(first["per_fold"], second["per_fold"])


class TestSelection:
    """Tests for select_best_variant."""

    @staticmethod
    def _summary(rmse_by_variant):
        return pd.DataFrame([
            {"variant": v, "metric": "rmse", "mean": m, "n": 10, "std_err": 1.0}
            for v, m in rmse_by_variant.items()
        ])

    def test_lowest_error_wins(self):
        summary = self._summary({"basic": 30.0, "interactions": 20.0, "polynomial": 25.0})
        assert select_best_variant(summary) == "interactions"

    def test_tie_prefers_simpler_variant(self):
        summary = self._summary({"polynomial": 20.0, "interactions": 20.0, "basic": 30.0})
        assert select_best_variant(summary) == "interactions"

    def test_higher_rsq_wins(self):
        summary = pd.DataFrame([
            {"variant": "basic", "metric": "rsq", "mean": 0.6, "n": 10, "std_err": 0.01},
            {"variant": "polynomial", "metric": "rsq", "mean": 0.8, "n": 10, "std_err": 0.01},
        ])
        assert select_best_variant(summary, metric="rsq") == "polynomial"

    def test_missing_metric(self):
        summary = self._summary({"basic": 30.0})
        with pytest.raises(ValueError, match="No cross-validation results"):
            select_best_variant(summary, metric="mae")


class TestFinalModel:
    """Tests for the final fit and coefficient table."""

    def test_coefficients_match_pipeline(self, split_data):
        train, _ = split_data
        pipeline = train_final_model(train, "interactions")
        table = coefficient_table(pipeline, train)

        regressor = pipeline.named_steps["regressor"]
        names = list(pipeline.named_steps["recipe"].feature_names_out_)

        assert list(table.columns) == ["term", "estimate", "std_error", "statistic", "p_value"]
        assert table["term"].tolist() == ["intercept"] + names

        estimates = table.set_index("term")["estimate"]
        assert estimates["intercept"] == pytest.approx(regressor.intercept_, rel=1e-6)
        np.testing.assert_allclose(estimates[names].to_numpy(), regressor.coef_, rtol=1e-6, atol=1e-6)

    def test_statistics_are_consistent(self, split_data):
        train, _ = split_data
        table = coefficient_table(train_final_model(train, "basic"), train)

        assert (table["std_error"] > 0).all()
        np.testing.assert_allclose(table["statistic"], table["estimate"] / table["std_error"])
        assert table["p_value"].between(0, 1).all()

    def test_final_model_predicts_test_rows(self, split_data):
        train, test = split_data
        pipeline = train_final_model(train, "polynomial")
        X_test, _ = split_xy(test)

        predictions = pipeline.predict(X_test)
        assert predictions.shape == (len(test),)
        assert np.isfinite(predictions).all()

    def test_unfitted_pipeline_steps(self):
        pipeline = build_model_pipeline("basic")
        assert list(pipeline.named_steps) == ["recipe", "regressor"]

    def test_save_load(self, split_data):
        train, test = split_data
        pipeline = train_final_model(train, "basic")
        X_test, _ = split_xy(test)

        with tempfile.NamedTemporaryFile(suffix='.joblib', delete=False) as f:
            temp_path = f.name

        try:
            save_model(pipeline, temp_path, "basic", {"rmse": 1.0})
            loaded = load_model(temp_path)

            assert loaded["variant"] == "basic"
            assert loaded["metrics"] == {"rmse": 1.0}
            np.testing.assert_allclose(
                loaded["pipeline"].predict(X_test), pipeline.predict(X_test)
            )
        finally:
            os.unlink(temp_path)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
