"""
Test Suite for EDA Module
=========================
"""

import pytest
import pandas as pd

from bike_demand.eda import generate_eda_report, summarize_by_group


class TestGroupSummary:
    """Tests for summarize_by_group."""

    def test_counts_cover_all_days(self, daily_data):
        summary = summarize_by_group(daily_data)

        assert summary["days"].sum() == len(daily_data)
        assert set(summary["season"]) == {"Autumn", "Spring", "Summer", "Winter"}

    def test_group_mean(self, daily_data):
        summary = summarize_by_group(daily_data, group_columns=["season"])
        winter = daily_data.loc[daily_data["season"] == "Winter", "rented_bike_count"]

        row = summary.set_index("season").loc["Winter"]
        assert row["mean"] == pytest.approx(winter.mean())
        assert row["max"] == winter.max()


class TestEdaReport:
    """Tests for generate_eda_report."""

    def test_report_figures(self, daily_data, tmp_path):
        report = generate_eda_report(daily_data, output_dir=str(tmp_path))

        assert len(report["figures"]) == 5
        for name in report["figures"]:
            assert (tmp_path / name).exists()

    def test_report_keys(self, daily_data, tmp_path):
        report = generate_eda_report(daily_data, output_dir=str(tmp_path))

        assert set(report) == {
            "data_shape", "columns", "figures", "group_summary", "correlation_matrix"
        }
        assert report["data_shape"] == daily_data.shape

    def test_correlation_matrix(self, daily_data, tmp_path):
        report = generate_eda_report(daily_data, output_dir=str(tmp_path))
        corr = pd.DataFrame(report["correlation_matrix"])

        assert "rented_bike_count" in corr.columns
        assert "season" not in corr.columns
        assert corr.loc["temperature", "temperature"] == pytest.approx(1.0)
        assert corr.loc["temperature", "dew_point_temperature"] > 0.9


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
