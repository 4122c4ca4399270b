"""
Tests for metrics and reporting.
"""

import json
import numpy as np
import pandas as pd
import pytest
from callcentre.calendar_driver import generate_year
from callcentre.metrics import (
    DatasetReport,
    daily_summary,
    max_concurrent_in_service,
    service_level,
    summarize_day,
)


def test_service_level():
    assert service_level([0.0, 0.5, 2.0], threshold=1.0) == pytest.approx(2 / 3)
    assert service_level([0.0, np.nan, 2.0], threshold=1.0) == pytest.approx(0.5)
    assert service_level([1.0], threshold=1.0) == 1.0


def test_service_level_of_nothing_is_nan():
    assert np.isnan(service_level([], threshold=1.0))
    assert np.isnan(service_level([np.nan], threshold=1.0))


def test_max_concurrent_hand_off_at_same_instant():
    # Each call ends exactly when the next starts
    assert max_concurrent_in_service([0.0, 1.0, 2.0], [1.0, 2.0, 3.0]) == 1
    assert max_concurrent_in_service([0.0, 0.0, 0.0], [5.0, 5.0, 5.0]) == 3


def test_max_concurrent_handles_unstarted_and_unfinished():
    assert max_concurrent_in_service([], []) == 0
    assert max_concurrent_in_service([0.0, np.nan], [1.0, np.nan]) == 1
    assert max_concurrent_in_service([0.0, 5.0], [np.nan, 6.0]) == 2


def test_summarize_day():
    frame = pd.DataFrame({
        "arrival_time": [0.0, 1.0, 2.0],
        "start_time": [0.0, 1.0, 5.0],
        "end_time": [4.0, 5.0, 9.0],
        "finished": [True, True, True],
        "waiting_time": [0.0, 0.0, 3.0],
    })
    summary = summarize_day(frame, agents=2, day_length=10.0, threshold=1.0)

    assert summary["calls"] == 3
    assert summary["answered"] == 3
    assert summary["mean_wait"] == pytest.approx(1.0)
    assert summary["max_wait"] == pytest.approx(3.0)
    assert summary["service_level"] == pytest.approx(2 / 3)
    assert summary["utilization"] == pytest.approx(12.0 / 20.0)
    assert summary["max_concurrent"] == 2


def test_utilization_only_counts_opening_hours():
    frame = pd.DataFrame({
        "start_time": [8.0],
        "end_time": [14.0],
        "finished": [True],
        "waiting_time": [0.0],
    })
    summary = summarize_day(frame, agents=1, day_length=10.0)
    assert summary["utilization"] == pytest.approx(0.2)


def test_daily_summary(small_settings):
    result = generate_year(small_settings)
    summary = daily_summary(result.table, agents=small_settings.agents,
                            day_length=small_settings.day_length)

    assert len(summary) == 5
    assert summary["calls"].sum() == len(result.table)
    assert (summary["max_concurrent"] <= small_settings.agents).all()
    assert summary["service_level"].between(0, 1).all()


def test_daily_summary_of_empty_table():
    summary = daily_summary(pd.DataFrame(columns=["date", "replication"]))
    assert summary.empty
    assert "service_level" in summary.columns


def test_report_and_plots(tmp_path, small_settings):
    result = generate_year(small_settings)
    report_builder = DatasetReport(
        result,
        output_dir=str(tmp_path / "reports"),
        plot_dir=str(tmp_path / "plots"),
        run_id="test",
    )
    report = report_builder.generate_report()

    assert report["volume"]["calls"] == len(result.table)
    assert report["volume"]["days"] == 5
    assert 0 <= report["service_level"]["overall"] <= 1
    assert report["service_level"]["days_measured"] == 5
    assert report["parameter_recovery"]["service_mean_error_pct"] >= 0

    path = report_builder.save_report_json(report)
    with open(path) as f:
        saved = json.load(f)
    assert saved["run_id"] == "test"
    assert saved["settings"]["agents"] == small_settings.agents

    volume_plot = report_builder.plot_daily_volume()
    level_plot = report_builder.plot_service_level()
    assert (tmp_path / "plots" / "volume_test.png").exists()
    assert volume_plot.endswith("volume_test.png")
    assert level_plot.endswith("service_level_test.png")


def test_parameter_recovery(tmp_path, small_settings):
    result = generate_year(small_settings)
    recovery = DatasetReport(result, output_dir=str(tmp_path)).compute_parameter_recovery()

    assert len(recovery) == 5
    np.testing.assert_allclose(recovery["arrival_rate"], result.rates["arrival_rate"])
    assert (recovery["est_lambda"] > 0).all()
    assert (recovery["est_service_mean"] > 0).all()


def test_report_of_empty_run(tmp_path, small_settings):
    small_settings.limit_days = 0
    report_builder = DatasetReport(
        generate_year(small_settings),
        output_dir=str(tmp_path / "reports"),
        plot_dir=str(tmp_path / "plots"),
        run_id="empty",
    )
    report = report_builder.generate_report()

    assert report["volume"]["calls"] == 0
    assert np.isnan(report["service_level"]["overall"])
    assert report_builder.plot_daily_volume() == ""
    assert report_builder.plot_service_level() == ""

    with open(report_builder.save_report_json(report)) as f:
        saved = json.load(f)
    assert saved["service_level"]["overall"] is None
