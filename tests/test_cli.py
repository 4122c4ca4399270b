"""
End-to-end tests for the generation entry point.
"""

import json
import pandas as pd
import pytest
import config
from callcentre.cli import build_parser, main, settings_from_args

SMALL_RUN = [
    "--agents", "5",
    "--arrival-rate", "0.5",
    "--service-mean", "4",
    "--day-length", "60",
    "--limit-days", "3",
    "--seed", "5",
]


def test_defaults_come_from_config():
    settings = settings_from_args(build_parser().parse_args([]))

    assert settings.agents == config.AGENTS
    assert settings.base_arrival_rate == config.BASE_ARRIVAL_RATE
    assert settings.day_length == config.DAY_LENGTH
    assert settings.end_of_day == config.END_OF_DAY_POLICY
    assert settings.limit_days is None


def test_main_writes_dataset_and_report(tmp_path, capsys):
    exit_code = main(SMALL_RUN + ["--output-dir", str(tmp_path)])

    assert exit_code == 0
    data = pd.read_csv(tmp_path / config.DATA_SUBDIR / config.DATASET_FILENAME)
    assert list(data.columns) == config.CALL_LOG_COLUMNS
    assert data["date"].nunique() == 3

    with open(tmp_path / config.REPORT_SUBDIR / "report_2021_seed5.json") as f:
        report = json.load(f)
    assert report["volume"]["calls"] == len(data)

    assert (tmp_path / config.PLOT_SUBDIR / "volume_2021_seed5.png").exists()
    assert "SUMMARY" in capsys.readouterr().out


def test_main_is_reproducible(tmp_path):
    main(SMALL_RUN + ["--output-dir", str(tmp_path / "a"), "--no-plots"])
    main(SMALL_RUN + ["--output-dir", str(tmp_path / "b"), "--no-plots"])

    first = (tmp_path / "a" / config.DATA_SUBDIR / config.DATASET_FILENAME).read_bytes()
    second = (tmp_path / "b" / config.DATA_SUBDIR / config.DATASET_FILENAME).read_bytes()
    assert first == second
    assert not (tmp_path / "a" / config.PLOT_SUBDIR).exists()


@pytest.mark.parametrize("bad", [
    ["--agents", "0"],
    ["--arrival-rate", "-1"],
    ["--day-length", "0"],
    ["--workers", "0"],
    ["--end-of-day", "drop"],
    ["--seed", "-1"],
])
def test_configuration_errors_exit_with_usage_error(tmp_path, bad):
    with pytest.raises(SystemExit) as excinfo:
        main(SMALL_RUN + ["--output-dir", str(tmp_path)] + bad)

    assert excinfo.value.code == 2
    assert not (tmp_path / config.DATA_SUBDIR).exists()


def test_output_folders_follow_config(tmp_path):
    main(SMALL_RUN + ["--output-dir", str(tmp_path), "--no-plots"])

    assert sorted(p.name for p in tmp_path.iterdir()) == sorted(
        [config.DATA_SUBDIR, config.REPORT_SUBDIR]
    )
    assert config.DATA_DIR == f"{config.OUTPUT_DIR}/{config.DATA_SUBDIR}"
