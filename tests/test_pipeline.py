import os

import pytest

import run_analysis
from cyclistic.errors import PipelineError
from cyclistic.pipeline import run_pipeline

from conftest import SAMPLE_TRIPS, trip

PATTERN = "*-divvy-tripdata.csv"


@pytest.fixture
def data_dir(write_trips):
    out_of_bounds = trip("far", "2023-03-01 09:00:00", "2023-03-01 09:20:00", end=("Far", 41.8, -130.0))
    write_trips("202301-divvy-tripdata.csv", SAMPLE_TRIPS[:2])
    write_trips("202302-divvy-tripdata.csv", SAMPLE_TRIPS[2:])
    write_trips("202303-divvy-tripdata.csv", [out_of_bounds])
    return write_trips.data_dir


def test_run_pipeline_end_to_end(data_dir, tmp_path):
    results = run_pipeline(data_dir, PATTERN, tmp_path / "out", top_n=5)

    assert results['raw_rows'] == 6
    stats = results['cleaning_stats']
    assert (stats.kept_rows, stats.dropped_rows, stats.null_duration_rows) == (5, 1, 1)

    rider_share = results['aggregates']['rider_share']
    assert rider_share['trip_count'].sum() == stats.kept_rows
    assert all(os.path.exists(p) for p in results['charts'].values())
    assert results['summary'].startswith("5 trips analysed.")


def test_run_pipeline_with_file_database(data_dir, tmp_path):
    db_path = str(tmp_path / "cyclistic.duckdb")
    results = run_pipeline(data_dir, PATTERN, tmp_path / "out", db_path=db_path)

    assert results['cleaning_stats'].kept_rows == 5
    assert os.path.exists(db_path)


def test_run_pipeline_propagates_fatal_errors(tmp_path):
    with pytest.raises(PipelineError):
        run_pipeline(tmp_path / "missing", PATTERN, tmp_path / "out")


def test_cli_success(data_dir, tmp_path, capsys):
    code = run_analysis.main([
        "--data-dir", str(data_dir),
        "--output-dir", str(tmp_path / "out"),
        "--quiet",
    ])
    out = capsys.readouterr().out

    assert code == 0
    assert "Trips analysed:            5" in out
    assert "ANALYSIS COMPLETE" in out


def test_cli_reports_failure(tmp_path):
    code = run_analysis.main([
        "--data-dir", str(tmp_path / "missing"),
        "--output-dir", str(tmp_path / "out"),
    ])

    assert code == 1


def test_unwritable_output_dir_fails_before_loading(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("occupied")

    # the data directory is missing too; the output check must trip first
    with pytest.raises(PipelineError, match="Cannot create output directory"):
        run_pipeline(tmp_path / "missing", PATTERN, blocker)


def test_cli_reports_unwritable_output_dir(data_dir, tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("occupied")

    code = run_analysis.main(["--data-dir", str(data_dir), "--output-dir", str(blocker)])

    assert code == 1


def test_cli_reports_unusable_database(data_dir, tmp_path):
    code = run_analysis.main([
        "--data-dir", str(data_dir),
        "--output-dir", str(tmp_path / "out"),
        "--db-path", str(tmp_path / "no" / "such" / "cyclistic.duckdb"),
    ])

    assert code == 1
