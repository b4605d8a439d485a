import pandas as pd
import pytest

from cyclistic.utils.db import DatabaseManager
from cyclistic.ingest.loader import TripLoader
from cyclistic.features.clean_trips import TripCleaner

COLUMNS = [
    "ride_id", "rideable_type", "started_at", "ended_at",
    "start_station_name", "start_station_id", "end_station_name", "end_station_id",
    "start_lat", "start_lng", "end_lat", "end_lng", "member_casual",
]


def trip(ride_id, started_at, ended_at, member="member", rideable="classic_bike",
         start=("Alpha", 41.9, -87.6), end=("Beta", 41.8, -87.7)):
    return {
        "ride_id": ride_id,
        "rideable_type": rideable,
        "started_at": started_at,
        "ended_at": ended_at,
        "start_station_name": start[0],
        "start_station_id": None,
        "end_station_name": end[0],
        "end_station_id": None,
        "start_lat": start[1],
        "start_lng": start[2],
        "end_lat": end[1],
        "end_lng": end[2],
        "member_casual": member,
    }


# Five in-bounds trips used by the aggregation and report tests.
#   start stations: Alpha x2, Beta x2, NULL x1 (tie between Alpha and Beta)
#   members: 3 trips (10, 20, 30 min); casual: 2 trips (60 min, one negative)
SAMPLE_TRIPS = [
    trip("r1", "2023-01-02 08:00:00", "2023-01-02 08:10:00",
         start=("Beta", 41.9, -87.6), end=("Alpha", 41.8, -87.7)),
    trip("r2", "2023-01-02 08:30:00", "2023-01-02 08:50:00", rideable="electric_bike"),
    trip("r3", "2023-02-04 17:00:00", "2023-02-04 17:30:00",
         start=("Beta", 41.9, -87.6), end=("Alpha", 41.8, -87.7)),
    trip("r4", "2023-02-04 12:00:00", "2023-02-04 13:00:00", member="casual",
         start=("Alpha", 41.88, -87.63), end=("Alpha", 41.88, -87.63)),
    trip("r5", "2023-02-05 12:00:00", "2023-02-05 11:00:00", member="casual",
         rideable="docked_bike", start=(None, 41.9, -87.6)),
]


@pytest.fixture
def write_trips(tmp_path):
    data_dir = tmp_path / "tripdata"
    data_dir.mkdir()

    def _write(name, rows, columns=COLUMNS):
        path = data_dir / name
        pd.DataFrame(rows, columns=columns).to_csv(path, index=False)
        return path

    _write.data_dir = data_dir
    return _write


@pytest.fixture
def con():
    with DatabaseManager() as conn:
        yield conn


@pytest.fixture
def sample_con(con, write_trips):
    """Connection holding SAMPLE_TRIPS split over two monthly files, cleaned."""
    write_trips("202301-divvy-tripdata.csv", SAMPLE_TRIPS[:2])
    write_trips("202302-divvy-tripdata.csv", SAMPLE_TRIPS[2:])
    TripLoader(con).load_directory(write_trips.data_dir, "*-divvy-tripdata.csv")
    TripCleaner(con).clean()
    return con
