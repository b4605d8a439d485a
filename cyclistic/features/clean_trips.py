"""
The cleaning layer.
Types the raw text columns, drops trips that end outside the continental
bounds and derives ride length, the same-station flag and calendar fields.
"""
import logging
from dataclasses import dataclass, asdict

import duckdb

from cyclistic.errors import PipelineError

logger = logging.getLogger(__name__)

CLEAN_TABLE = "trips_clean"

# Continental bounding box for end coordinates (degrees)
LAT_BOUNDS = (25.0, 50.0)
LNG_BOUNDS = (-125.0, -70.0)


@dataclass(frozen=True)
class CleaningStats:
    raw_rows: int
    kept_rows: int
    dropped_rows: int
    null_duration_rows: int
    same_station_rows: int

    def to_dict(self):
        return asdict(self)


class TripCleaner:
    def __init__(self, db_conn):
        self.db = db_conn

    def clean(self, source="trips_raw", target=CLEAN_TABLE):
        """
        Creates `target` from `source`. The source table is left untouched and
        `target` is not modified again by anything downstream.
        """
        logger.info(f"Cleaning {source} into {target}...")
        query = f"""
        CREATE OR REPLACE TABLE {target} AS
        WITH typed AS (
            SELECT * REPLACE (
                CAST(started_at AS TIMESTAMP) AS started_at,
                CAST(ended_at AS TIMESTAMP) AS ended_at,
                CAST(start_lat AS DOUBLE) AS start_lat,
                CAST(start_lng AS DOUBLE) AS start_lng,
                CAST(end_lat AS DOUBLE) AS end_lat,
                CAST(end_lng AS DOUBLE) AS end_lng
            )
            FROM {source}
        )
        SELECT
            *,
            CASE
                WHEN ended_at < started_at THEN NULL
                ELSE date_diff('millisecond', started_at, ended_at) / 60000.0
            END AS ride_length_min,
            -- exact equality on purpose, no distance tolerance
            COALESCE(start_lat = end_lat AND start_lng = end_lng, FALSE) AS same_station,
            strftime(started_at, '%a') AS day_of_week,
            strftime(started_at, '%b') AS month,
            hour(started_at) AS hour_of_day
        FROM typed
        WHERE end_lat BETWEEN {LAT_BOUNDS[0]} AND {LAT_BOUNDS[1]}
          AND end_lng BETWEEN {LNG_BOUNDS[0]} AND {LNG_BOUNDS[1]}
        """
        try:
            self.db.execute(query)
            raw_rows = self.db.execute(f"SELECT COUNT(*) FROM {source}").fetchone()[0]
            kept_rows, null_durations, same_station = self.db.execute(f"""
                SELECT
                    COUNT(*),
                    COUNT(*) FILTER (WHERE ride_length_min IS NULL),
                    COUNT(*) FILTER (WHERE same_station)
                FROM {target}
            """).fetchone()
        except duckdb.Error as e:
            raise PipelineError(f"Cleaning {source} failed: {e}") from e

        stats = CleaningStats(
            raw_rows=raw_rows,
            kept_rows=kept_rows,
            dropped_rows=raw_rows - kept_rows,
            null_duration_rows=null_durations,
            same_station_rows=same_station,
        )
        logger.info(
            f"{target} created with {kept_rows:,} rows "
            f"({stats.dropped_rows:,} dropped outside bounds, "
            f"{null_durations:,} with null ride length)"
        )
        return stats
