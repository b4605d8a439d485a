"""
The aggregation layer.
Read-only grouped counts, shares and ride-length means over the cleaned trips.
Every percentage uses the full cleaned row count as its denominator.
"""
import logging

import duckdb

from cyclistic.errors import PipelineError

logger = logging.getLogger(__name__)

GROUPABLE_COLUMNS = frozenset({
    "member_casual",
    "rideable_type",
    "start_station_name",
    "end_station_name",
    "day_of_week",
    "month",
    "hour_of_day",
    "same_station",
})


class TripAggregator:
    def __init__(self, db_conn, table="trips_clean"):
        self.con = db_conn
        self.table = table

    def q_to_df(self, sql):
        try:
            return self.con.execute(sql).df()
        except duckdb.Error as e:
            raise PipelineError(f"Aggregation query failed: {e}") from e

    def total_rows(self):
        return int(self.q_to_df(f"SELECT COUNT(*) AS n FROM {self.table}")["n"].iloc[0])

    def _validate_keys(self, keys):
        if isinstance(keys, str):
            keys = [keys]
        keys = list(keys)
        if not keys:
            raise PipelineError("At least one grouping key is required")
        unknown = [k for k in keys if k not in GROUPABLE_COLUMNS]
        if unknown:
            raise PipelineError(f"Cannot group by unknown column(s): {', '.join(unknown)}")
        return keys

    def aggregate(self, keys, with_duration=True):
        """
        One row per group of `keys` with trip_count, pct_of_total and
        (optionally) avg_ride_length_min. NULL key values form their own
        group so counts always add up to the cleaned total.
        """
        keys = self._validate_keys(keys)
        cols = ", ".join(keys)
        duration = ", AVG(ride_length_min) AS avg_ride_length_min" if with_duration else ""

        df = self.q_to_df(f"""
            SELECT
                {cols},
                COUNT(*) AS trip_count,
                ROUND(100.0 * COUNT(*) / (SELECT COUNT(*) FROM {self.table}), 1) AS pct_of_total
                {duration}
            FROM {self.table}
            GROUP BY {cols}
            ORDER BY trip_count DESC, {cols}
        """)
        logger.debug(f"Aggregated by {keys}: {len(df)} groups")
        return df

    def most_popular(self, key, n=10, by=None):
        """
        Top `n` values of `key` by trip count, ranked within each `by` group
        when given. NULL values of `key` are not ranked.
        """
        (key,) = self._validate_keys([key])
        partition = ""
        by_col = ""
        if by is not None:
            (by,) = self._validate_keys([by])
            partition = f"PARTITION BY {by}"
            by_col = f"{by}, "

        return self.q_to_df(f"""
            WITH counts AS (
                SELECT {by_col}{key}, COUNT(*) AS trip_count
                FROM {self.table}
                WHERE {key} IS NOT NULL
                GROUP BY {by_col}{key}
            ),
            ranked AS (
                SELECT
                    *,
                    ROW_NUMBER() OVER ({partition} ORDER BY trip_count DESC, {key}) AS popularity_rank
                FROM counts
            )
            SELECT
                {by_col}popularity_rank, {key}, trip_count,
                ROUND(100.0 * trip_count / (SELECT COUNT(*) FROM {self.table}), 1) AS pct_of_total
            FROM ranked
            WHERE popularity_rank <= {int(n)}
            ORDER BY {by_col}popularity_rank
        """)

    def duration_summary(self, by="member_casual"):
        """Mean, median, min and max ride length per group, nulls ignored."""
        (by,) = self._validate_keys([by])
        return self.q_to_df(f"""
            SELECT
                {by},
                COUNT(ride_length_min) AS rides_with_length,
                AVG(ride_length_min) AS mean_ride_length_min,
                MEDIAN(ride_length_min) AS median_ride_length_min,
                MIN(ride_length_min) AS min_ride_length_min,
                MAX(ride_length_min) AS max_ride_length_min
            FROM {self.table}
            GROUP BY {by}
            ORDER BY {by}
        """)
