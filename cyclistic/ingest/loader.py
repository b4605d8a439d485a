import logging
from datetime import datetime
from pathlib import Path

import duckdb

from cyclistic.errors import PipelineError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    "ride_id",
    "rideable_type",
    "started_at",
    "ended_at",
    "start_station_name",
    "end_station_name",
    "start_lat",
    "start_lng",
    "end_lat",
    "end_lng",
    "member_casual",
)

RAW_TABLE = "trips_raw"


class TripLoader:
    """Stacks monthly trip CSVs into a single DuckDB table."""

    def __init__(self, db_conn, table_name=RAW_TABLE):
        self.db = db_conn
        self.table_name = table_name
        self._setup_manifest()

    def _setup_manifest(self):
        self.db.execute("""
            CREATE OR REPLACE TABLE ingest_manifest (
                source_file TEXT, table_name TEXT,
                row_count BIGINT, ingested_at TIMESTAMP
            )
        """)

    def find_files(self, data_dir, pattern):
        data_dir = Path(data_dir)
        if not data_dir.is_dir():
            raise PipelineError(f"Data directory does not exist: {data_dir}")

        files = sorted(p for p in data_dir.glob(pattern) if p.is_file())
        if not files:
            raise PipelineError(f"No files matching '{pattern}' in {data_dir}")
        return files

    def load_directory(self, data_dir, pattern):
        """
        Reads every file matching `pattern` and unions the rows into one table.
        All files must carry the same columns in the same order.
        Returns the total number of loaded rows.
        """
        files = self.find_files(data_dir, pattern)
        logger.info(f"Loading {len(files)} trip files from {data_dir}")

        self.db.execute(f"DROP TABLE IF EXISTS {self.table_name}")
        expected_columns = None
        total = 0

        for path in files:
            select_sql = self._select_csv_sql(path)
            columns = self._read_columns(path, select_sql)

            missing = [c for c in REQUIRED_COLUMNS if c not in columns]
            if missing:
                raise PipelineError(f"{path.name} is missing required columns: {', '.join(missing)}")

            if expected_columns is None:
                expected_columns = columns
                self._execute(path, f"CREATE TABLE {self.table_name} AS {select_sql}")
            elif columns != expected_columns:
                raise PipelineError(
                    f"Schema mismatch in {path.name}: expected {expected_columns}, found {columns}"
                )
            else:
                self._execute(path, f"INSERT INTO {self.table_name} {select_sql}")

            loaded = self._execute(path, f"SELECT count(*) FROM {self.table_name}").fetchone()[0]
            cnt, total = loaded - total, loaded
            self.db.execute(
                "INSERT INTO ingest_manifest VALUES (?, ?, ?, ?)",
                (path.name, self.table_name, cnt, datetime.now()),
            )
            logger.info(f"  → {path.name}: {cnt:,} rows")

        logger.info(f"{self.table_name} is ready with {total:,} rows.")
        return total

    def manifest(self):
        return self.db.execute(
            "SELECT source_file, row_count FROM ingest_manifest ORDER BY source_file"
        ).df()

    def _select_csv_sql(self, path):
        # Everything stays text here; typing happens in the cleaner
        quoted = str(path).replace("'", "''")
        return f"SELECT * FROM read_csv('{quoted}', header=true, all_varchar=true)"

    def _read_columns(self, path, select_sql):
        try:
            rows = self.db.execute(f"DESCRIBE {select_sql}").fetchall()
        except duckdb.Error as e:
            raise PipelineError(f"Could not read {path.name}: {e}") from e
        return [r[0] for r in rows]

    def _execute(self, path, sql):
        try:
            return self.db.execute(sql)
        except duckdb.Error as e:
            raise PipelineError(f"Failed to load {path.name}: {e}") from e
