"""
One full run: load → clean → aggregate → report.
Any failure surfaces as PipelineError and ends the run.
"""
import logging

from cyclistic.utils.db import DatabaseManager
from cyclistic.ingest.loader import TripLoader
from cyclistic.features.clean_trips import TripCleaner
from cyclistic.features.aggregate import TripAggregator
from cyclistic.exploration.trip_analysis import TripReport

logger = logging.getLogger(__name__)


def build_aggregates(aggregator, top_n=10):
    """The member-vs-casual comparison tables the report is built from."""
    return {
        'rider_share': aggregator.aggregate(['member_casual']),
        'vehicle_by_rider': aggregator.aggregate(['member_casual', 'rideable_type']),
        'weekday_by_rider': aggregator.aggregate(['member_casual', 'day_of_week']),
        'month_by_rider': aggregator.aggregate(['member_casual', 'month']),
        'hour_by_rider': aggregator.aggregate(['member_casual', 'hour_of_day'], with_duration=False),
        'round_trips_by_rider': aggregator.aggregate(['member_casual', 'same_station']),
        'top_start_stations': aggregator.most_popular('start_station_name', n=top_n, by='member_casual'),
        'top_end_stations': aggregator.most_popular('end_station_name', n=top_n, by='member_casual'),
        'duration_summary': aggregator.duration_summary('member_casual'),
    }


def run_pipeline(data_dir, pattern, output_dir, db_path=":memory:", top_n=10):
    # fail on an unusable output directory before any data is read
    report = TripReport(output_dir)

    with DatabaseManager(db_path) as conn:
        logger.info("Stage 1/4: loading trip files")
        raw_rows = TripLoader(conn).load_directory(data_dir, pattern)

        logger.info("Stage 2/4: cleaning")
        cleaning_stats = TripCleaner(conn).clean()

        logger.info("Stage 3/4: aggregating")
        aggregator = TripAggregator(conn)
        aggregates = build_aggregates(aggregator, top_n=top_n)

    logger.info("Stage 4/4: reporting")
    charts = report.render_all(aggregates)
    summary = report.summarize(aggregates)

    return {
        'raw_rows': raw_rows,
        'cleaning_stats': cleaning_stats,
        'aggregates': aggregates,
        'charts': charts,
        'summary': summary,
    }
