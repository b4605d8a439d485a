import argparse
import logging
import sys

from cyclistic.config import Config
from cyclistic.errors import PipelineError
from cyclistic.exploration.trip_analysis import print_tables
from cyclistic.pipeline import run_pipeline
from cyclistic.utils.logging_setup import setup_logging

logger = logging.getLogger("run_analysis")

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Cyclistic member vs. casual rider analysis")
    parser.add_argument("--data-dir", default=str(Config.DATA_DIR))
    parser.add_argument("--pattern", default=Config.FILE_PATTERN)
    parser.add_argument("--output-dir", default=str(Config.OUTPUT_DIR))
    parser.add_argument("--db-path", default=Config.DB_PATH)
    parser.add_argument("--top-n", type=int, default=Config.TOP_N)
    parser.add_argument("--log-level", default=Config.LOG_LEVEL)
    parser.add_argument("--quiet", action="store_true", help="skip printing the aggregate tables")
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level, Config.LOG_FILE)

    print("=" * 80)
    print("  CYCLISTIC: HOW DO MEMBERS AND CASUAL RIDERS DIFFER?")
    print("=" * 80)

    try:
        results = run_pipeline(
            data_dir=args.data_dir,
            pattern=args.pattern,
            output_dir=args.output_dir,
            db_path=args.db_path,
            top_n=args.top_n,
        )
    except PipelineError as e:
        logger.error(f"Run aborted: {e}")
        return 1

    stats = results['cleaning_stats']
    print("\n" + "=" * 80)
    print("DATA QUALITY")
    print("=" * 80)
    print(f"→ Raw trips loaded:          {stats.raw_rows:,}")
    print(f"→ Dropped (out of bounds):   {stats.dropped_rows:,}")
    print(f"→ Null ride length:          {stats.null_duration_rows:,}")
    print(f"→ Trips analysed:            {stats.kept_rows:,}")

    if not args.quiet:
        print_tables(results['aggregates'])

    print("\n" + "=" * 80)
    print("FINDINGS")
    print("=" * 80)
    print(results['summary'])

    print("\n" + "=" * 80)
    print(f"  ANALYSIS COMPLETE: {len(results['charts'])} charts saved to {args.output_dir}")
    print("=" * 80)
    return 0

if __name__ == "__main__":
    sys.exit(main())
