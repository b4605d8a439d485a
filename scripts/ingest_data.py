import argparse
import logging
import sys

import requests

from cyclistic.config import Config
from cyclistic.ingest.fetcher import TripdataFetcher
from cyclistic.utils.logging_setup import setup_logging

logger = logging.getLogger("ingest_data")

def main(argv=None):
    parser = argparse.ArgumentParser(description="Download twelve months of Divvy trip data")
    parser.add_argument("--start", required=True, help="first month, YYYY-MM")
    parser.add_argument("--months", type=int, default=12)
    parser.add_argument("--data-dir", default=str(Config.DATA_DIR))
    args = parser.parse_args(argv)

    setup_logging(Config.LOG_LEVEL, Config.LOG_FILE)

    fetcher = TripdataFetcher(args.data_dir)
    try:
        fetcher.fetch(args.start, args.months)
    except requests.RequestException as e:
        logger.error(f"Download aborted: {e}")
        return 1
    print("Download Complete. Ready for analysis: python run_analysis.py")
    return 0

if __name__ == "__main__":
    sys.exit(main())
