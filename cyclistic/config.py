import os
from dotenv import load_dotenv
from pathlib import Path

root_dir = Path(__file__).resolve().parent.parent
env_path = root_dir / ".env"

load_dotenv(env_path)

class Config:
    DATA_DIR = Path(os.getenv("CYCLISTIC_DATA_DIR", "./data/tripdata"))
    FILE_PATTERN = os.getenv("CYCLISTIC_FILE_PATTERN", "*-divvy-tripdata.csv")

    # ":memory:" keeps the whole run in RAM; a file path is only for inspection
    DB_PATH = os.getenv("CYCLISTIC_DB_PATH", ":memory:")

    TRIPDATA_URL = os.getenv("CYCLISTIC_TRIPDATA_URL", "https://divvy-tripdata.s3.amazonaws.com/")

    OUTPUT_DIR = Path(os.getenv("CYCLISTIC_OUTPUT_DIR", "./outputs/cyclistic"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("CYCLISTIC_LOG_FILE")

    TOP_N = int(os.getenv("CYCLISTIC_TOP_N", "10"))

