import logging
import os
import shutil
from datetime import date
from zipfile import ZipFile

import requests

from cyclistic.config import Config

logger = logging.getLogger(__name__)


class TripdataFetcher:
    """Downloads monthly `YYYYMM-divvy-tripdata.zip` archives and unpacks the CSVs."""

    FILE_TEMPLATE = "{yyyymm}-divvy-tripdata.zip"

    def __init__(self, data_dir, base_url=None):
        self.data_dir = str(data_dir)
        self.base_url = base_url or Config.TRIPDATA_URL
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        os.makedirs(self.data_dir, exist_ok=True)

    @staticmethod
    def month_keys(start, months=12):
        """`start` is 'YYYY-MM'; returns consecutive 'YYYYMM' keys."""
        year, month = (int(part) for part in start.split("-"))
        first = date(year, month, 1)
        keys = []
        for offset in range(months):
            m = first.month - 1 + offset
            keys.append(f"{first.year + m // 12}{m % 12 + 1:02d}")
        return keys

    def _is_mac_junk(self, path):
        return "__MACOSX" in path or "/._" in path or path.startswith("._") or ".DS_Store" in path

    def download_month(self, yyyymm, max_retries=3):
        """Downloads one archive with a basic retry mechanism."""
        filename = self.FILE_TEMPLATE.format(yyyymm=yyyymm)
        url = self.base_url + filename
        local_path = os.path.join(self.data_dir, filename)

        if os.path.exists(local_path) and os.path.getsize(local_path) > 0:
            logger.info(f"  ↪ {filename} already exists. Skipping download.")
            return local_path

        for attempt in range(max_retries):
            try:
                logger.info(f"Downloading {filename} (Attempt {attempt + 1})...")
                with requests.get(url, stream=True, timeout=60) as r:
                    r.raise_for_status()
                    with open(local_path, "wb") as f:
                        for chunk in r.iter_content(chunk_size=1024 * 1024):
                            f.write(chunk)
                return local_path
            except requests.RequestException as e:
                logger.warning(f"Download failed: {e}")
                if os.path.exists(local_path):
                    os.remove(local_path)
                if not self._is_transient(e) or attempt == max_retries - 1:
                    raise
        return None

    @staticmethod
    def _is_transient(error):
        """Connection drops, timeouts and 5xx answers are worth another attempt; a 404 is not."""
        if isinstance(error, (requests.ConnectionError, requests.Timeout)):
            return True
        if isinstance(error, requests.HTTPError) and error.response is not None:
            return error.response.status_code >= 500
        return False

    def extract_csv(self, zip_path):
        extracted = []
        with ZipFile(zip_path) as z:
            for member in z.namelist():
                if self._is_mac_junk(member) or not member.lower().endswith(".csv"):
                    continue
                target = os.path.join(self.data_dir, os.path.basename(member))
                with z.open(member) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                logger.info(f"    → Extracted {member}")
                extracted.append(target)
        return extracted

    def fetch(self, start, months=12):
        csv_paths = []
        for yyyymm in self.month_keys(start, months):
            zip_path = self.download_month(yyyymm)
            csv_paths.extend(self.extract_csv(zip_path))
        logger.info(f"{len(csv_paths)} trip files ready in {self.data_dir}")
        return csv_paths
