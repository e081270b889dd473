import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def get_list(name, default=None):
    raw = os.getenv(name)
    if raw is None:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


# URL or file path
PLAYLIST_SOURCE = os.getenv("PLAYLIST_SOURCE", None)

OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "output"))
FILTER_OUTPUT_FILENAME = os.getenv("FILTER_OUTPUT_FILENAME", "filtered_channels.m3u")

# Example: FILTER_EXCLUDED_GROUPS="Adult, Radio, Religious"
FILTER_EXCLUDED_GROUPS = get_list("FILTER_EXCLUDED_GROUPS")

FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "15"))
USER_AGENT = os.getenv("USER_AGENT", "m3u-group-filter/1.0")

CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "900"))
# Finished background jobs are kept this long for status polling
JOB_TTL_SECONDS = int(os.getenv("JOB_TTL_SECONDS", "900"))

# Lines scanned between progress reports and cancellation checks
PROGRESS_INTERVAL = int(os.getenv("PROGRESS_INTERVAL", "2000"))
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))

LOG_FILE = os.getenv("LOG_FILE", "m3u_filter.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "5000"))
