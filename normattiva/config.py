"""
Runtime configuration for the normattiva pipeline.

Every tunable is read from the environment (a local .env file is loaded first)
and falls back to the defaults below.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Source portal
BASE_URL = os.getenv("NORMATTIVA_BASE_URL", "https://www.normattiva.it")
USER_AGENT = os.getenv(
    "NORMATTIVA_USER_AGENT",
    "Italian-Law-Ingest/1.0 (+https://www.normattiva.it/; statute corpus builder)",
)

# Crawl pacing
MIN_DELAY = float(os.getenv("NORMATTIVA_MIN_DELAY", "0.5"))
CENSUS_MIN_DELAY = float(os.getenv("NORMATTIVA_CENSUS_MIN_DELAY", "0.8"))
MAX_RETRIES = int(os.getenv("NORMATTIVA_MAX_RETRIES", "3"))
BACKOFF_BASE = float(os.getenv("NORMATTIVA_BACKOFF_BASE", "2.0"))
REQUEST_TIMEOUT = float(os.getenv("NORMATTIVA_TIMEOUT", "30"))
BATCH_WIDTH = int(os.getenv("NORMATTIVA_BATCH_WIDTH", "5"))
ACT_PAUSE = float(os.getenv("NORMATTIVA_ACT_PAUSE", "2.0"))
CHECKPOINT_EVERY = int(os.getenv("NORMATTIVA_CHECKPOINT_EVERY", "10"))

# Data layout
DATA_DIR = Path(os.getenv("NORMATTIVA_DATA_DIR", "data"))
SEED_DIR = DATA_DIR / "seed"
CENSUS_PATH = DATA_DIR / "census.json"
STATE_DIR = DATA_DIR / "interim"
