"""
Common utilities for the normattiva pipeline.

Provides:
- JSON reading/writing for seed and census files (atomic replace)
- Resumable crawl state (.state files)
- Logging setup (tqdm-safe console + rotating file)
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)

# Log directory configuration
LOG_DIR = Path(os.getenv("PIPELINE_LOG_DIR", "logs"))
LOG_FILE = LOG_DIR / os.getenv("PIPELINE_LOG_FILE", "pipeline.log")

LOG_FORMAT = "%(asctime)s - %(name)s - [%(threadName)s] - %(levelname)s - %(message)s"


class StateManager:
    """
    Checkpoint state persisted as a small JSON document.

    The census crawl records the years it has finished so that an
    interrupted run can resume without re-reading them.
    """

    def __init__(self, state_file: str):
        self.state_file = Path(state_file)
        self.state: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        if not self.state_file.exists():
            logger.info(f"No existing state file at {self.state_file}")
            return
        with open(self.state_file, "r", encoding="utf-8") as f:
            self.state = json.load(f)
        logger.info(f"Loaded state from {self.state_file}")

    def save(self) -> None:
        save_json(self.state, self.state_file)

    def get(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.state[key] = value

    def processed_years(self) -> List[int]:
        """Years a previous census run completed."""
        return list(self.get("processed_years", []))

    def mark_year_processed(self, year: int) -> None:
        """Record a finished year and save immediately."""
        years = set(self.processed_years())
        years.add(year)
        self.set("processed_years", sorted(years))
        self.save()

    def reset(self) -> None:
        """Forget everything and persist the empty state."""
        self.state = {}
        self.save()


class TqdmLoggingHandler(logging.Handler):
    """Emit records through tqdm.write() so progress bars are not broken."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record))
        except Exception:
            self.handleError(record)


def setup_logging(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configure console (tqdm-safe) and rotating file logging for a script.

    The same handlers are attached to the "normattiva" package logger, so
    library modules logging through logging.getLogger(__name__) show up too.
    """
    script_logger = logging.getLogger(name)
    script_logger.setLevel(level)

    # Check if handler already exists to avoid duplicates
    if script_logger.handlers:
        return script_logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = TqdmLoggingHandler()
    console_handler.setFormatter(formatter)

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    targets = [script_logger]
    package_logger = logging.getLogger("normattiva")
    if name != "normattiva" and not package_logger.handlers:
        package_logger.setLevel(level)
        targets.append(package_logger)

    for target in targets:
        target.addHandler(console_handler)
        target.addHandler(file_handler)
        # Prevent propagation to root logger which might have default handlers
        target.propagate = False

    return script_logger


def load_json(file_path: Path, default: Optional[Any] = None) -> Any:
    """Load a JSON file, returning `default` when it does not exist."""
    path = Path(file_path)
    if not path.exists():
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(data: Any, file_path: Path) -> None:
    """
    Write pretty-printed JSON, replacing the file atomically.

    A crash mid-write leaves the previous version in place.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp_path, path)
