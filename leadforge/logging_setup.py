"""
Logging for LeadForge.

Everything logs under the ``leadforge`` logger: a rotating file for
unattended batch runs and stderr for the console, keeping stdout free for
piping. ``RunContext`` carries the per-run lead counters the pipeline
updates from its worker threads.
"""

import logging
import logging.handlers
import sys
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from . import config

ROOT_LOGGER = "leadforge"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s.%(funcName)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that report every connection or parse at INFO/DEBUG
NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Attach file and stderr handlers to the ``leadforge`` logger.

    Calling again only changes the level, so a CLI can re-run this after
    parsing ``--verbose`` without doubling every line.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    if not logger.handlers:
        log_file = log_file or config.LOG_DIR / "leadforge.log"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        console_handler = logging.StreamHandler(sys.stderr)
        for handler in (file_handler, console_handler):
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """Child logger, e.g. ``leadforge.contact_finder``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{module_name}")


@dataclass
class RunStats:
    """Lead counters for one run."""
    total_leads: int = 0
    enriched_leads: int = 0
    emails_found: int = 0
    high_quality_leads: int = 0
    filtered_out: int = 0
    errors: int = 0


class RunContext:
    """
    Wraps one pipeline run.

    Logs the start and the finish with the final counters, and re-raises
    anything that escapes the run. Worker threads update ``stats`` through
    ``increment``.
    """

    def __init__(self, logger: logging.Logger, clock: Callable[[], float] = time.monotonic):
        self.logger = logger
        self.run_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self.stats = RunStats()
        self.duration_seconds: Optional[float] = None
        self._clock = clock
        self._started: Optional[float] = None
        self._lock = threading.Lock()

    def __enter__(self):
        self._started = self._clock()
        self.logger.info(f"=== Lead run {self.run_id} started ===")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_seconds = round(self._clock() - self._started, 2)
        if exc_type:
            self.logger.error(f"Lead run {self.run_id} failed: {exc_type.__name__}: {exc_val}")
        self.logger.info(
            f"=== Lead run {self.run_id} finished in {self.duration_seconds}s | {self.summary()} ==="
        )
        return False

    def increment(self, counter: str) -> None:
        """Add one to a RunStats field; unknown names raise AttributeError."""
        with self._lock:
            setattr(self.stats, counter, getattr(self.stats, counter) + 1)

    def summary(self) -> Dict[str, Any]:
        """Counters plus run id and duration, for the webhook payload."""
        with self._lock:
            data: Dict[str, Any] = asdict(self.stats)
        data["run_id"] = self.run_id
        data["duration_seconds"] = self.duration_seconds
        return data
