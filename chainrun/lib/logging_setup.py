"""
Logging setup for chainrun.

Two sinks on the package logger: the console and an append-only daily file
under the logs directory. Modules log through logging.getLogger(__name__).
"""

import logging
import sys
from datetime import date
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_PREFIX = "chainrun"


def daily_log_path(logs_dir: Path, day: date | None = None) -> Path:
    """Path of the daily log file for a given day (today by default)."""
    day = day or date.today()
    return logs_dir / f"{LOG_PREFIX}-{day.isoformat()}.log"


class DailyFileHandler(logging.FileHandler):
    """Append to <logs_dir>/chainrun-YYYY-MM-DD.log, switching files at midnight."""

    def __init__(self, logs_dir: Path, encoding: str = "utf-8"):
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self._day = date.today()
        super().__init__(daily_log_path(self.logs_dir, self._day), mode="a", encoding=encoding)

    def emit(self, record: logging.LogRecord) -> None:
        today = date.today()
        if today != self._day:
            self.acquire()
            try:
                self.close()
                self._day = today
                self.baseFilename = str(daily_log_path(self.logs_dir, today).resolve())
            finally:
                self.release()
        super().emit(record)


def configure_logging(logs_dir: Path | None, verbose: bool = False) -> logging.Logger:
    """Attach console and daily-file handlers to the chainrun logger.

    Safe to call more than once; previously attached handlers are replaced.
    With logs_dir=None only the console sink is installed.
    """
    logger = logging.getLogger("chainrun")
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if logs_dir is not None:
        file_handler = DailyFileHandler(logs_dir)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
