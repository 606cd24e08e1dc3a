"""
utils/logger.py
---------------
Global logging setup shared across all modules.
Creates daily log files and auto-cleans older ones.
"""

import logging
import os
import datetime
from glob import glob

# --- Configuration ---
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_RETENTION_DAYS = 14  # delete logs older than this many days

# Use environment variable to control verbosity
# Example: set ENV=prod to disable console logging
ENV = os.getenv("ENV", "dev").lower()  # "dev" or "prod"
DEBUG_LOGS = os.getenv("DEBUG_LOGS", "false").lower() in ("true", "1", "yes")


def _cleanup_old_logs():
    """Remove log files older than retention period."""
    cutoff = datetime.datetime.now() - datetime.timedelta(days=LOG_RETENTION_DAYS)
    for path in glob(os.path.join(LOG_DIR, "*.log")):
        timestamp_str = os.path.basename(path).split("_")[-1].replace(".log", "")
        if len(timestamp_str) != 8:
            continue
        try:
            date = datetime.datetime.strptime(timestamp_str, "%Y%m%d")
        except ValueError:
            continue
        if date < cutoff:
            try:
                os.remove(path)
            except OSError:
                continue


def get_logger(name: str) -> logging.Logger:
    """
    Returns a configured logger for the given module name.
    Logs to logs/<name>_YYYYMMDD.log and auto-cleans older logs.
    Console output is disabled when ENV=prod; DEBUG_LOGS=true lowers the level to DEBUG.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(logging.DEBUG if DEBUG_LOGS else logging.INFO)
        os.makedirs(LOG_DIR, exist_ok=True)
        log_path = os.path.join(LOG_DIR, f"{name}_{datetime.datetime.now():%Y%m%d}.log")
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s"))
        logger.addHandler(handler)

        # Optional console output (disabled in production)
        if ENV != "prod":
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
            logger.addHandler(console)

        _cleanup_old_logs()

    return logger
