"""Rotating file log stream for pulsewatch, keeps max ~1 MB on disk."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pulsewatch.config import config_dir

LOGGER_NAME = "pulsewatch"


def log_path(config: Optional[dict] = None) -> Path:
    """Return the log file path, ``logging.file`` or next to the config."""
    configured = (config or {}).get("logging", {}).get("file")
    if configured:
        return Path(configured).expanduser()
    return config_dir() / "pulsewatch.log"


def setup_logging(config: Optional[dict] = None) -> logging.Logger:
    """Configure and return the ``pulsewatch`` logger.

    * 512 KB max per file, 1 backup = **1 MB total** on disk.
    * Access and alert records share this stream with operational messages.
    * Idempotent: safe to call multiple times (checks for existing handlers).
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Avoid adding duplicate handlers on repeated calls
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    log_file = log_path(config)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        str(log_file),
        maxBytes=512 * 1024,  # 512 KB
        backupCount=1,
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(message)s",
                          datefmt="%Y-%m-%d %H:%M:%S")
    )

    logger.addHandler(handler)
    return logger
