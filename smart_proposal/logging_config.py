"""
Logging setup for the service.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

from smart_proposal.config import ROOT_DIR

LOGGER_NAME = "smart_proposal"


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR

    Returns:
        the configured ``smart_proposal`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_dir = ROOT_DIR / "logs"
    log_dir.mkdir(exist_ok=True)
    log_filename = Path(log_dir) / f"smart_proposal_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_filename, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger for a module, e.g. ``get_logger("scraper")``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
