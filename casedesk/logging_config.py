# casedesk/logging_config.py
from __future__ import annotations

import logging
import sys

from casedesk.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(config: Settings) -> logging.Logger:
    """
    Configure the ``casedesk`` logger tree from settings.

    Console output always; a file handler is added when ``log_file`` is set.
    Safe to call more than once: handlers are only attached the first time.
    """
    logger = logging.getLogger("casedesk")
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
