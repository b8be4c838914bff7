"""Logging setup for the command-line entry points."""

import logging
import sys
from typing import Union

NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "sentence_transformers")


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Send log records to stdout with timestamps, replacing any existing root handlers."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

