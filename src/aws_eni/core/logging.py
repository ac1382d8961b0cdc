"""Logging setup for aws-eni and the libraries it drives."""

import logging
import sys
from typing import Optional

# Package logger
logger = logging.getLogger("aws_eni")

# boto3 and the metadata client (via urllib3) are chatty at debug level
NOISY_LIBRARIES = ("boto3", "botocore", "urllib3")

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    debug: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """Configure the aws_eni logger.

    The console only shows warnings unless ``debug`` is set, so waits and
    API calls stay quiet in normal CLI use. A log file always receives
    everything from aws_eni at debug level.

    Args:
        debug: Show aws_eni debug output on stderr
        log_file: Optional file path for a full log

    Returns:
        The configured package logger
    """
    logger.setLevel(logging.DEBUG if (debug or log_file) else logging.INFO)
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if debug else logging.WARNING)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger for one module, e.g. ``get_logger("meta")`` -> aws_eni.meta"""
    return logger.getChild(name)
