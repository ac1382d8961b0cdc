"""Core utilities for aws-eni"""

from .base import BaseClient
from .display import BaseDisplay
from .logging import setup_logging, get_logger, logger
from .waiter import wait_until

__all__ = [
    "BaseClient",
    "BaseDisplay",
    "setup_logging",
    "get_logger",
    "logger",
    "wait_until",
]
