"""Bounded polling for eventually consistent EC2 state."""

import time
from typing import Callable, Iterable, Optional, TypeVar

from ..config import ENIConfig
from ..errors import ErrorKind, WaitTimeoutError, error_kind
from .logging import get_logger

logger = get_logger("waiter")

T = TypeVar("T")


def wait_until(
    description: str,
    predicate: Callable[[], T],
    timeout: Optional[float] = None,
    interval: Optional[float] = None,
    tolerate: Iterable[ErrorKind] = (),
    config: Optional[ENIConfig] = None,
) -> T:
    """Call ``predicate`` until it returns something truthy and return that.

    The remaining budget is reduced by ``interval`` after every miss rather
    than measured against the clock, so a wait may overrun ``timeout`` by one
    interval plus the time spent inside the predicate.

    Errors whose kind is in ``tolerate`` count as a miss. Anything else is
    re-raised as is.

    Raises:
        WaitTimeoutError: the budget ran out first
    """
    config = config or ENIConfig()
    remaining = config.timeout if timeout is None else timeout
    interval = config.poll_interval if interval is None else interval
    tolerate = frozenset(tolerate)

    logger.debug("Waiting for %s (timeout=%ss)", description, remaining)
    while remaining >= 0:
        try:
            result = predicate()
            if result:
                return result
        except Exception as e:
            if error_kind(e) not in tolerate:
                raise
            logger.debug("Tolerated %s while waiting for %s: %s", type(e).__name__, description, e)
        time.sleep(interval)
        remaining -= interval

    logger.warning("Timed out waiting for %s", description)
    raise WaitTimeoutError(f"Timed out waiting for {description}")
