"""
Bounded polling helper.

Every wait in the autofill engine goes through wait_until so that no loop can
spin forever on a page that never changes.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def wait_until(
    predicate: Callable[[], bool],
    timeout: float = 2.0,
    interval: float = 0.2,
    backoff: float = 1.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """
    Poll predicate until it returns True or the attempt budget is spent.

    The budget is counted in attempts (timeout / interval, at least one)
    rather than wall-clock time, so a test can pass a no-op sleep.

    Args:
        predicate: zero-arg callable, re-evaluated each attempt
        timeout: total time budget in seconds
        interval: delay before the first re-check
        backoff: multiplier applied to the delay after each attempt
        sleep: sleep function (defaults to time.sleep)

    Returns:
        True if the predicate succeeded, False on timeout.
    """
    sleep = sleep or time.sleep
    attempts = max(1, int(round(timeout / interval))) if interval > 0 else 1
    delay = interval

    for attempt in range(attempts + 1):
        if predicate():
            return True
        if attempt == attempts:
            break
        sleep(delay)
        delay *= backoff

    logger.debug(f"wait_until gave up after {attempts} attempts")
    return False
