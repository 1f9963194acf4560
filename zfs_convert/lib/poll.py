from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


def wait_until(
    predicate: Callable[[], bool],
    timeout_s: float,
    interval_s: float,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll predicate until it holds or the timeout ceiling is reached.

    Returns True as soon as the predicate is observed true, False once
    timeout_s has fully elapsed. The last sleep is clipped to the ceiling so a
    timeout is reported neither early nor a whole interval late.
    """

    if timeout_s < 0 or interval_s <= 0:
        raise ValueError("timeout must be >= 0 and interval > 0")

    deadline = clock() + timeout_s
    while True:
        if predicate():
            return True
        now = clock()
        if now >= deadline:
            logger.debug("wait_until: gave up after %.1fs", timeout_s)
            return False
        sleep(min(interval_s, deadline - now))
