"""Bounded backoff polling for multiplexer and view readiness."""

from __future__ import annotations

import logging as py_logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

logger = py_logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 6
    initial_backoff_seconds: float = 0.05
    multiplier: float = 2.0
    max_backoff_seconds: float = 1.0

    def delays(self) -> Iterator[float]:
        """Yield the pause before each retry; one fewer than ``max_attempts``."""
        backoff = self.initial_backoff_seconds
        for _ in range(max(0, self.max_attempts - 1)):
            yield min(backoff, self.max_backoff_seconds)
            backoff *= self.multiplier

    @property
    def total_wait_seconds(self) -> float:
        return sum(self.delays())


def wait_until(
    predicate: Callable[[], bool],
    *,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "condition",
) -> bool:
    """Poll ``predicate`` until it returns True or the policy is exhausted.

    Exceptions raised by the predicate count as a failed attempt; the poll never
    raises. Returns whether the predicate was eventually satisfied.
    """
    delays = policy.delays()
    attempt = 0
    while True:
        attempt += 1
        try:
            if predicate():
                logger.debug("wait-until label=%s satisfied attempt=%s", label, attempt)
                return True
        except Exception:
            logger.debug("wait-until label=%s check failed attempt=%s", label, attempt, exc_info=True)
        delay = next(delays, None)
        if delay is None:
            logger.debug("wait-until label=%s exhausted attempts=%s", label, attempt)
            return False
        sleep(delay)
