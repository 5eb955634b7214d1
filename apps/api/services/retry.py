"""
Bounded retry and polling helpers.

Two policies live on top of these: the TTS readiness probe (N attempts with a
fixed delay) and the synthesized-file wait (poll until a deadline). Both take
injectable sleep/clock callables so tests never actually wait.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    delay_s: float

    @classmethod
    def from_millis(cls, max_attempts: int, delay_ms: int) -> "RetryPolicy":
        return cls(max_attempts=max(1, int(max_attempts)), delay_s=max(0, delay_ms) / 1000.0)


@dataclass(frozen=True)
class PollPolicy:
    timeout_s: float
    interval_s: float

    @classmethod
    def from_millis(cls, timeout_ms: int, interval_ms: int) -> "PollPolicy":
        return cls(timeout_s=max(0, timeout_ms) / 1000.0, interval_s=max(1, interval_ms) / 1000.0)


class RetryExhausted(Exception):
    """Every attempt raised; carries the attempt count and the last error."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def call_with_retries(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_failure: Optional[Callable[[int, Exception], None]] = None,
) -> T:
    """
    Call fn until it returns without raising, at most policy.max_attempts times.

    on_failure(attempt, error) runs after every failed attempt (1-based).
    No sleep follows the final attempt.
    """
    last_error: Optional[Exception] = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = fn()
        except Exception as e:
            last_error = e
            if on_failure:
                on_failure(attempt, e)
            if attempt < policy.max_attempts:
                sleep(policy.delay_s)
            continue
        if attempt > 1:
            logger.info(f"Succeeded after {attempt} attempts")
        return result
    raise RetryExhausted(policy.max_attempts, last_error)


def poll_until(
    predicate: Callable[[], bool],
    policy: PollPolicy,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Check predicate until it is true or policy.timeout_s has elapsed.

    The predicate is always checked at least once. Returns False on timeout.
    """
    deadline = clock() + policy.timeout_s
    while True:
        if predicate():
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        sleep(min(policy.interval_s, remaining))
