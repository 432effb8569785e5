"""
Bounded retry helpers for fallible, zero-argument operations.

An operation fails by raising one of the `retry_on` exception types; any
other exception propagates immediately. Both helpers block the calling
thread while they sleep between attempts.
"""
import logging
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)


class RetryError(Exception):
    """Raised by retry_backoff once every attempt has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def _check_args(attempts: int, delay: float) -> None:
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    if delay < 0:
        raise ValueError("delay must be >= 0")


def retry_fixed(
    operation: Callable[[], Any],
    attempts: int,
    delay: float,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Any] = time.sleep,
):
    """
    Call `operation` up to `attempts` times, sleeping `delay` seconds
    between failures.

    Returns the operation's result on the first success. When every attempt
    fails, the last exception is re-raised unchanged.
    """
    _check_args(attempts, delay)

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except retry_on as e:
            if attempt == attempts:
                raise
            logger.warning(f"Attempt {attempt}/{attempts} failed: {e}; retrying in {delay}s")
        sleep(delay)


def retry_backoff(
    operation: Callable[[], Any],
    attempts: int,
    base_delay: float,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Any] = time.sleep,
):
    """
    Call `operation` up to `attempts` times with exponential backoff.

    The delay before the i-th retry is base_delay * 2 ** (i - 1). When every
    attempt fails, RetryError is raised from the last exception.
    """
    _check_args(attempts, base_delay)

    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except retry_on as e:
            if attempt == attempts:
                raise RetryError(attempts, e) from e
            logger.warning(f"Attempt {attempt}/{attempts} failed: {e}; retrying in {delay}s")
        sleep(delay)
        delay *= 2
