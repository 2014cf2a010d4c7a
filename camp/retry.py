"""Retry store writes that fail because another writer holds the database lock."""
from __future__ import annotations

import asyncio
import enum
import logging
import re
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

import config

logger = logging.getLogger("camp.retry")

T = TypeVar("T")

_BUSY_ERROR_NAMES = ("SQLITE_BUSY", "SQLITE_LOCKED")
_BUSY_MESSAGE = re.compile(r"database (table )?is (locked|busy)", re.IGNORECASE)


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


class ErrorClass(enum.Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


class RetryExhaustedError(Exception):
    """Raised when a write still hits lock contention after the last attempt."""

    def __init__(self, attempts: int):
        super().__init__(f"Store write still contended after {attempts} attempt(s)")
        self.attempts = attempts


def _error_chain(exc: BaseException):
    """Yield the error and the driver errors it wraps (SQLAlchemy keeps the DBAPI error on .orig)."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = getattr(current, "orig", None) or current.__cause__


def classify_store_error(exc: BaseException) -> ErrorClass:
    """Tag an error from the storage layer as retryable lock contention or fatal."""
    for err in _error_chain(exc):
        name = str(getattr(err, "sqlite_errorname", "") or getattr(err, "code", "") or "")
        if name.startswith(_BUSY_ERROR_NAMES):
            return ErrorClass.RETRYABLE
        if _BUSY_MESSAGE.search(str(err)):
            return ErrorClass.RETRYABLE
    return ErrorClass.FATAL


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    classify: Callable[[BaseException], ErrorClass] = classify_store_error,
) -> T:
    """Await operation(), retrying contended attempts with a linear backoff (attempt * base_delay).

    operation must start a fresh unit of work on every call. Fatal errors propagate at once.
    """
    if max_attempts is None:
        max_attempts = config.DB_RETRY_MAX_ATTEMPTS
    if base_delay is None:
        base_delay = config.DB_RETRY_BASE_DELAY_SECONDS
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_exception(lambda e: classify(e) is ErrorClass.RETRYABLE),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=_sleep,
    )
    try:
        return await retrying(operation)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.warning("Store write gave up after %d attempt(s): %s", e.last_attempt.attempt_number, last_error)
        raise RetryExhaustedError(e.last_attempt.attempt_number) from last_error
