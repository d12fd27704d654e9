# Overview: Retry helpers for database writes that can race on unique keys or locks.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=RETRYABLE_ERRORS):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError by
    default. Callers that generate their own unique keys pass
    retry_on=(IntegrityError,) so a collision gets a fresh attempt.
    The session is rolled back before every retry.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def insert_with_unique_retry(func, *, attempts: int = 5):
    """run_with_retry tuned for unique-key collisions: no backoff, IntegrityError only."""
    return run_with_retry(func, attempts=attempts, backoff_base=0, retry_on=(IntegrityError,))
