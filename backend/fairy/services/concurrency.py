"""
Row locking and retry helpers shared by the billing and timekeeping services.

Several tablets hit the same bill at once (cast phones ringing up drinks,
the staff dashboard closing the table). Mutations of a bill run under a row
lock and are retried on lock timeouts and optimistic-lock conflicts.
"""

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the given query.

    NOTE: SQLite ignores FOR UPDATE; its database-level write lock gives the
    same serialization for our single-writer deployments.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05, retry_on=RETRYABLE_ERRORS):
    """
    Call ``func`` and retry with exponential backoff on ``retry_on`` errors.

    The session is rolled back before each retry, so ``func`` must reload
    everything it touches.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
