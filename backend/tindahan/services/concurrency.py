# Overview: Transaction helpers shared by every write path; row locks, write-intent begin and retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictRetry
from ..extensions import db

TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Take the database write lock up front.

    SQLite has no row locks, so write paths open the transaction with
    BEGIN IMMEDIATE: concurrent checkouts then queue on the lock instead of
    reading stock that another writer is about to change.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None, retry_on: tuple = ()):
    """
    Execute one unit of work as a single transaction, retrying transient failures.

    - OperationalError (deadlocks, busy database) and StaleDataError are
      rolled back and retried with exponential backoff; exhausting the
      attempts raises ConflictRetry.
    - retry_on adds caller-specific retryable exceptions (role bootstrap
      retries IntegrityError from its unique-constraint arbitration).
    - Anything else is rolled back and propagated unchanged, so a domain
      error never leaves partial writes behind.
    """
    if attempts is None:
        attempts = current_app.config.get("CONFLICT_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("CONFLICT_RETRY_BACKOFF", 0.1)

    retryable = TRANSIENT_ERRORS + tuple(retry_on)
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retryable as exc:
            db.session.rollback()
            last_exc = exc
            current_app.logger.warning(
                "Transient conflict on attempt %d/%d: %s", attempt + 1, attempts, exc.__class__.__name__
            )
            if attempt < attempts - 1:
                time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise

    raise ConflictRetry(
        "The operation conflicted with a concurrent update; please retry",
        details={"attempts": attempts, "cause": last_exc.__class__.__name__ if last_exc else None},
    )
