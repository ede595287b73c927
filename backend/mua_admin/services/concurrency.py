# Overview: Row locking and retry helpers for write paths that must be atomic.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for read-then-write operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the Order version_id
    column catches the lost update and run_with_retry replays the operation.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute a unit of work, retrying on concurrency failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError (optimistic version conflicts). The session is rolled back
    before each retry so the replay reads fresh state. Any other exception
    rolls back and propagates.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
