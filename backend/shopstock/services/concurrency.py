# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import logging
import time

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ReferentialConflictError
from ..extensions import db


logger = logging.getLogger(__name__)

# OperationalError: deadlocks / "database is locked".
# StaleDataError: optimistic locking conflicts.
# IntegrityError: two writers lazily creating the same unique (material, location) row.
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, and pysqlite only opens a
    transaction at the first INSERT/UPDATE/DELETE, so reads take no lock there.
    Writers are serialized by SQLite's single database write lock: a second
    writer waits (up to the connection busy timeout) until the first commits,
    then runs its statement against the committed rows. Callers must therefore
    express checks as conditional, relative UPDATEs rather than trusting values
    read earlier. A writer that times out on the lock gets "database is locked"
    (OperationalError), which run_with_retry replays.
    """
    return query.with_for_update()


def _default_attempts() -> int:
    if has_app_context():
        return int(current_app.config.get("MOVEMENT_RETRY_ATTEMPTS", 3))
    return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB unit of work, replaying it on concurrency-related failures.

    The whole unit (reads, validation, writes, commit) is replayed so the retry
    observes the state left by the winning writer; a replay can therefore end
    in the same InsufficientInventory/NegativeInventoryRejected error a serial
    execution would produce.

    Any other exception rolls the session back and propagates unchanged.
    """
    if attempts is None:
        attempts = _default_attempts()
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                logger.warning("Giving up after %d attempts: %s", attempts, exc.__class__.__name__)
                raise ReferentialConflictError(
                    "The operation conflicted with a concurrent change; please retry",
                    details={"attempts": attempts},
                ) from exc
            logger.warning(
                "Storage conflict (%s), retrying attempt %d of %d",
                exc.__class__.__name__,
                attempt + 2,
                attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
