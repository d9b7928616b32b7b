# Overview: Row locking and retry helpers shared by every service that mutates stock, points or checkouts.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import NotFound


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the models' version_id
    column turns a lost update into StaleDataError, which run_with_retry
    replays.
    """
    return query.with_for_update()


def get_locked(model, entity_id: int, *, label: str | None = None):
    """Load one row under lock or raise NotFound."""
    row = lock_for_update(db.session.query(model).filter_by(id=entity_id)).first()
    if row is None:
        raise NotFound(f"{label or model.__name__} {entity_id} not found")
    return row


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors propagate on the first
    attempt after the session is rolled back.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
