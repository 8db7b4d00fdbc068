# Overview: Concurrency primitives shared by the cart, catalog, promo and order services.

from __future__ import annotations

import logging
import threading
import time
import weakref
from contextlib import contextmanager

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import FloorViolation, NotFoundError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic version_id conflicts on carts and products).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            logger.warning("Concurrent update conflict (attempt %d/%d): %s", attempt + 1, attempts, exc)
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def adjust(model, pk: int, field: str, delta: int, *, floor: int | None = 0, extra_criteria=()) -> int:
    """
    Atomically add delta to model.field for one row and return the new value.

    The change is a single conditional UPDATE evaluated by the database, never a
    read-increment-write in Python, so concurrent callers cannot both pass the
    floor check. Raises FloorViolation when the row exists but the result would
    fall below floor or extra_criteria (e.g. a usage ceiling) reject it.
    The caller owns the commit.
    """
    column = getattr(model, field)
    criteria = [model.id == pk]
    if floor is not None:
        criteria.append(column + delta >= floor)
    criteria.extend(extra_criteria)

    stmt = (
        update(model)
        .where(*criteria)
        .values({field: column + delta})
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    current = db.session.execute(select(column).where(model.id == pk)).scalar()
    if result.rowcount == 0:
        if current is None:
            raise NotFoundError(f"{model.__name__} {pk} not found")
        raise FloorViolation(
            f"{model.__name__}.{field} adjustment rejected",
            details={"id": pk, "field": field, "current": current, "delta": delta, "floor": floor},
        )

    # Loaded instances still hold the pre-update value
    instance = db.session.get(model, pk)
    if instance is not None:
        db.session.expire(instance, [field])
    return current


class _TokenLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self):
        self.lock = threading.Lock()


_token_locks: "weakref.WeakValueDictionary[str, _TokenLock]" = weakref.WeakValueDictionary()
_token_locks_guard = threading.Lock()


@contextmanager
def guest_token_lock(guest_token: str):
    """
    Serialize mutations for one guest token within this process.

    Cross-process writers are still caught by the cart's version_id column
    (StaleDataError, retried by run_with_retry).
    """
    with _token_locks_guard:
        entry = _token_locks.get(guest_token)
        if entry is None:
            entry = _TokenLock()
            _token_locks[guest_token] = entry
    with entry.lock:
        yield
