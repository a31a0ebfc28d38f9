"""
Database Helper Utilities for Concurrency Control

Provides:
- PostgreSQL detection
- Per-resource transactional locks (advisory lock / in-process fallback)
- Unique constraint violation detection
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Largest positive signed 32-bit int; keeps keys valid for pg_advisory_*(int)
LOCK_KEY_MODULUS = 2147483647

# In-process fallback locks, one per key while anyone holds or waits on it
_local_locks: Dict[int, "_LocalLock"] = {}
_local_locks_guard = threading.Lock()


class _LocalLock:
    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'postgresql'
    except Exception:
        return False


def advisory_lock_key(resource_id: str) -> int:
    """
    Deterministic integer key for a resource id.

    Same id -> same key in every process, so callers for one flight serialize
    while unrelated flights proceed.
    """
    key = 0
    for char in resource_id:
        key = (key * 31 + ord(char)) % LOCK_KEY_MODULUS
    return key


def _acquire_local_lock(key: int) -> _LocalLock:
    with _local_locks_guard:
        entry = _local_locks.get(key)
        if entry is None:
            entry = _local_locks[key] = _LocalLock()
        entry.users += 1
    entry.lock.acquire()
    return entry


def _release_local_lock(key: int, entry: _LocalLock) -> None:
    entry.lock.release()
    with _local_locks_guard:
        entry.users -= 1
        if entry.users == 0:
            del _local_locks[key]


@contextmanager
def flight_lock(db: Session, key: int) -> Iterator[None]:
    """
    Hold a per-key lock for the rest of the current transaction.

    PostgreSQL: pg_advisory_xact_lock - released by the server on COMMIT,
    ROLLBACK or a dropped connection, so a crashed caller never leaves it held.

    Other dialects: an in-process mutex (single-instance deployments and
    tests). It is released when the block exits, so the block must commit or
    roll back before leaving.

    Usage:
        with flight_lock(db, advisory_lock_key(flight_id)):
            ...
            db.commit()
    """
    if is_postgres(db):
        db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
        yield
        return

    entry = _acquire_local_lock(key)
    try:
        yield
    finally:
        _release_local_lock(key, entry)


def is_unique_violation(error: IntegrityError) -> bool:
    """True when an IntegrityError comes from a UNIQUE constraint/index"""
    orig = getattr(error, "orig", None)

    # psycopg2 / psycopg expose the SQLSTATE
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode:
        return pgcode == "23505"

    message = str(orig or error).lower()
    return "unique constraint" in message or "duplicate key" in message
