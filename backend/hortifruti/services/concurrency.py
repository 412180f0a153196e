# Overview: Row-locking helper for read-then-write sections of the services.

from __future__ import annotations


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Stock counters never rely on the lock alone; see stock_service.
    """
    return query.with_for_update()
