"""Database error helpers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError

from services.errors import StorageUnavailable


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError indicates a unique-constraint conflict."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == "23505":
        return True
    message = str(original or error).lower()
    return (
        "duplicate key" in message
        or "unique constraint" in message
        # SQLite reports composite primary key conflicts this way.
        or "primary key" in message
    )


def is_check_violation(error: IntegrityError, constraint_name: str | None = None) -> bool:
    """Return True when the IntegrityError was raised by a CHECK constraint."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    message = str(original or error).lower()
    if sqlstate != "23514" and "check constraint" not in message:
        return False
    return constraint_name is None or constraint_name.lower() in message


@contextmanager
def translate_storage_errors(operation: str) -> Iterator[None]:
    """Re-raise driver and connectivity failures as StorageUnavailable.

    IntegrityError is left untouched so callers can inspect constraint conflicts.
    """
    try:
        yield
    except IntegrityError:
        raise
    except DBAPIError as exc:
        raise StorageUnavailable(operation) from exc
    except OSError as exc:
        raise StorageUnavailable(operation) from exc


__all__ = ["is_check_violation", "is_unique_violation", "translate_storage_errors"]
