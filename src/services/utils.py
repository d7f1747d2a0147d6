"""Shared utilities for service layer operations."""
from collections.abc import Sequence

from sqlalchemy.exc import IntegrityError


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally. Callers must pass
    escape="\\" to ilike() since SQLite has no default escape character.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def is_unique_violation(
    error: IntegrityError, constraint_name: str, columns: Sequence[str],
) -> bool:
    """
    Check whether an IntegrityError was caused by the given unique constraint.

    PostgreSQL reports the constraint name in the error message. SQLite only
    reports the constrained columns, as "UNIQUE constraint failed: <table>.<col>, ...".

    Args:
        error: The error raised by the flush.
        constraint_name: Name of the unique constraint (PostgreSQL).
        columns: Qualified column names the constraint covers, in order (SQLite).
    """
    message = str(error)
    return (
        constraint_name in message
        or f"UNIQUE constraint failed: {', '.join(columns)}" in message
    )
