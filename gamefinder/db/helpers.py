# gamefinder/db/helpers.py
"""
Query helpers shared by the repositories.

Every psycopg error leaving this module is wrapped in DatabaseError (or
DuplicateKeyError for unique-constraint violations) so callers never need
to import psycopg themselves.
"""

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import errors

from gamefinder.db.pool import get_db_connection, get_db_transaction
from gamefinder.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class DuplicateKeyError(DatabaseError):
    """A unique constraint rejected the write."""

    def __init__(self, message: str, operation: str = "unknown", constraint: str | None = None):
        super().__init__(message, operation=operation, recoverable=True)
        self.constraint = constraint


def _wrap_error(e: psycopg.Error, operation: str, query: str = "") -> DatabaseError:
    logger.error(
        "Database operation failed",
        operation=operation,
        query=query[:100],
        error=str(e),
        error_type=type(e).__name__,
    )
    if isinstance(e, errors.UniqueViolation):
        constraint = e.diag.constraint_name if e.diag else None
        return DuplicateKeyError(f"{operation} failed: {e}", operation=operation, constraint=constraint)
    return DatabaseError(
        f"{operation} failed: {e}",
        operation=operation,
        recoverable=isinstance(e, psycopg.OperationalError),
    )


@asynccontextmanager
async def _borrow(
    connection: psycopg.AsyncConnection | None,
) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    if connection is not None:
        yield connection
        return
    async with await get_db_connection() as conn:
        yield conn


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Run `query` and return its first row.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        Row dict, or None when the query matched nothing
    """
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()
    except psycopg.Error as e:
        raise _wrap_error(e, "fetch_one", query) from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """Run `query` and return every row."""
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()
    except psycopg.Error as e:
        raise _wrap_error(e, "fetch_all", query) from e


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run a write and return the affected row count."""
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount
    except psycopg.Error as e:
        raise _wrap_error(e, "execute", query) from e


async def execute_transaction(statements: Sequence[tuple[str, tuple]]) -> bool:
    """
    Run several statements in one transaction; all of them apply or none do.

    Example:
        await execute_transaction([
            ("DELETE FROM game_suggestions WHERE source_appid = %s", (appid,)),
            ("INSERT INTO game_suggestions (...) VALUES (%s, %s, %s)", row),
        ])
    """
    try:
        async with await get_db_transaction() as conn:
            for query, params in statements:
                await conn.execute(query, params)
    except psycopg.Error as e:
        raise _wrap_error(e, "transaction", statements[0][0] if statements else "") from e

    logger.debug("Transaction committed", statement_count=len(statements))
    return True
