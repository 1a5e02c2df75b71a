"""PostgreSQL database client.

This module provides a connection pool and helper functions for the history
store. Every ``get_cursor`` block runs in its own transaction: it commits when
the block exits normally and rolls back when it raises.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Generator

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)


class PostgresClient:
    """PostgreSQL database client with connection pooling."""

    def __init__(self) -> None:
        """Initialize PostgreSQL connection pool."""
        self.enabled = os.getenv("USE_LOCAL_DB", "0") == "1"
        self._pool: Any = None

        if self.enabled:
            try:
                self._pool = pool.SimpleConnectionPool(
                    minconn=1,
                    maxconn=int(os.getenv("POSTGRES_MAX_CONNECTIONS", "10")),
                    host=os.getenv("POSTGRES_HOST", "localhost"),
                    port=int(os.getenv("POSTGRES_PORT", "5432")),
                    database=os.getenv("POSTGRES_DB", "darkroom"),
                    user=os.getenv("POSTGRES_USER", "darkroom"),
                    password=os.getenv("POSTGRES_PASSWORD", "darkroom_dev_password"),
                )
            except psycopg2.Error as exc:  # pragma: no cover
                raise RuntimeError(f"Failed to initialize PostgreSQL connection pool: {exc}") from exc

    @contextmanager
    def get_connection(self) -> Generator[Any, None, None]:
        """Get a database connection from the pool.

        Yields:
            Database connection with automatic return to pool on exit.

        Raises:
            RuntimeError: If local database is not enabled.
        """
        if not self.enabled or self._pool is None:
            raise RuntimeError("Local PostgreSQL database is not enabled")

        conn = None
        try:
            conn = self._pool.getconn()
            yield conn
            conn.commit()
        except Exception:
            if conn:
                logger.debug("Rolling back PostgreSQL transaction")
                conn.rollback()
            raise
        finally:
            if conn:
                self._pool.putconn(conn)

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True) -> Generator[Any, None, None]:
        """Get a database cursor bound to one transaction.

        Args:
            dict_cursor: If True, returns results as dictionaries (default: True).

        Yields:
            Database cursor.
        """
        with self.get_connection() as conn:
            cursor_factory = RealDictCursor if dict_cursor else None
            cursor = conn.cursor(cursor_factory=cursor_factory)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_many(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a query and return all results.

        Args:
            query: SQL query string.
            params: Query parameters.

        Returns:
            List of rows as dictionaries.
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            results = cursor.fetchall()
            return [dict(row) for row in results]

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an INSERT, UPDATE or DELETE query.

        Returns:
            Number of rows affected.
        """
        with self.get_cursor(dict_cursor=False) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool:
            self._pool.closeall()


# Singleton instance
_POSTGRES_CLIENT: PostgresClient | None = None


def get_postgres_client() -> PostgresClient | None:
    """Get PostgreSQL client singleton.

    Returns:
        PostgresClient instance if enabled, None otherwise.
    """
    global _POSTGRES_CLIENT
    if os.getenv("USE_LOCAL_DB", "0") != "1":
        return None
    if _POSTGRES_CLIENT is None:
        _POSTGRES_CLIENT = PostgresClient()
    return _POSTGRES_CLIENT
