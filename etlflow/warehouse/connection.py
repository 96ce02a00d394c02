"""
PostgreSQL connection pool management using psycopg3

This module provides a connection pool for relational destinations with
automatic connection lifecycle management.
"""
import os
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout


class DatabaseConnectionPool:
    """
    PostgreSQL connection pool manager using psycopg3

    Accepts either a full connection string (as stored in a destination's
    location) or discrete parameters falling back to DB_* environment variables.
    """

    def __init__(
        self,
        conninfo: str | None = None,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 4,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize database connection pool

        Args:
            conninfo: libpq connection string or postgresql:// URL
            host: Database host (defaults to env var DB_HOST)
            port: Database port (defaults to env var DB_PORT)
            database: Database name (defaults to env var DB_NAME)
            user: Database user (defaults to env var DB_USER)
            password: Database password (defaults to env var DB_PASSWORD)
            min_size: Minimum pool size
            max_size: Maximum pool size
            timeout: Connection timeout in seconds
        """
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout

        if conninfo:
            self.conninfo = conninfo
        else:
            host = host or os.getenv("DB_HOST", "localhost")
            port = port or int(os.getenv("DB_PORT", "5432"))
            database = database or os.getenv("DB_NAME", "etl")
            user = user or os.getenv("DB_USER", "etl")
            password = password or os.getenv("DB_PASSWORD")

            if not password:
                raise ValueError(
                    "Database password must be provided. "
                    "Set DB_PASSWORD environment variable or pass a connection string."
                )

            self.conninfo = (
                f"host={host} "
                f"port={port} "
                f"dbname={database} "
                f"user={user} "
                f"password={password} "
                f"connect_timeout={int(self.timeout)}"
            )

        self._pool: ConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the connection pool with retry logic.

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Delay between retries in seconds

        Raises:
            OperationalError: If connection fails after all retries
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )

        for attempt in range(1, max_retries + 1):
            try:
                pool.open(wait=True, timeout=self.timeout)
                self._pool = pool
                return
            except (OperationalError, PoolTimeout) as e:
                if attempt < max_retries:
                    time.sleep(retry_delay)
                else:
                    pool.close()
                    raise OperationalError(
                        f"Failed to connect to database after {max_retries} attempts: {e}"
                    ) from e

    def close(self) -> None:
        """Close the connection pool"""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Get a connection from the pool

        Yields:
            psycopg.Connection: Database connection

        Raises:
            RuntimeError: If pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    def execute_query(self, query, params: tuple | None = None) -> list[dict]:
        """
        Execute a SELECT query and return results

        Returns:
            List of dictionaries (one per row)
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def execute_command(self, command, params: tuple | None = None) -> int:
        """
        Execute an INSERT/UPDATE/DELETE command in its own transaction

        Returns:
            Number of rows affected
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                rowcount = cur.rowcount
            conn.commit()
            return rowcount

    def __enter__(self):
        """Context manager entry"""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()
        return False
