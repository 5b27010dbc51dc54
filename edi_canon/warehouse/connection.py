"""
PostgreSQL access for the warehouse adapters, using psycopg3 and psycopg_pool.

All adapters (canonical store, stage tracker, product catalog) borrow
connections from one DatabaseConnectionPool. Writes that must land together
go through ``transaction()``, which can also take a transaction-scoped
advisory lock so writers of the same purchase order queue behind each other.
"""
import os
import time
from contextlib import contextmanager
from typing import Iterator, Sequence

from psycopg import Connection, Cursor, OperationalError
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from edi_canon.observability.logger import get_logger

logger = get_logger(__name__)

APPLICATION_NAME = "edi-canon"


class DatabaseConnectionPool:
    """
    Connection pool for the canonical warehouse.

    Rows come back as dictionaries. Each ingestion worker holds one
    connection for the whole unit of work of a record, so ``max_size``
    must stay above the worker count.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize database connection pool

        Args:
            host: Database host (defaults to env var DB_HOST)
            port: Database port (defaults to env var DB_PORT)
            database: Database name (defaults to env var DB_NAME)
            user: Database user (defaults to env var DB_USER)
            password: Database password (defaults to env var DB_PASSWORD)
            min_size: Minimum pool size
            max_size: Maximum pool size
            timeout: Seconds to wait for a connection

        Raises:
            ValueError: If no password is configured
        """
        self.host = host or os.getenv("DB_HOST", "localhost")
        self.port = port or int(os.getenv("DB_PORT", "5432"))
        self.database = database or os.getenv("DB_NAME", "edi_canon")
        self.user = user or os.getenv("DB_USER", "edi")
        self.password = password or os.getenv("DB_PASSWORD")
        if not self.password:
            raise ValueError(
                "Database password must be provided. "
                "Set DB_PASSWORD environment variable or pass to constructor."
            )

        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.conninfo = " ".join([
            f"host={self.host}",
            f"port={self.port}",
            f"dbname={self.database}",
            f"user={self.user}",
            f"password={self.password}",
            f"application_name={APPLICATION_NAME}",
            f"connect_timeout={int(self.timeout)}",
        ])

        self._pool: ConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, waiting for ``min_size`` connections.

        The database container may still be starting, so failed attempts
        are retried.

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Delay between attempts in seconds

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

        attempt = 1
        while True:
            try:
                pool.open(wait=True, timeout=self.timeout)
                break
            except (OperationalError, TimeoutError) as e:
                if attempt >= max_retries:
                    pool.close()
                    raise OperationalError(
                        f"Failed to connect to database after {max_retries} attempts: {e}"
                    ) from e
                logger.warning(
                    f"Database not reachable (attempt {attempt}/{max_retries}): {e}",
                    extra={"host": self.host, "database": self.database},
                )
                attempt += 1
                time.sleep(retry_delay)

        self._pool = pool
        logger.info(
            "Database pool opened",
            extra={"host": self.host, "database": self.database, "max_size": self.max_size},
        )

    def close(self) -> None:
        """Close the connection pool"""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self) -> Iterator[Connection]:
        """
        Borrow a connection from the pool

        The connection commits when the block exits cleanly and rolls
        back when it raises.

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self, lock_key: str | None = None) -> Iterator[Connection]:
        """
        Run a block in one transaction.

        Args:
            lock_key: When given, hold ``pg_advisory_xact_lock`` on this key
                until the transaction ends

        Yields:
            psycopg.Connection inside an open transaction
        """
        with self.get_connection() as conn:
            with conn.transaction():
                if lock_key is not None:
                    conn.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (lock_key,))
                yield conn

    @contextmanager
    def get_cursor(self) -> Iterator[Cursor]:
        """Cursor on a pooled connection, committed when the block exits cleanly."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                yield cur

    def execute_query(self, query: str, params: Sequence | None = None) -> list[dict]:
        """
        Execute a statement and return its rows

        Args:
            query: SELECT, or a command with RETURNING
            params: Query parameters (optional)

        Returns:
            List of dictionaries (one per row)
        """
        with self.get_cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def execute_command(self, command: str, params: Sequence | None = None) -> int:
        """
        Execute an INSERT/UPDATE/DELETE command

        Returns:
            Number of rows affected
        """
        with self.get_cursor() as cur:
            cur.execute(command, params)
            return cur.rowcount

    def execute_batch(self, command: str, params_list: list[Sequence]) -> None:
        """Execute one command for many parameter sets in a single transaction."""
        with self.transaction() as conn:
            with conn.cursor() as cur:
                cur.executemany(command, params_list)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
