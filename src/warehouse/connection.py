"""
Destination connection handling using psycopg3 and psycopg_pool.

An import run is one sequential worker, so a single small pool serves every
query of the run. Each write runs in its own transaction: a failing batch is
rolled back on its own and never poisons the connection for the next one.
"""
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg.sql import Composable
from psycopg_pool import ConnectionPool, PoolTimeout

from src.core.exceptions import DestinationUnavailableError

Query = str | Composable


class DatabaseConnectionPool:
    """
    Connection pool for the destination database.

    Usage:
        with DatabaseConnectionPool.from_settings(settings) as pool:
            pool.check_connection()
            rows = pool.execute_query("SELECT 1")
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "hemera_db",
        user: str = "hemera_user",
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 2,
        timeout: float = 30.0,
    ) -> None:
        """
        Describe the destination; nothing is opened until ``open()``.

        Args:
            host: Destination host
            port: Destination port
            database: Destination database name
            user: Destination user
            password: Destination password (required)
            min_size: Connections kept open
            max_size: Upper bound on open connections
            timeout: Seconds to wait for a connection

        Raises:
            ValueError: If no password is given
        """
        if not password:
            raise ValueError(
                "Database password is not set. "
                "Set DB_PASSWORD (environment or .env) or pass --db-password."
            )

        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.min_size = min_size
        self.max_size = max(max_size, min_size)
        self.timeout = timeout

        self.conninfo = make_conninfo(
            host=host,
            port=port,
            dbname=database,
            user=user,
            password=password,
            connect_timeout=int(timeout),
        )
        self._pool: ConnectionPool | None = None

    @classmethod
    def from_settings(cls, settings) -> "DatabaseConnectionPool":
        """Build a pool from MigrationSettings."""
        return cls(
            host=settings.db_host,
            port=settings.db_port,
            database=settings.db_name,
            user=settings.db_user,
            password=settings.db_password,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            timeout=settings.connect_timeout,
        )

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}/{self.database}"

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the server is unreachable.

        Raises:
            DestinationUnavailableError: If every attempt fails
        """
        if self._pool is not None:
            return

        for attempt in range(1, max_retries + 1):
            pool = ConnectionPool(
                conninfo=self.conninfo,
                min_size=self.min_size,
                max_size=self.max_size,
                timeout=self.timeout,
                kwargs={"row_factory": dict_row},
                open=False,
            )
            try:
                pool.open(wait=True, timeout=self.timeout)
            except (OperationalError, PoolTimeout) as e:
                pool.close()
                if attempt == max_retries:
                    raise DestinationUnavailableError(
                        f"Could not connect to {self.target} after {max_retries} attempts: {e}"
                    ) from e
                time.sleep(retry_delay)
            else:
                self._pool = pool
                return

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    def check_connection(self) -> None:
        """
        Run a trivial query against the destination.

        Raises:
            DestinationUnavailableError: If the query fails
        """
        try:
            self.execute_query("SELECT 1 AS ok")
        except (OperationalError, PoolTimeout, RuntimeError) as e:
            raise DestinationUnavailableError(f"Database connection failed: {e}") from e

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection from the pool.

        The transaction commits when the block exits cleanly and rolls back
        when it raises.

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    def execute_query(self, query: Query, params: tuple | dict | None = None) -> list[dict]:
        """Run a read query and return its rows as dicts."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def execute_command(self, command: Query, params: tuple | dict | list | None = None) -> int:
        """
        Run one write statement in its own transaction.

        Returns:
            Rows affected; rows skipped by ON CONFLICT DO NOTHING are not counted
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                return cur.rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
