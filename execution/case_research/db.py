"""
PostgreSQL Connection Handling

Shared by the document search backend and the curated legal corpus. Uses a
psycopg2 threaded pool so one store instance can serve concurrent requests,
and retries an operation once when the pooled connection turns out to be
stale.
"""

import os
import logging
import threading
from typing import Optional
from dataclasses import dataclass

import psycopg2
import psycopg2.pool
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Connection settings for a Postgres-backed store."""
    connection_string: Optional[str] = None
    pool_min_connections: int = 1
    pool_max_connections: int = 10


class PostgresStore:
    """
    Base class for read-only Postgres lookups.

    Subclasses build SQL and call _fetch_all(); connection pooling, dict
    rows, rollback, and the single stale-connection retry live here.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None, pool=None):
        """
        Args:
            config: Optional configuration. Uses env vars if not provided.
            pool: Pre-built connection pool (skips connect())
        """
        self.db_config = config or DatabaseConfig()
        self._pool = pool
        self._pool_lock = threading.Lock()
        self._connection_string = (
            self.db_config.connection_string or
            os.getenv("POSTGRES_URL") or
            os.getenv("DATABASE_URL") or
            "postgresql://localhost:5432/case_research"
        )

    def connect(self) -> None:
        """Create the connection pool if it does not exist yet."""
        with self._pool_lock:
            if self._pool is not None:
                return
            try:
                self._pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self.db_config.pool_min_connections,
                    maxconn=self.db_config.pool_max_connections,
                    dsn=self._connection_string,
                    cursor_factory=RealDictCursor,
                )
                logger.info(
                    f"Connection pool initialized (min={self.db_config.pool_min_connections}, "
                    f"max={self.db_config.pool_max_connections})"
                )
            except Exception as e:
                logger.error(f"Database connection failed: {e}")
                raise

    def close(self) -> None:
        """Close all pooled connections. Only call once no request is in flight."""
        with self._pool_lock:
            if self._pool:
                self._pool.closeall()
                self._pool = None
                logger.info("Connection pool closed")

    def _ensure_connection(self):
        if self._pool is None:
            self.connect()
        pool = self._pool
        return pool, pool.getconn()

    def _safe_rollback(self, conn) -> None:
        """Rollback a connection, ignoring errors if the connection is dead."""
        try:
            conn.rollback()
        except (psycopg2.InterfaceError, psycopg2.OperationalError):
            pass

    def _execute_with_retry(self, operation, label="db_operation"):
        """Execute a DB operation with one retry on stale connection.

        A stale connection is discarded from the pool on its own; the shared
        pool and every other in-flight connection are left untouched. Each
        connection goes back to the pool it came from exactly once.

        Args:
            operation: Callable(conn) that performs the DB work and returns a result.
            label: Human-readable name for logging.

        Returns:
            Whatever ``operation`` returns.
        """
        for attempt in range(2):
            pool, conn = self._ensure_connection()
            discard = False
            try:
                return operation(conn)
            except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
                self._safe_rollback(conn)
                discard = True
                if attempt == 0:
                    logger.warning(f"{label}: stale conn, retrying on a fresh one: {e}")
                    continue
                raise
            except Exception:
                self._safe_rollback(conn)
                raise
            finally:
                pool.putconn(conn, close=discard)

    def _fetch_all(self, sql: str, params: list, label: str) -> list[dict]:
        """Run a SELECT and return rows as plain dicts."""
        def _op(conn):
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
            conn.rollback()  # read-only: end the implicit transaction
            return [dict(row) for row in rows]

        return self._execute_with_retry(_op, label)
