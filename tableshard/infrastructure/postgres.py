"""
PostgreSQL shard store backed by psycopg 3 and psycopg_pool.

Missing shards are recognized by SQLSTATE (``UndefinedTable`` /
``UndefinedColumn``) rather than by message text.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator, List, Optional, Sequence

import psycopg
from psycopg import Connection
from psycopg import errors as pg_errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tableshard.config import get_settings
from tableshard.domain.models import ResultRecord
from tableshard.errors import ShardNotFoundError, StoreError, StoreExecutionError
from tableshard.infrastructure.db_factory import apply_statement_timeout, get_sync_pool
from tableshard.infrastructure.store import SQLShardStore

_TABLE_EXISTS_SQL = """
    SELECT EXISTS (
        SELECT FROM information_schema.tables
        WHERE table_schema = current_schema()
        AND table_name = %s
    ) AS present
"""


class PostgresShardStore(SQLShardStore):
    """
    ShardStore over a psycopg connection pool.

    Reads are retried on transient connection errors; inserts and scripts
    are not.
    """

    placeholder = "%s"
    driver_errors = (psycopg.Error,)

    def __init__(
        self,
        pool: Optional[ConnectionPool] = None,
        dsn_override: Optional[str] = None,
        statement_timeout_ms: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._owns_pool = False
        if pool is None and dsn_override:
            self._owns_pool = True
            pool = ConnectionPool(
                conninfo=dsn_override,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                open=True,
            )
        self._pool = pool
        self.statement_timeout_ms = (
            statement_timeout_ms if statement_timeout_ms is not None else settings.db_statement_timeout_ms
        )

    @property
    def pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = get_sync_pool()
        return self._pool

    @contextmanager
    def _connection(self) -> Generator[Connection, None, None]:
        with self.pool.connection() as conn:
            yield conn

    def _translate_error(self, exc: Exception, tables: Sequence[str]) -> StoreError:
        message = f"{', '.join(tables) or 'store'}: {exc}"
        if isinstance(exc, (pg_errors.UndefinedTable, pg_errors.UndefinedColumn)):
            return ShardNotFoundError(message, tables)
        return StoreExecutionError(message, tables)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
        reraise=True,
    )
    def _fetch(self, sql: str, params: Sequence[Any]) -> List[ResultRecord]:
        with self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                apply_statement_timeout(cur, self.statement_timeout_ms)
                cur.execute(sql, tuple(params))
                return list(cur.fetchall())

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        with self._connection() as conn:
            with conn.cursor() as cur:
                apply_statement_timeout(cur, self.statement_timeout_ms)
                cur.execute(sql, tuple(params))
            conn.commit()

    def _execute_script(self, sql: str) -> None:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
            conn.commit()

    def table_exists(self, table: str) -> bool:
        rows = self._query(_TABLE_EXISTS_SQL, (table,), (table,))
        return bool(rows and rows[0]["present"])

    def close(self) -> None:
        """Close a pool this store created; the shared pool is left to PoolManager."""
        if self._owns_pool and self._pool is not None:
            self._pool.close()
            self._pool = None


__all__ = ["PostgresShardStore"]
