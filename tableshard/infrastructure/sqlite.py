"""
Embedded SQLite shard store.

Useful for local development, the CLI demo and unit tests: physical shard
tables live in one SQLite database. SQLite has no typed "undefined table"
error, so missing shards are recognized from the message text
("no such table" / "no such column").
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Any, List, Sequence

from tableshard.domain.models import ResultRecord
from tableshard.infrastructure.store import SQLShardStore


class SQLiteShardStore(SQLShardStore):
    """ShardStore over a single ``sqlite3`` connection (``:memory:`` by default)."""

    placeholder = "?"
    unbounded_limit = "-1"
    driver_errors = (sqlite3.Error,)

    def __init__(self, database: str = ":memory:") -> None:
        self.database = database
        self._conn = sqlite3.connect(database, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()

    def _fetch(self, sql: str, params: Sequence[Any]) -> List[ResultRecord]:
        with self._lock:
            cursor = self._conn.execute(sql, tuple(params))
            return [dict(row) for row in cursor.fetchall()]

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        with self._lock:
            with self._conn:
                self._conn.execute(sql, tuple(params))

    def _execute_script(self, sql: str) -> None:
        with self._lock:
            self._conn.executescript(sql)

    def table_exists(self, table: str) -> bool:
        rows = self._query(
            "SELECT COUNT(*) AS present FROM sqlite_master WHERE type = 'table' AND name = %s",
            (table,),
            (table,),
        )
        return bool(rows and rows[0]["present"])

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLiteShardStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["SQLiteShardStore"]
