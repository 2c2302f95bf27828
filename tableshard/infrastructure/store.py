"""
Store collaborator contract and shared SQL rendering.

The engine never talks to a driver directly: it hands a physical table name
(or a ``JoinPlan``) plus a ``Query`` to a ``ShardStore``. Stores signal a
table that has not been created yet with the typed ``ShardNotFoundError``;
every other failure is a ``StoreExecutionError``.
"""

from __future__ import annotations

import abc
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from tableshard.domain.models import JoinType, ResultRecord
from tableshard.errors import ShardNotFoundError, StoreError, StoreExecutionError
from tableshard.query import Query

# Driver messages that mean "this shard (or a column on it) is not there".
MISSING_SHARD_PHRASES = (
    "doesn't exist",
    "does not exist",
    "unknown table",
    "unknown column",
    "no such table",
    "no such column",
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


def is_missing_shard_message(message: str) -> bool:
    """Substring classification for drivers that have no typed not-found error."""
    lowered = message.lower()
    if any(phrase in lowered for phrase in MISSING_SHARD_PHRASES):
        return True
    return "table" in lowered and "not found" in lowered


def quote_identifier(name: str) -> str:
    """Double-quote a (optionally schema-qualified) identifier after validating it."""
    parts = name.split(".")
    for part in parts:
        if not _IDENTIFIER.match(part):
            raise ValueError(f"invalid SQL identifier: {name!r}")
    return ".".join(f'"{part}"' for part in parts)


def validate_alias(alias: str) -> str:
    if not _IDENTIFIER.match(alias):
        raise ValueError(f"invalid table alias: {alias!r}")
    return alias


@dataclass(frozen=True)
class TableRef:
    physical: str
    alias: Optional[str] = None


@dataclass(frozen=True)
class JoinClause:
    join_type: JoinType
    table: TableRef
    on_condition: str


@dataclass(frozen=True)
class JoinPlan:
    """One shard tuple: the main table plus ordered join clauses."""

    main: TableRef
    joins: Tuple[JoinClause, ...] = ()

    @property
    def tables(self) -> Tuple[str, ...]:
        return (self.main.physical,) + tuple(clause.table.physical for clause in self.joins)


@runtime_checkable
class ShardStore(Protocol):
    """Operations the cross-shard engine consumes from the backing store."""

    def execute_filtered_query(self, table: str, query: Query) -> List[ResultRecord]:
        ...

    def execute_count(self, table: str, query: Query) -> int:
        ...

    def execute_join(self, plan: JoinPlan, query: Query) -> List[ResultRecord]:
        ...

    def execute_join_count(self, plan: JoinPlan, query: Query) -> int:
        ...

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        ...

    def execute_script(self, sql: str) -> None:
        ...

    def table_exists(self, table: str) -> bool:
        ...


def _render_table(ref: TableRef) -> str:
    if ref.alias:
        return f"{quote_identifier(ref.physical)} AS {validate_alias(ref.alias)}"
    return quote_identifier(ref.physical)


def render_source(plan: JoinPlan) -> str:
    parts = [_render_table(plan.main)]
    for clause in plan.joins:
        join_type = JoinType(clause.join_type).value
        on_condition = clause.on_condition or "1=1"
        parts.append(f"{join_type} JOIN {_render_table(clause.table)} ON {on_condition}")
    return " ".join(parts)


class SQLShardStore(abc.ABC):
    """
    Base for DB-API backed stores.

    Subclasses provide row fetching, statement execution, error translation
    and table existence checks; SQL text is rendered here with ``%s``
    placeholders and rewritten to the driver's ``placeholder``.
    """

    placeholder: str = "%s"
    # Needed by dialects that reject OFFSET without LIMIT.
    unbounded_limit: Optional[str] = None
    driver_errors: Tuple[type, ...] = ()

    @abc.abstractmethod
    def _fetch(self, sql: str, params: Sequence[Any]) -> List[ResultRecord]:
        raise NotImplementedError

    @abc.abstractmethod
    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _execute_script(self, sql: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def table_exists(self, table: str) -> bool:
        raise NotImplementedError

    def _translate_error(self, exc: Exception, tables: Sequence[str]) -> StoreError:
        message = f"{', '.join(tables) or 'store'}: {exc}"
        if is_missing_shard_message(str(exc)):
            return ShardNotFoundError(message, tables)
        return StoreExecutionError(message, tables)

    def _prepare(self, sql: str) -> str:
        if self.placeholder == "%s":
            return sql
        return sql.replace("%s", self.placeholder)

    def render_select(self, source: str, query: Query) -> Tuple[str, Tuple[Any, ...]]:
        columns = ", ".join(query.columns) if query.columns else "*"
        sql = f"SELECT {columns} FROM {source}"
        params = query.params
        if query.conditions:
            sql += " WHERE " + " AND ".join(f"({clause})" for clause, _ in query.conditions)
        if query.ordering:
            sql += " ORDER BY " + ", ".join(query.ordering)
        if query.limit_value is not None:
            sql += " LIMIT %s"
            params += (query.limit_value,)
        elif query.offset_value is not None and self.unbounded_limit is not None:
            sql += f" LIMIT {self.unbounded_limit}"
        if query.offset_value is not None:
            sql += " OFFSET %s"
            params += (query.offset_value,)
        return sql, params

    def render_count(self, source: str, query: Query) -> Tuple[str, Tuple[Any, ...]]:
        sql = f"SELECT COUNT(*) AS total FROM {source}"
        if query.conditions:
            sql += " WHERE " + " AND ".join(f"({clause})" for clause, _ in query.conditions)
        return sql, query.params

    def _query(self, sql: str, params: Sequence[Any], tables: Sequence[str]) -> List[ResultRecord]:
        try:
            return self._fetch(self._prepare(sql), params)
        except self.driver_errors as exc:
            raise self._translate_error(exc, tables) from exc

    def _scalar(self, sql: str, params: Sequence[Any], tables: Sequence[str]) -> int:
        rows = self._query(sql, params, tables)
        if not rows:
            return 0
        return int(next(iter(rows[0].values())) or 0)

    def execute_filtered_query(self, table: str, query: Query) -> List[ResultRecord]:
        sql, params = self.render_select(quote_identifier(table), query)
        return self._query(sql, params, (table,))

    def execute_count(self, table: str, query: Query) -> int:
        sql, params = self.render_count(quote_identifier(table), query)
        return self._scalar(sql, params, (table,))

    def execute_join(self, plan: JoinPlan, query: Query) -> List[ResultRecord]:
        sql, params = self.render_select(render_source(plan), query)
        return self._query(sql, params, plan.tables)

    def execute_join_count(self, plan: JoinPlan, query: Query) -> int:
        sql, params = self.render_count(render_source(plan), query)
        return self._scalar(sql, params, plan.tables)

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        if not row:
            raise ValueError(f"cannot insert an empty row into {table}")
        columns = ", ".join(quote_identifier(column) for column in row)
        values = ", ".join(["%s"] * len(row))
        sql = f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES ({values})"
        try:
            self._execute(self._prepare(sql), tuple(row.values()))
        except self.driver_errors as exc:
            raise self._translate_error(exc, (table,)) from exc

    def execute_script(self, sql: str) -> None:
        try:
            self._execute_script(sql)
        except self.driver_errors as exc:
            raise StoreExecutionError(f"script failed: {exc}") from exc


__all__ = [
    "JoinClause",
    "JoinPlan",
    "MISSING_SHARD_PHRASES",
    "SQLShardStore",
    "ShardStore",
    "TableRef",
    "is_missing_shard_message",
    "quote_identifier",
    "render_source",
    "validate_alias",
]
