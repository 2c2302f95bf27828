"""
DDL fan-out for shard tables.

Table creation sits outside the query engine: callers provide one
``CREATE TABLE`` statement written against the base table name and these
helpers replay it once per physical shard.

Example:
    create_all_sharding_tables(
        store,
        HashShardingStrategy("users", "user_id", 4),
        "CREATE TABLE users (user_id INTEGER PRIMARY KEY, name TEXT)",
    )
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional

from tableshard.engine.tables import resolve_table_names
from tableshard.errors import StoreExecutionError, StrategyMisconfigured
from tableshard.infrastructure.store import ShardStore
from tableshard.strategies.abstract import ShardingStrategy
from tableshard.utils.logging import get_logger

log = get_logger(__name__)

_CREATE_TABLE = re.compile(r"^\s*CREATE\s+TABLE\s+(?!IF\s+NOT\s+EXISTS\b)", re.IGNORECASE)


def statement_for_table(create_sql: str, base_table_name: str, table_name: str) -> str:
    """Rewrite whole-word occurrences of the base table name to ``table_name``."""
    pattern = re.compile(r"\b" + re.escape(base_table_name) + r"\b")
    return pattern.sub(table_name, create_sql)


def if_not_exists(create_sql: str) -> str:
    return _CREATE_TABLE.sub("CREATE TABLE IF NOT EXISTS ", create_sql, count=1)


def generate_table_statements(
    strategy: ShardingStrategy,
    create_sql: str,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> List[str]:
    """One DDL statement per shard table (time strategies use ``[start, end]`` or the default window)."""
    base_table_name = strategy.get_base_table_name()
    return [
        statement_for_table(create_sql, base_table_name, table)
        for table in resolve_table_names(strategy, start, end)
    ]


def _already_exists(exc: StoreExecutionError) -> bool:
    return "already exists" in str(exc).lower()


def create_all_sharding_tables(
    store: ShardStore,
    strategy: ShardingStrategy,
    create_sql: str,
    skip_if_exists: bool = True,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> List[str]:
    """
    Create every shard table for ``strategy``.

    With ``skip_if_exists`` the statement is rewritten to ``CREATE TABLE IF NOT
    EXISTS`` and "already exists" failures are ignored. Returns the physical
    table names.
    """
    base_table_name = strategy.get_base_table_name()
    tables = resolve_table_names(strategy, start, end)
    for table in tables:
        sql = statement_for_table(create_sql, base_table_name, table)
        if skip_if_exists:
            sql = if_not_exists(sql)
        try:
            store.execute_script(sql)
        except StoreExecutionError as exc:
            if skip_if_exists and _already_exists(exc):
                continue
            raise StoreExecutionError(f"failed to create table {table}: {exc}", (table,)) from exc
    log.info("Shard tables created", extra={"base_table": base_table_name, "tables": len(tables)})
    return tables


def ensure_table_exists(
    store: ShardStore,
    strategy: ShardingStrategy,
    sharding_value: Any,
    create_sql: str,
) -> str:
    """Create the single shard that ``sharding_value`` routes to, if missing; return its name."""
    base_table_name = strategy.get_base_table_name()
    table = strategy.get_table_name(base_table_name, sharding_value)
    if not store.table_exists(table):
        store.execute_script(if_not_exists(statement_for_table(create_sql, base_table_name, table)))
        log.info("Shard table created on demand", extra={"base_table": base_table_name, "table": table})
    return table


def migrate_all(
    store: ShardStore,
    strategies: Iterable[ShardingStrategy],
    statements: Mapping[str, str],
    skip_if_exists: bool = True,
) -> List[str]:
    """
    Create shard tables for several strategies, keyed by base table name.

    Raises
    ------
    StrategyMisconfigured
        If a strategy has no statement in ``statements``.
    """
    created: List[str] = []
    for strategy in strategies:
        base_table_name = strategy.get_base_table_name()
        if base_table_name not in statements:
            raise StrategyMisconfigured(f"no CREATE TABLE statement for {base_table_name}")
        created.extend(
            create_all_sharding_tables(store, strategy, statements[base_table_name], skip_if_exists)
        )
    return created


__all__ = [
    "create_all_sharding_tables",
    "ensure_table_exists",
    "generate_table_statements",
    "if_not_exists",
    "migrate_all",
    "statement_for_table",
]
