"""
Per-application registry of sharding strategies.

``ShardRouter`` is the explicit routing stage for writes: a record is mapped
to its physical table before anything touches the store, and the insert goes
straight to that table. Reads delegate to the cross-shard engine by base
table name.

Usage:
    router = ShardRouter(store)
    router.register(HashShardingStrategy("users", "user_id", 4))
    router.create({"user_id": 42, "name": "ada"})  # returns the physical table
    router.find_all("users", lambda q: q.where("name = %s", "ada"))
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Type

from tableshard.domain.fields import convert_records, record_to_row
from tableshard.domain.models import Paginator
from tableshard.engine.cross_table import cross_table_count, cross_table_query
from tableshard.engine.pagination import cross_table_paginate
from tableshard.errors import FieldNotFound, ShardResolutionError, StrategyMisconfigured
from tableshard.infrastructure.store import ShardStore
from tableshard.migrate import ensure_table_exists
from tableshard.query import QueryBuilder, build_query
from tableshard.strategies.abstract import ShardingStrategy
from tableshard.utils.logging import get_logger

log = get_logger(__name__)


class ShardRouter:
    """Strategies keyed by base table name, bound to one store."""

    def __init__(self, store: ShardStore) -> None:
        self.store = store
        self._strategies: Dict[str, ShardingStrategy] = {}
        self._create_sql: Dict[str, str] = {}

    def register(self, strategy: ShardingStrategy, create_sql: Optional[str] = None) -> None:
        """
        Register ``strategy`` under its base table name, replacing any previous one.

        With ``create_sql`` the router creates a missing target shard on insert.
        """
        base_table_name = strategy.get_base_table_name()
        self._strategies[base_table_name] = strategy
        if create_sql:
            self._create_sql[base_table_name] = create_sql
        else:
            self._create_sql.pop(base_table_name, None)
        log.debug("Strategy registered", extra={"base_table": base_table_name, "strategy": repr(strategy)})

    @property
    def base_tables(self) -> List[str]:
        return list(self._strategies)

    def get_strategy(self, base_table: str) -> ShardingStrategy:
        try:
            return self._strategies[base_table]
        except KeyError:
            raise StrategyMisconfigured(f"strategy not found for table: {base_table}") from None

    def _route(self, record: Any, base_table: Optional[str]) -> Tuple[str, ShardingStrategy, Any]:
        if base_table is not None:
            strategy = self.get_strategy(base_table)
            return base_table, strategy, strategy.get_sharding_value(record)

        for name, strategy in self._strategies.items():
            try:
                return name, strategy, strategy.get_sharding_value(record)
            except FieldNotFound:
                continue
        raise ShardResolutionError(f"no matching sharding strategy found for {type(record).__name__}")

    def resolve_table(self, record: Any, base_table: Optional[str] = None) -> str:
        """
        Physical table ``record`` belongs in.

        Without ``base_table`` the first registered strategy able to extract
        its key from the record wins.
        """
        name, strategy, value = self._route(record, base_table)
        return strategy.get_table_name(name, value)

    def create(self, record: Any, base_table: Optional[str] = None) -> str:
        """Route ``record`` and insert it; returns the physical table name."""
        name, strategy, value = self._route(record, base_table)
        create_sql = self._create_sql.get(name)
        if create_sql:
            table = ensure_table_exists(self.store, strategy, value, create_sql)
        else:
            table = strategy.get_table_name(name, value)
        self.store.insert(table, record_to_row(record))
        log.debug("Record inserted", extra={"base_table": name, "table": table})
        return table

    def find(
        self,
        base_table: str,
        sharding_value: Any,
        query_builder: Optional[QueryBuilder] = None,
        record_type: Optional[Type[Any]] = None,
    ) -> List[Any]:
        """Query the single shard ``sharding_value`` routes to; a missing shard propagates."""
        strategy = self.get_strategy(base_table)
        table = strategy.get_table_name(base_table, sharding_value)
        rows = self.store.execute_filtered_query(table, build_query(query_builder))
        return convert_records(rows, record_type)

    def find_all(
        self,
        base_table: str,
        query_builder: Optional[QueryBuilder] = None,
        record_type: Optional[Type[Any]] = None,
        *,
        start: Optional[Any] = None,
        end: Optional[Any] = None,
    ) -> List[Any]:
        return cross_table_query(
            self.store,
            self.get_strategy(base_table),
            query_builder,
            start=start,
            end=end,
            record_type=record_type,
        )

    def count_all(
        self,
        base_table: str,
        query_builder: Optional[QueryBuilder] = None,
        *,
        start: Optional[Any] = None,
        end: Optional[Any] = None,
    ) -> int:
        return cross_table_count(self.store, self.get_strategy(base_table), query_builder, start=start, end=end)

    def paginate(
        self,
        base_table: str,
        page: int = 1,
        page_size: Optional[int] = None,
        query_builder: Optional[QueryBuilder] = None,
        record_type: Optional[Type[Any]] = None,
        *,
        start: Optional[Any] = None,
        end: Optional[Any] = None,
    ) -> Paginator:
        return cross_table_paginate(
            self.store,
            self.get_strategy(base_table),
            page,
            page_size,
            query_builder,
            start=start,
            end=end,
            record_type=record_type,
        )


__all__ = ["ShardRouter"]
