"""
Cross-shard pagination.

The standard paths gather the full (deduplicated, for joins) result and
slice one page out of it in memory, so ``total`` always counts logical rows.
The optimized join path knows its single shard tuple up front and pushes
COUNT and OFFSET/LIMIT into that one query instead.

Pages start at 1. ``page < 1`` is treated as 1 and ``page_size < 1`` falls
back to ``Settings.default_page_size``.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from tableshard.config import get_settings
from tableshard.domain.fields import convert_records
from tableshard.domain.models import MultiJoinConfig, Paginator, normalize_page
from tableshard.engine.cross_table import cross_table_count, cross_table_query
from tableshard.engine.join import collect_join_rows, resolve_optimized_plan
from tableshard.infrastructure.store import ShardStore
from tableshard.query import QueryBuilder, build_query
from tableshard.strategies.abstract import ShardingStrategy
from tableshard.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def _normalize(page: int, page_size: Optional[int]) -> Tuple[int, int]:
    return normalize_page(page, page_size or 0, get_settings().default_page_size)


def paginate_records(records: Sequence[T], page: int, page_size: int) -> List[T]:
    """Slice page ``page`` out of ``records``; pages past the end are empty."""
    page, page_size = _normalize(page, page_size)
    offset = (page - 1) * page_size
    if offset >= len(records):
        return []
    return list(records[offset : offset + page_size])


def cross_table_paginate(
    store: ShardStore,
    strategy: ShardingStrategy,
    page: int = 1,
    page_size: Optional[int] = None,
    query_builder: Optional[QueryBuilder] = None,
    *,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
    record_type: Optional[Type[Any]] = None,
) -> Paginator:
    """One page of a single-table fan-out; ``total`` is the summed shard count."""
    page, page_size = _normalize(page, page_size)
    total = cross_table_count(store, strategy, query_builder, start=start, end=end)
    rows = cross_table_query(store, strategy, query_builder, start=start, end=end)
    data = convert_records(paginate_records(rows, page, page_size), record_type)
    return Paginator.build(page=page, page_size=page_size, total=total, data=data)


def multi_join_count(
    store: ShardStore,
    config: MultiJoinConfig,
    query_builder: Optional[QueryBuilder] = None,
) -> int:
    """Number of logical join rows after deduplication."""
    return len(collect_join_rows(store, config, build_query(query_builder)))


def multi_join_paginate(
    store: ShardStore,
    config: MultiJoinConfig,
    page: int = 1,
    page_size: Optional[int] = None,
    query_builder: Optional[QueryBuilder] = None,
    *,
    record_type: Optional[Type[Any]] = None,
) -> Paginator:
    """
    One page of a multi-way join.

    Rows from every shard tuple are gathered and deduplicated once; ``total``
    is the number of unique rows and the page is sliced from them.
    """
    page, page_size = _normalize(page, page_size)
    rows = collect_join_rows(store, config, build_query(query_builder))
    data = convert_records(paginate_records(rows, page, page_size), record_type)
    return Paginator.build(page=page, page_size=page_size, total=len(rows), data=data)


def multi_join_paginate_optimized(
    store: ShardStore,
    config: MultiJoinConfig,
    join_keys: Mapping[str, Any],
    page: int = 1,
    page_size: Optional[int] = None,
    query_builder: Optional[QueryBuilder] = None,
    *,
    record_type: Optional[Type[Any]] = None,
) -> Paginator:
    """
    One page of the single shard tuple resolved from ``join_keys``.

    COUNT and OFFSET/LIMIT run in the store; rows are not deduplicated.
    """
    page, page_size = _normalize(page, page_size)
    plan = resolve_optimized_plan(config, join_keys)
    query = build_query(query_builder)

    total = store.execute_join_count(plan, query.unbounded())
    rows = store.execute_join(plan, query.offset((page - 1) * page_size).limit(page_size))
    log.debug(
        "Optimized multi-join page",
        extra={"tables": list(plan.tables), "page": page, "page_size": page_size, "total": total},
    )
    return Paginator.build(page=page, page_size=page_size, total=total, data=convert_records(rows, record_type))


def multi_join_count_with_time_range(
    store: ShardStore,
    config: MultiJoinConfig,
    query_builder: Optional[QueryBuilder] = None,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> int:
    """``multi_join_count`` with ``[start, end]`` applied to every time-sharded table."""
    return multi_join_count(store, config.with_time_range(start, end), query_builder)


def multi_join_paginate_with_time_range(
    store: ShardStore,
    config: MultiJoinConfig,
    page: int = 1,
    page_size: Optional[int] = None,
    query_builder: Optional[QueryBuilder] = None,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
    *,
    record_type: Optional[Type[Any]] = None,
) -> Paginator:
    return multi_join_paginate(
        store,
        config.with_time_range(start, end),
        page,
        page_size,
        query_builder,
        record_type=record_type,
    )


__all__ = [
    "cross_table_paginate",
    "multi_join_count",
    "multi_join_count_with_time_range",
    "multi_join_paginate",
    "multi_join_paginate_optimized",
    "multi_join_paginate_with_time_range",
    "paginate_records",
]
