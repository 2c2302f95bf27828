"""
Cross-shard query and count over a single logical table.

Shards are visited one after another in enumeration order. A shard that does
not exist yet is skipped; any other store failure aborts the whole fan-out
and propagates, so callers never see a partial result. Rows are concatenated
in shard order; no global ordering is applied across shards.
"""

from __future__ import annotations

import time
from typing import Any, Callable, List, Optional, Sequence, Type, TypeVar

from tableshard.domain.fields import convert_records
from tableshard.domain.models import ResultRecord
from tableshard.engine.tables import resolve_table_names
from tableshard.errors import ShardNotFoundError
from tableshard.infrastructure.store import ShardStore
from tableshard.query import QueryBuilder, build_query
from tableshard.strategies.abstract import ShardingStrategy
from tableshard.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def fan_out(
    tables: Sequence[Any],
    run: Callable[[Any], T],
    *,
    base_table: str,
) -> List[T]:
    """
    Run ``run`` against every table in order, skipping missing shards.

    Parameters
    ----------
    tables : Sequence[Any]
        Physical tables (or join tuples) to visit.
    run : Callable[[Any], T]
        Per-shard operation; may raise ``ShardNotFoundError``.
    base_table : str
        Logical table name, used for logging only.
    """
    results: List[T] = []
    skipped = 0
    start = time.perf_counter()
    for table in tables:
        try:
            results.append(run(table))
        except ShardNotFoundError:
            skipped += 1
            log.debug("Skipping missing shard", extra={"base_table": base_table, "table": table})
    log.debug(
        "Fan-out finished",
        extra={
            "base_table": base_table,
            "tables": len(tables),
            "skipped": skipped,
            "duration_seconds": round(time.perf_counter() - start, 6),
        },
    )
    return results


def cross_table_query(
    store: ShardStore,
    strategy: ShardingStrategy,
    query_builder: Optional[QueryBuilder] = None,
    *,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
    record_type: Optional[Type[Any]] = None,
) -> List[Any]:
    """
    Run one filtered query against every shard of ``strategy`` and concatenate the rows.

    ``start``/``end`` bound the shard window for time-sharded tables; without
    them the default lookback is used. ``record_type`` converts rows into
    caller types (plain dicts when omitted).
    """
    base_table = strategy.get_base_table_name()
    tables = resolve_table_names(strategy, start, end)
    query = build_query(query_builder)

    batches = fan_out(
        tables,
        lambda table: store.execute_filtered_query(table, query),
        base_table=base_table,
    )
    rows: List[ResultRecord] = [row for batch in batches for row in batch]
    log.info("Cross-table query", extra={"base_table": base_table, "tables": len(tables), "rows": len(rows)})
    return convert_records(rows, record_type)


def cross_table_count(
    store: ShardStore,
    strategy: ShardingStrategy,
    query_builder: Optional[QueryBuilder] = None,
    *,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> int:
    """Sum of per-shard counts; rows are not deduplicated across shards."""
    base_table = strategy.get_base_table_name()
    tables = resolve_table_names(strategy, start, end)
    query = build_query(query_builder).unbounded()

    counts = fan_out(tables, lambda table: store.execute_count(table, query), base_table=base_table)
    return sum(counts)


__all__ = ["cross_table_count", "cross_table_query", "fan_out"]
