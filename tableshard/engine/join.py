"""
Cross-shard joins.

A join over sharded tables runs once per shard tuple: the Cartesian product
of every participant's shard list, main table first. Each tuple becomes a
``JoinPlan`` whose tables are aliased (to the base name unless the caller
gives an alias) so ON conditions and query builders can keep referring to
logical names. Missing shards are skipped; any other failure aborts the join
and names the offending tuple.

The optimized path resolves exactly one tuple from known join-key values
and issues a single query.
"""

from __future__ import annotations

import itertools
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from tableshard.domain.fields import convert_records, to_snake_case
from tableshard.domain.models import JoinInfo, JoinType, MultiJoinConfig, ResultRecord
from tableshard.engine.cross_table import fan_out
from tableshard.engine.dedup import deduplicate_results
from tableshard.engine.tables import resolve_table_names
from tableshard.errors import ShardResolutionError, StoreExecutionError
from tableshard.infrastructure.store import JoinClause, JoinPlan, ShardStore, TableRef
from tableshard.query import Query, QueryBuilder, build_query
from tableshard.strategies.abstract import ShardingStrategy
from tableshard.utils.logging import get_logger

log = get_logger(__name__)


def generate_table_combinations(
    main_tables: Sequence[str], join_tables: Sequence[Sequence[str]]
) -> List[Tuple[str, ...]]:
    """
    Every shard tuple, main table first, in lexicographic order of the inputs.

    With no joined tables each main table forms a one-element tuple.
    """
    return list(itertools.product(main_tables, *join_tables))


def replace_table_names_in_condition(condition: str, aliases: Mapping[str, str]) -> str:
    """
    Rewrite ``base.`` column prefixes to ``alias.`` in an ON condition.

    Only whole-identifier prefixes are replaced, so ``users.id`` is rewritten
    while ``power_users.id`` is left alone.
    """
    for base_name, alias in aliases.items():
        if not base_name or base_name == alias:
            continue
        pattern = re.compile(r"(?<![\w.])" + re.escape(base_name) + r"\.")
        condition = pattern.sub(lambda _match, alias=alias: f"{alias}.", condition)
    return condition


def _participants(config: MultiJoinConfig) -> List[JoinInfo]:
    return [config.main_table, *config.join_tables]


def _alias_map(config: MultiJoinConfig) -> Dict[str, str]:
    return {info.base_table_name: info.effective_alias for info in _participants(config)}


def _window_for(config: MultiJoinConfig, info: JoinInfo) -> Tuple[Optional[Any], Optional[Any]]:
    window = config.time_ranges.get(info.base_table_name)
    if window is None:
        return None, None
    return window.start, window.end


def build_join_plan(config: MultiJoinConfig, combination: Sequence[str]) -> JoinPlan:
    """Turn one shard tuple into a plan with aliased tables and rewritten ON conditions."""
    aliases = _alias_map(config)
    main = TableRef(physical=combination[0], alias=config.main_table.effective_alias)
    clauses = tuple(
        JoinClause(
            join_type=JoinType(info.join_type),
            table=TableRef(physical=physical, alias=info.effective_alias),
            on_condition=replace_table_names_in_condition(info.on_condition, aliases),
        )
        for info, physical in zip(config.join_tables, combination[1:])
    )
    return JoinPlan(main=main, joins=clauses)


def join_combinations(config: MultiJoinConfig) -> List[Tuple[str, ...]]:
    """Shard tuples for ``config``, honoring per-table time windows."""
    lists = []
    for info in _participants(config):
        start, end = _window_for(config, info)
        lists.append(resolve_table_names(info.strategy, start, end))
    return generate_table_combinations(lists[0], lists[1:])


def collect_join_rows(store: ShardStore, config: MultiJoinConfig, query: Query) -> List[ResultRecord]:
    """Deduplicated rows of every shard tuple, before record conversion."""
    combinations = join_combinations(config)
    base_table = config.main_table.base_table_name

    def run(combination: Tuple[str, ...]) -> List[ResultRecord]:
        plan = build_join_plan(config, combination)
        try:
            return store.execute_join(plan, query)
        except StoreExecutionError as exc:
            raise StoreExecutionError(f"query error on tables {list(combination)}: {exc}", combination) from exc

    batches = fan_out(combinations, run, base_table=base_table)
    rows = [row for batch in batches for row in batch]
    unique = deduplicate_results(rows, config.deduplicate_fields)
    log.info(
        "Multi-join",
        extra={
            "base_table": base_table,
            "tables": len(combinations),
            "rows": len(rows),
            "unique_rows": len(unique),
        },
    )
    return unique


def multi_join(
    store: ShardStore,
    config: MultiJoinConfig,
    query_builder: Optional[QueryBuilder] = None,
    record_type: Optional[Type[Any]] = None,
) -> List[Any]:
    """
    Join the main table with every joined table across all shard tuples.

    Results are deduplicated with ``config.deduplicate_fields`` (or the
    default field groups) and optionally converted to ``record_type``.
    """
    rows = collect_join_rows(store, config, build_query(query_builder))
    return convert_records(rows, record_type)


def cross_table_join(
    store: ShardStore,
    left: ShardingStrategy,
    right: ShardingStrategy,
    join_type: JoinType,
    on_condition: str,
    query_builder: Optional[QueryBuilder] = None,
    *,
    deduplicate_fields: Optional[Sequence[Sequence[str]]] = None,
    record_type: Optional[Type[Any]] = None,
) -> List[Any]:
    """
    Two-table join over every (left shard, right shard) pair.

    Tables are aliased to their base names and ``on_condition`` is used
    verbatim. Rows are deduplicated only when ``deduplicate_fields`` is given.
    """
    left_base, right_base = left.get_base_table_name(), right.get_base_table_name()
    query = build_query(query_builder)
    combinations = generate_table_combinations(resolve_table_names(left), [resolve_table_names(right)])

    def run(pair: Tuple[str, ...]) -> List[ResultRecord]:
        plan = JoinPlan(
            main=TableRef(physical=pair[0], alias=left_base),
            joins=(
                JoinClause(
                    join_type=JoinType(join_type),
                    table=TableRef(physical=pair[1], alias=right_base),
                    on_condition=on_condition,
                ),
            ),
        )
        return store.execute_join(plan, query)

    batches = fan_out(combinations, run, base_table=left_base)
    rows: List[ResultRecord] = [row for batch in batches for row in batch]
    if deduplicate_fields:
        rows = deduplicate_results(rows, deduplicate_fields)
    log.info("Cross-table join", extra={"base_table": left_base, "tables": len(combinations), "rows": len(rows)})
    return convert_records(rows, record_type)


def _key_value_for(strategy: ShardingStrategy, join_keys: Mapping[str, Any]) -> Any:
    key = getattr(strategy, "sharding_key", None)
    if key:
        if join_keys.get(key) is not None:
            return join_keys[key]
        folded = to_snake_case(key).lower()
        for name, value in join_keys.items():
            if value is not None and to_snake_case(name).lower() == folded:
                return value
    for value in join_keys.values():
        if value is not None:
            return value
    raise ShardResolutionError(
        f"no join key value to route {strategy.get_base_table_name()} (keys: {sorted(join_keys)})"
    )


def resolve_optimized_plan(config: MultiJoinConfig, join_keys: Mapping[str, Any]) -> JoinPlan:
    """
    Resolve the single shard tuple addressed by ``join_keys``.

    Each table uses the value whose key matches its strategy's sharding key,
    else the first non-null value.
    """
    combination = tuple(
        info.strategy.get_table_name(info.base_table_name, _key_value_for(info.strategy, join_keys))
        for info in _participants(config)
    )
    return build_join_plan(config, combination)


def multi_join_optimized(
    store: ShardStore,
    config: MultiJoinConfig,
    join_keys: Mapping[str, Any],
    query_builder: Optional[QueryBuilder] = None,
    record_type: Optional[Type[Any]] = None,
) -> List[Any]:
    """
    Single-query join over the shard tuple resolved from ``join_keys``.

    No deduplication is applied and a missing shard propagates as
    ``ShardNotFoundError``.
    """
    plan = resolve_optimized_plan(config, join_keys)
    rows = store.execute_join(plan, build_query(query_builder))
    log.info(
        "Optimized multi-join",
        extra={"base_table": config.main_table.base_table_name, "tables": list(plan.tables), "rows": len(rows)},
    )
    return convert_records(rows, record_type)


__all__ = [
    "build_join_plan",
    "collect_join_rows",
    "cross_table_join",
    "generate_table_combinations",
    "join_combinations",
    "multi_join",
    "multi_join_optimized",
    "replace_table_names_in_condition",
    "resolve_optimized_plan",
]
