"""
Shard-table enumeration.

Hash, range, modulo and custom strategies enumerate a fixed shard set. Time
strategies enumerate inside a window: the caller's ``[start, end]`` when
given, otherwise the default lookback ending now.
"""

from __future__ import annotations

from typing import Any, List, Optional

from tableshard.errors import StrategyMisconfigured
from tableshard.strategies.abstract import RangeEnumerableStrategy, ShardingStrategy
from tableshard.strategies.time_sharding import default_window


def resolve_table_names(
    strategy: ShardingStrategy,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> List[str]:
    """
    Physical tables a fan-out over ``strategy`` must visit.

    Raises
    ------
    StrategyMisconfigured
        If the strategy yields no table names.
    """
    base_table_name = strategy.get_base_table_name()
    if isinstance(strategy, RangeEnumerableStrategy):
        if start is not None and end is not None:
            tables = strategy.get_all_table_names_in_range_with_values(base_table_name, start, end)
        else:
            window_start, window_end = default_window()
            tables = strategy.get_all_table_names_in_range(base_table_name, window_start, window_end)
    else:
        tables = strategy.get_all_table_names(base_table_name)

    if not tables:
        raise StrategyMisconfigured(f"strategy for {base_table_name} enumerates no tables")
    return list(tables)


__all__ = ["resolve_table_names"]
