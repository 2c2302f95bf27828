"""
Strategies package for tableshard.

This module re-exports the strategy interfaces and the concrete strategy
classes so downstream code can import from `tableshard.strategies` directly.
"""

from tableshard.strategies.abstract import (
    AbstractShardingStrategy,
    RangeEnumerableStrategy,
    ShardingStrategy,
    format_shard_name,
    table_name_for_record,
)
from tableshard.strategies.custom import CustomShardingStrategy
from tableshard.strategies.hash_sharding import HashShardingStrategy
from tableshard.strategies.numeric import ModuloShardingStrategy, RangeShardingStrategy
from tableshard.strategies.time_sharding import (
    TimeFieldType,
    TimeShardingStrategy,
    TimeUnit,
    to_datetime,
)

__all__ = [
    # Interfaces
    "AbstractShardingStrategy",
    "RangeEnumerableStrategy",
    "ShardingStrategy",
    "format_shard_name",
    "table_name_for_record",
    # Concrete strategies
    "CustomShardingStrategy",
    "HashShardingStrategy",
    "ModuloShardingStrategy",
    "RangeShardingStrategy",
    "TimeShardingStrategy",
    # Time helpers
    "TimeFieldType",
    "TimeUnit",
    "to_datetime",
]
