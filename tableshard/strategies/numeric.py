"""
Numeric sharding: range buckets and modulo.

Both fall back to hash routing (with their own table count) when the value
is not integer-like, so every value stays resolvable.
"""

from __future__ import annotations

import numbers
from typing import Any, List, Optional

from tableshard.strategies.abstract import AbstractShardingStrategy, format_shard_name
from tableshard.strategies.hash_sharding import hash_index

DEFAULT_RANGE_SIZE = 10_000


def as_integer(value: Any) -> Optional[int]:
    """Return ``value`` as an int when it is integer-like, else None. Booleans are not."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    return None


class RangeShardingStrategy(AbstractShardingStrategy):
    """
    Bucketed ranges, e.g. 0-9999 in ``<base>_0``, 10000-19999 in ``<base>_1``.

    Values past the last bucket land in the last table; negatives land in the first.
    """

    def __init__(self, base_table_name: str, sharding_key: str, range_size: int, table_count: int) -> None:
        super().__init__(base_table_name, sharding_key)
        self.range_size = range_size if range_size > 0 else DEFAULT_RANGE_SIZE
        self.table_count = table_count if table_count > 0 else 1

    def get_table_name(self, base_table_name: str, sharding_value: Any) -> str:
        number = as_integer(sharding_value)
        if number is None:
            return format_shard_name(base_table_name, hash_index(sharding_value, self.table_count))
        index = number // self.range_size
        index = max(0, min(index, self.table_count - 1))
        return format_shard_name(base_table_name, index)

    def get_all_table_names(self, base_table_name: str) -> List[str]:
        return [format_shard_name(base_table_name, i) for i in range(self.table_count)]


class ModuloShardingStrategy(AbstractShardingStrategy):
    """``<base>_<value mod modulus>``; negative values wrap to a non-negative index."""

    def __init__(self, base_table_name: str, sharding_key: str, modulo: int) -> None:
        super().__init__(base_table_name, sharding_key)
        self.modulo = modulo if modulo > 0 else 1

    def get_table_name(self, base_table_name: str, sharding_value: Any) -> str:
        number = as_integer(sharding_value)
        if number is None:
            return format_shard_name(base_table_name, hash_index(sharding_value, self.modulo))
        return format_shard_name(base_table_name, number % self.modulo)

    def get_all_table_names(self, base_table_name: str) -> List[str]:
        return [format_shard_name(base_table_name, i) for i in range(self.modulo)]


__all__ = ["DEFAULT_RANGE_SIZE", "ModuloShardingStrategy", "RangeShardingStrategy", "as_integer"]
