"""
Hash sharding: ``<base>_<fnv1a64(value) mod N>``.

Values are hashed over their canonical string form, so ``123`` and ``"123"``
land on the same shard.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List

from tableshard.strategies.abstract import AbstractShardingStrategy, format_shard_name

_FNV64_OFFSET_BASIS = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(data: bytes) -> int:
    """64-bit FNV-1a hash."""
    value = _FNV64_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * _FNV64_PRIME) & _UINT64_MASK
    return value


def canonical_string(value: Any) -> str:
    """Decimal/text form of a routing value used as hash input."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return "%d" % value
    if isinstance(value, float) and value.is_integer():
        return "%d" % int(value)
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return "%d" % int(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if value is None:
        return "<nil>"
    return str(value)


def hash_index(value: Any, table_count: int) -> int:
    return fnv1a_64(canonical_string(value).encode("utf-8")) % table_count


class HashShardingStrategy(AbstractShardingStrategy):
    """
    Fixed-count hash sharding.

    ``HashShardingStrategy("users", "user_id", 4)`` routes to users_0..users_3.
    """

    def __init__(self, base_table_name: str, sharding_key: str, table_count: int) -> None:
        super().__init__(base_table_name, sharding_key)
        self.table_count = table_count if table_count > 0 else 1

    def get_table_name(self, base_table_name: str, sharding_value: Any) -> str:
        return format_shard_name(base_table_name, hash_index(sharding_value, self.table_count))

    def get_all_table_names(self, base_table_name: str) -> List[str]:
        return [format_shard_name(base_table_name, i) for i in range(self.table_count)]


__all__ = ["HashShardingStrategy", "canonical_string", "fnv1a_64", "hash_index"]
