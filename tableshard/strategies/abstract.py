"""
Sharding strategy interfaces for tableshard.

Concrete strategies (hash, time, range, modulo, custom) implement the
ShardingStrategy protocol so the router and the cross-shard engine can treat
them uniformly. Strategies hold only static configuration; for a fixed
instance and key value ``get_table_name`` is pure and deterministic.
"""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Any, List, Optional, Protocol, runtime_checkable

from tableshard.domain.fields import extract_value


def format_shard_name(base_table_name: str, suffix: Any) -> str:
    """Physical shard name: ``<base>_<suffix>``."""
    return f"{base_table_name}_{suffix}"


@runtime_checkable
class ShardingStrategy(Protocol):
    """
    Common interface all sharding strategies implement.

    Attributes
    ----------
    sharding_key : str | None
        Logical field name the routing value is extracted from.
    """

    sharding_key: Optional[str]

    def get_table_name(self, base_table_name: str, sharding_value: Any) -> str:
        """Map a routing value to a physical table name."""
        ...

    def get_all_table_names(self, base_table_name: str) -> List[str]:
        """Enumerate every physical table name (where the strategy can)."""
        ...

    def get_sharding_value(self, record: Any) -> Any:
        """Extract the routing value from a record."""
        ...

    def get_base_table_name(self) -> str:
        """Logical table name this strategy is bound to."""
        ...


@runtime_checkable
class RangeEnumerableStrategy(Protocol):
    """
    Strategies whose shard set is unbounded and can only be enumerated
    inside a window (time-based sharding).
    """

    def get_all_table_names_in_range(
        self, base_table_name: str, start: datetime, end: datetime
    ) -> List[str]:
        ...

    def get_all_table_names_in_range_with_values(
        self, base_table_name: str, start_value: Any, end_value: Any
    ) -> List[str]:
        ...


class AbstractShardingStrategy(abc.ABC):
    """
    ABC helper for class-based strategies.

    Subclasses implement ``get_table_name`` and ``get_all_table_names``;
    value extraction defaults to the field accessor on ``sharding_key``.
    """

    def __init__(self, base_table_name: str, sharding_key: Optional[str]) -> None:
        self.base_table_name = base_table_name
        self.sharding_key = sharding_key

    @abc.abstractmethod
    def get_table_name(self, base_table_name: str, sharding_value: Any) -> str:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def get_all_table_names(self, base_table_name: str) -> List[str]:  # pragma: no cover - interface only
        raise NotImplementedError

    def get_sharding_value(self, record: Any) -> Any:
        return extract_value(record, self.sharding_key or "")

    def get_base_table_name(self) -> str:
        return self.base_table_name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_table_name={self.base_table_name!r}, sharding_key={self.sharding_key!r})"


def table_name_for_record(strategy: ShardingStrategy, record: Any) -> str:
    """
    Resolve the physical table for ``record`` under ``strategy``.

    Raises FieldNotFound when the routing value cannot be extracted.
    """
    value = strategy.get_sharding_value(record)
    return strategy.get_table_name(strategy.get_base_table_name(), value)


__all__ = [
    "AbstractShardingStrategy",
    "RangeEnumerableStrategy",
    "ShardingStrategy",
    "format_shard_name",
    "table_name_for_record",
]
