"""
Custom sharding: every operation supplied by the caller.

Example:
    strategy = CustomShardingStrategy(
        "events",
        "region",
        table_name_func=lambda base, value: f"{base}_{value}",
        all_tables_func=lambda base: [f"{base}_eu", f"{base}_us"],
    )
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from tableshard.domain.fields import extract_value

TableNameFunc = Callable[[str, Any], str]
ValueFunc = Callable[[Any], Any]
AllTablesFunc = Callable[[str], List[str]]


class CustomShardingStrategy:
    """
    Strategy built from caller callables.

    Without ``value_func`` the routing value is read with the field accessor
    on ``sharding_key``; without ``all_tables_func`` only the base table is
    enumerated.
    """

    def __init__(
        self,
        base_table_name: str,
        sharding_key: Optional[str],
        table_name_func: TableNameFunc,
        value_func: Optional[ValueFunc] = None,
        all_tables_func: Optional[AllTablesFunc] = None,
    ) -> None:
        self.base_table_name = base_table_name
        self.sharding_key = sharding_key
        self._table_name_func = table_name_func
        self._value_func = value_func or self._extract_by_key
        self._all_tables_func = all_tables_func or (lambda base: [base])

    def _extract_by_key(self, record: Any) -> Any:
        return extract_value(record, self.sharding_key or "")

    def get_table_name(self, base_table_name: str, sharding_value: Any) -> str:
        return self._table_name_func(base_table_name, sharding_value)

    def get_all_table_names(self, base_table_name: str) -> List[str]:
        return list(self._all_tables_func(base_table_name))

    def get_sharding_value(self, record: Any) -> Any:
        return self._value_func(record)

    def get_base_table_name(self) -> str:
        return self.base_table_name


__all__ = ["AllTablesFunc", "CustomShardingStrategy", "TableNameFunc", "ValueFunc"]
