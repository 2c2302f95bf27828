"""
Domain models for tableshard.

Defines the row representation used during fan-out, the join configuration
types, and the paginated result shape returned to callers.
"""
from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from tableshard.strategies.abstract import ShardingStrategy

# One row as returned by a store, column name -> value, in select order.
ResultRecord = Dict[str, Any]


class JoinType(str, enum.Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class JoinInfo:
    """
    One table participating in a join.

    ``on_condition`` is written against logical (base) table names, e.g.
    ``"users.user_id = orders.user_id"``; it is rewritten to the effective
    aliases for every shard tuple.
    """

    strategy: "ShardingStrategy"
    join_type: JoinType = JoinType.INNER
    on_condition: str = ""
    alias: Optional[str] = None

    @property
    def base_table_name(self) -> str:
        return self.strategy.get_base_table_name()

    @property
    def effective_alias(self) -> str:
        return self.alias or self.base_table_name


@dataclass(frozen=True)
class TimeRange:
    """Inclusive window for a time-sharded table; bounds may use any time encoding."""

    start: Any
    end: Any


@dataclass
class MultiJoinConfig:
    """
    Main table plus ordered joined tables.

    ``deduplicate_fields`` is a priority list of field groups, most specific
    first, e.g. ``[["id"], ["user_id", "order_id"], ["user_id"]]``. When empty,
    ``DEFAULT_DEDUPLICATE_FIELDS`` is used.
    """

    main_table: JoinInfo
    join_tables: List[JoinInfo] = field(default_factory=list)
    time_ranges: Dict[str, TimeRange] = field(default_factory=dict)
    deduplicate_fields: List[List[str]] = field(default_factory=list)

    def with_time_range(self, start: Any, end: Any) -> "MultiJoinConfig":
        """
        Return a copy whose main table and time-sharded joined tables use ``[start, end]``.

        Missing bounds leave the configuration unchanged.
        """
        from tableshard.strategies.abstract import RangeEnumerableStrategy

        if start is None or end is None:
            return self
        window = TimeRange(start=start, end=end)
        time_ranges = dict(self.time_ranges)
        time_ranges[self.main_table.base_table_name] = window
        for join_info in self.join_tables:
            if isinstance(join_info.strategy, RangeEnumerableStrategy):
                time_ranges[join_info.base_table_name] = window
        return dataclasses.replace(self, time_ranges=time_ranges)


class Paginator(BaseModel):
    """
    One page of a cross-shard result.

    ``total`` counts logical rows (post-deduplication on join paths).
    """

    page: int = Field(..., ge=1, description="Current page number, starting at 1.")
    page_size: int = Field(..., ge=1, description="Rows per page.")
    total: int = Field(..., ge=0, description="Total logical rows across all pages.")
    total_pages: int = Field(..., ge=0, description="Number of pages.")
    data: List[Any] = Field(default_factory=list, description="Rows on this page.")

    model_config = {
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def build(cls, page: int, page_size: int, total: int, data: List[Any]) -> "Paginator":
        total_pages = total // page_size
        if total % page_size > 0:
            total_pages += 1
        return cls(page=page, page_size=page_size, total=total, total_pages=total_pages, data=data)


def normalize_page(page: int, page_size: int, default_page_size: int) -> Tuple[int, int]:
    """Clamp a requested page to >= 1 and fall back to the default page size."""
    if page < 1:
        page = 1
    if page_size < 1:
        page_size = default_page_size
    return page, page_size


__all__ = [
    "JoinInfo",
    "JoinType",
    "MultiJoinConfig",
    "Paginator",
    "ResultRecord",
    "TimeRange",
    "normalize_page",
]
