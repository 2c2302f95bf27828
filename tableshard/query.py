"""
Filter specification shared by every shard in a fan-out.

A ``Query`` is immutable; each builder method returns a copy, so one
``QueryBuilder`` callback can be applied once and the resulting query reused
verbatim against every physical table. Clauses use ``%s`` placeholders and
refer to columns through logical table names (``users.user_id``), which the
engine aliases to whichever shard is being queried.

Example:
    def recent_orders(q: Query) -> Query:
        return (
            q.select("users.user_id", "orders.amount")
            .where("orders.amount > %s", 100)
            .order_by("orders.amount DESC")
        )
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Tuple


@dataclass(frozen=True)
class Query:
    columns: Tuple[str, ...] = ()
    conditions: Tuple[Tuple[str, Tuple[Any, ...]], ...] = ()
    ordering: Tuple[str, ...] = ()
    limit_value: Optional[int] = None
    offset_value: Optional[int] = None

    def select(self, *columns: str) -> "Query":
        return replace(self, columns=self.columns + tuple(columns))

    def where(self, clause: str, *params: Any) -> "Query":
        return replace(self, conditions=self.conditions + ((clause, tuple(params)),))

    def order_by(self, *expressions: str) -> "Query":
        return replace(self, ordering=self.ordering + tuple(expressions))

    def limit(self, count: Optional[int]) -> "Query":
        return replace(self, limit_value=count)

    def offset(self, count: Optional[int]) -> "Query":
        return replace(self, offset_value=count)

    def unbounded(self) -> "Query":
        """Copy without LIMIT/OFFSET, e.g. for counting."""
        return replace(self, limit_value=None, offset_value=None)

    @property
    def params(self) -> Tuple[Any, ...]:
        collected: Tuple[Any, ...] = ()
        for _, params in self.conditions:
            collected += params
        return collected


QueryBuilder = Callable[[Query], Query]


def build_query(query_builder: Optional[QueryBuilder]) -> Query:
    """Apply the caller's builder to an empty query."""
    query = Query()
    if query_builder is not None:
        query = query_builder(query)
    return query


__all__ = ["Query", "QueryBuilder", "build_query"]
