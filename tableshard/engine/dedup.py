"""
Row deduplication for join fan-outs.

The same logical row can surface from several shard tuples. A row's key is
built from the first field group (most specific first) whose fields are all
present and non-empty; rows matching no group fall back to a key over every
non-null field, sorted by field name. The first row seen for a key wins and
input order is otherwise preserved.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple

from tableshard.domain.models import ResultRecord
from tableshard.strategies.hash_sharding import canonical_string

DEFAULT_DEDUPLICATE_FIELDS: List[List[str]] = [
    ["id"],
    ["user_id", "order_id", "payment_id"],
    ["user_id", "order_id"],
    ["order_id", "payment_id"],
    ["user_id"],
    ["order_id"],
    ["payment_id"],
    ["log_id"],
    ["product_id"],
]


ResultKey = Tuple[Tuple[str, str], ...]


def _key_part(row: Mapping[str, Any], field_name: str) -> Optional[Tuple[str, str]]:
    value = row.get(field_name)
    if value is None:
        return None
    text = canonical_string(value)
    if not text:
        return None
    return field_name, text


def generate_result_key(row: Mapping[str, Any], field_groups: Sequence[Sequence[str]]) -> ResultKey:
    """``(field, canonical value)`` pairs of the first complete group, else of every non-null field by name."""
    for group in field_groups:
        parts = [_key_part(row, field_name) for field_name in group]
        if parts and all(part is not None for part in parts):
            return tuple(parts)  # type: ignore[arg-type]

    fallback = (_key_part(row, field_name) for field_name in sorted(row))
    return tuple(part for part in fallback if part is not None)


def deduplicate_results(
    rows: Sequence[ResultRecord],
    field_groups: Optional[Sequence[Sequence[str]]] = None,
) -> List[ResultRecord]:
    """
    Keep the first row for every distinct key.

    ``field_groups`` defaults to ``DEFAULT_DEDUPLICATE_FIELDS`` when empty.
    Applying the function to its own output returns it unchanged.
    """
    groups = field_groups or DEFAULT_DEDUPLICATE_FIELDS
    seen = set()
    unique: List[ResultRecord] = []
    for row in rows:
        key = generate_result_key(row, groups)
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)
    return unique


__all__ = ["DEFAULT_DEDUPLICATE_FIELDS", "ResultKey", "deduplicate_results", "generate_result_key"]
