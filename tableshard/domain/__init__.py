"""
Domain package for tableshard.

Exports the row/join/pagination models and the field accessor used across
strategies, the engine and the router. Keep this package focused on data
definitions and field resolution.
"""

from tableshard.domain.fields import (
    FieldMap,
    convert_records,
    extract_value,
    field_map_for,
    record_to_row,
    register_fields,
    to_snake_case,
)
from tableshard.domain.models import (
    JoinInfo,
    JoinType,
    MultiJoinConfig,
    Paginator,
    ResultRecord,
    TimeRange,
    normalize_page,
)

__all__ = [
    "FieldMap",
    "JoinInfo",
    "JoinType",
    "MultiJoinConfig",
    "Paginator",
    "ResultRecord",
    "TimeRange",
    "convert_records",
    "extract_value",
    "field_map_for",
    "normalize_page",
    "record_to_row",
    "register_fields",
    "to_snake_case",
]
