"""
Exception taxonomy for tableshard.

Only ``ShardNotFoundError`` is recoverable inside a fan-out: the engine skips
the shard and continues. Every other error aborts the whole operation and
propagates to the caller; no partial result is returned.
"""

from __future__ import annotations

from typing import Optional, Sequence


class ShardingError(Exception):
    """Base class for all tableshard errors."""


class FieldNotFound(ShardingError):
    """A sharding key could not be extracted from a record."""

    def __init__(self, field_name: str, record_type: Optional[str] = None) -> None:
        self.field_name = field_name
        self.record_type = record_type
        if record_type:
            message = f"field {field_name} not found on {record_type}"
        else:
            message = f"field {field_name} not found"
        super().__init__(message)


class StrategyMisconfigured(ShardingError):
    """No strategy is registered for a base table, or a strategy yields no tables."""


class ShardResolutionError(ShardingError):
    """A physical table could not be resolved from the supplied routing keys."""


class TimeConversionError(ShardingError):
    """A time value failed every parse attempt (strict time strategies only)."""


class RecordConversionError(ShardingError):
    """A result row could not be converted into the caller's record type."""


class StoreError(ShardingError):
    """Base class for errors surfaced by a store collaborator."""

    def __init__(self, message: str, tables: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.tables = tuple(tables)


class ShardNotFoundError(StoreError):
    """A physical shard table (or a column on it) does not exist yet."""


class StoreExecutionError(StoreError):
    """Any other per-shard failure; aborts the fan-out."""


__all__ = [
    "ShardingError",
    "FieldNotFound",
    "StrategyMisconfigured",
    "ShardResolutionError",
    "TimeConversionError",
    "RecordConversionError",
    "StoreError",
    "ShardNotFoundError",
    "StoreExecutionError",
]
