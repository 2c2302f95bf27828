"""
Infrastructure package for tableshard.

Centralizes store connectivity concerns: the ShardStore contract and SQL
rendering, the Postgres store with its pooled connection factory, and the
embedded SQLite store. Keep this layer focused on I/O and resource
management, decoupled from routing and fan-out logic.
"""

from tableshard.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_pool,
)
from tableshard.infrastructure.postgres import PostgresShardStore
from tableshard.infrastructure.sqlite import SQLiteShardStore
from tableshard.infrastructure.store import (
    JoinClause,
    JoinPlan,
    SQLShardStore,
    ShardStore,
    TableRef,
    is_missing_shard_message,
    quote_identifier,
)

__all__ = [
    "JoinClause",
    "JoinPlan",
    "PoolManager",
    "PostgresShardStore",
    "SQLShardStore",
    "SQLiteShardStore",
    "ShardStore",
    "TableRef",
    "build_dsn",
    "get_sync_pool",
    "is_missing_shard_message",
    "quote_identifier",
]
