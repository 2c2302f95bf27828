"""
tableshard - table-level sharding for relational stores.

Maps a logical record or key value to a physical shard table and fans
logical operations out across shard tables:

- Hash, time, range, modulo and custom sharding strategies
- Cross-shard query, count and pagination with missing-shard tolerance
- Cross-shard joins (brute-force over shard tuples, or a single key-aware tuple)
- Result deduplication across shard tuples
- An explicit routing stage for inserts and DDL fan-out for shard tables

Stores are pluggable: PostgreSQL (psycopg pool) and embedded SQLite ship with
the package.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from tableshard.config import Settings, get_settings
from tableshard.domain.fields import extract_value, register_fields
from tableshard.domain.models import (
    JoinInfo,
    JoinType,
    MultiJoinConfig,
    Paginator,
    ResultRecord,
    TimeRange,
)
from tableshard.engine import (
    DEFAULT_DEDUPLICATE_FIELDS,
    cross_table_count,
    cross_table_join,
    cross_table_paginate,
    cross_table_query,
    deduplicate_results,
    multi_join,
    multi_join_count,
    multi_join_count_with_time_range,
    multi_join_optimized,
    multi_join_paginate,
    multi_join_paginate_optimized,
    multi_join_paginate_with_time_range,
)
from tableshard.errors import (
    FieldNotFound,
    RecordConversionError,
    ShardNotFoundError,
    ShardResolutionError,
    ShardingError,
    StoreError,
    StoreExecutionError,
    StrategyMisconfigured,
    TimeConversionError,
)
from tableshard.infrastructure import PostgresShardStore, ShardStore, SQLiteShardStore
from tableshard.migrate import create_all_sharding_tables, ensure_table_exists, generate_table_statements
from tableshard.query import Query, QueryBuilder
from tableshard.router import ShardRouter
from tableshard.strategies import (
    CustomShardingStrategy,
    HashShardingStrategy,
    ModuloShardingStrategy,
    RangeShardingStrategy,
    ShardingStrategy,
    TimeFieldType,
    TimeShardingStrategy,
    TimeUnit,
)
from tableshard.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Strategies
    "CustomShardingStrategy",
    "HashShardingStrategy",
    "ModuloShardingStrategy",
    "RangeShardingStrategy",
    "ShardingStrategy",
    "TimeFieldType",
    "TimeShardingStrategy",
    "TimeUnit",
    # Domain
    "JoinInfo",
    "JoinType",
    "MultiJoinConfig",
    "Paginator",
    "ResultRecord",
    "TimeRange",
    "extract_value",
    "register_fields",
    # Queries and stores
    "Query",
    "QueryBuilder",
    "PostgresShardStore",
    "SQLiteShardStore",
    "ShardStore",
    # Engine
    "DEFAULT_DEDUPLICATE_FIELDS",
    "cross_table_count",
    "cross_table_join",
    "cross_table_paginate",
    "cross_table_query",
    "deduplicate_results",
    "multi_join",
    "multi_join_count",
    "multi_join_count_with_time_range",
    "multi_join_optimized",
    "multi_join_paginate",
    "multi_join_paginate_optimized",
    "multi_join_paginate_with_time_range",
    # Routing and DDL
    "ShardRouter",
    "create_all_sharding_tables",
    "ensure_table_exists",
    "generate_table_statements",
    # Errors
    "FieldNotFound",
    "RecordConversionError",
    "ShardNotFoundError",
    "ShardResolutionError",
    "ShardingError",
    "StoreError",
    "StoreExecutionError",
    "StrategyMisconfigured",
    "TimeConversionError",
    # Logging
    "configure_logging",
    "get_logger",
]
