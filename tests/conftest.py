"""
Pytest configuration for tableshard.

Provides fixtures for:
- Settings isolation (cached settings are reset around every test)
- An in-memory SQLite shard store
- Hash-sharded ``users``/``orders`` tables seeded through the router
- Postgres connectivity for integration tests
"""

from __future__ import annotations

import os
from typing import Dict, Generator, List

import psycopg
import pytest

from tableshard.config import Settings, get_settings
from tableshard.infrastructure.sqlite import SQLiteShardStore
from tableshard.migrate import create_all_sharding_tables
from tableshard.router import ShardRouter
from tableshard.strategies.hash_sharding import HashShardingStrategy

SHARD_COUNT = 4
SEEDED_USERS = 12
ORDERS_PER_USER = 2

USERS_DDL = "CREATE TABLE users (user_id INTEGER PRIMARY KEY, name TEXT NOT NULL)"
ORDERS_DDL = (
    "CREATE TABLE orders (order_id INTEGER PRIMARY KEY, user_id INTEGER NOT NULL, amount REAL NOT NULL)"
)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Drop cached settings so env overrides in one test never leak into another."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> Generator[SQLiteShardStore, None, None]:
    """Empty in-memory SQLite store."""
    with SQLiteShardStore() as shard_store:
        yield shard_store


@pytest.fixture
def users_strategy() -> HashShardingStrategy:
    return HashShardingStrategy("users", "user_id", SHARD_COUNT)


@pytest.fixture
def orders_strategy() -> HashShardingStrategy:
    return HashShardingStrategy("orders", "user_id", SHARD_COUNT)


def build_users(count: int = SEEDED_USERS) -> List[Dict[str, object]]:
    return [{"user_id": user_id, "name": f"user{user_id}"} for user_id in range(1, count + 1)]


def build_orders(users: int = SEEDED_USERS, per_user: int = ORDERS_PER_USER) -> List[Dict[str, object]]:
    orders = []
    order_id = 0
    for user_id in range(1, users + 1):
        for _ in range(per_user):
            order_id += 1
            orders.append({"order_id": order_id, "user_id": user_id, "amount": float(order_id * 10)})
    return orders


@pytest.fixture
def seeded_store(
    store: SQLiteShardStore,
    users_strategy: HashShardingStrategy,
    orders_strategy: HashShardingStrategy,
) -> SQLiteShardStore:
    """
    Store with every users/orders shard created and populated.

    Users and orders are both sharded on ``user_id``, so a user's orders live
    on the same shard index as the user.
    """
    create_all_sharding_tables(store, users_strategy, USERS_DDL)
    create_all_sharding_tables(store, orders_strategy, ORDERS_DDL)

    router = ShardRouter(store)
    router.register(users_strategy)
    router.register(orders_strategy)
    for row in build_users():
        router.create(row, "users")
    for row in build_orders():
        router.create(row, "orders")
    return store


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "tableshard"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False
