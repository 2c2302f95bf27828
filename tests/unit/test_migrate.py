from __future__ import annotations

import pytest

from tableshard.errors import StoreExecutionError, StrategyMisconfigured
from tableshard.infrastructure.sqlite import SQLiteShardStore
from tableshard.migrate import (
    create_all_sharding_tables,
    ensure_table_exists,
    generate_table_statements,
    if_not_exists,
    migrate_all,
    statement_for_table,
)
from tableshard.query import Query
from tableshard.strategies import HashShardingStrategy, TimeShardingStrategy, TimeUnit

USERS_DDL = "CREATE TABLE users (user_id INTEGER PRIMARY KEY, name TEXT)"


class TestStatements:
    def test_whole_word_replacement(self):
        sql = "CREATE TABLE users (id INTEGER, users_count INTEGER, superusers TEXT)"
        assert statement_for_table(sql, "users", "users_3") == (
            "CREATE TABLE users_3 (id INTEGER, users_count INTEGER, superusers TEXT)"
        )

    @pytest.mark.parametrize(
        "sql,expected",
        [
            ("CREATE TABLE t (id INT)", "CREATE TABLE IF NOT EXISTS t (id INT)"),
            ("  create table t (id INT)", "CREATE TABLE IF NOT EXISTS t (id INT)"),
            ("CREATE TABLE IF NOT EXISTS t (id INT)", "CREATE TABLE IF NOT EXISTS t (id INT)"),
        ],
    )
    def test_if_not_exists(self, sql: str, expected: str):
        assert if_not_exists(sql) == expected

    def test_one_statement_per_shard(self, users_strategy: HashShardingStrategy):
        statements = generate_table_statements(users_strategy, USERS_DDL)
        assert [s.split()[2] for s in statements] == ["users_0", "users_1", "users_2", "users_3"]

    def test_time_statements_follow_window(self):
        strategy = TimeShardingStrategy("logs", "created_at", TimeUnit.YEAR)
        statements = generate_table_statements(
            strategy, "CREATE TABLE logs (id INTEGER)", start="2022-06-01", end="2024-01-01"
        )
        assert statements == [
            "CREATE TABLE logs_2022 (id INTEGER)",
            "CREATE TABLE logs_2023 (id INTEGER)",
            "CREATE TABLE logs_2024 (id INTEGER)",
        ]


class TestCreateTables:
    def test_creates_every_shard(self, store: SQLiteShardStore, users_strategy):
        tables = create_all_sharding_tables(store, users_strategy, USERS_DDL)
        assert all(store.table_exists(table) for table in tables)

    def test_repeat_run_is_idempotent(self, store: SQLiteShardStore, users_strategy):
        create_all_sharding_tables(store, users_strategy, USERS_DDL)
        store.insert("users_0", {"user_id": 1, "name": "ada"})
        create_all_sharding_tables(store, users_strategy, USERS_DDL)
        assert store.execute_count("users_0", Query()) == 1

    def test_strict_run_fails_on_existing_table(self, store: SQLiteShardStore, users_strategy):
        create_all_sharding_tables(store, users_strategy, USERS_DDL)
        with pytest.raises(StoreExecutionError, match="failed to create table users_0"):
            create_all_sharding_tables(store, users_strategy, USERS_DDL, skip_if_exists=False)

    def test_ensure_single_shard(self, store: SQLiteShardStore, users_strategy):
        table = ensure_table_exists(store, users_strategy, 42, USERS_DDL)

        assert table == users_strategy.get_table_name("users", 42)
        assert store.table_exists(table)
        assert ensure_table_exists(store, users_strategy, 42, USERS_DDL) == table


class TestMigrateAll:
    def test_several_strategies(self, store: SQLiteShardStore, users_strategy, orders_strategy):
        created = migrate_all(
            store,
            [users_strategy, orders_strategy],
            {"users": USERS_DDL, "orders": "CREATE TABLE orders (order_id INTEGER, user_id INTEGER)"},
        )
        assert len(created) == 8

    def test_missing_statement(self, store: SQLiteShardStore, users_strategy, orders_strategy):
        with pytest.raises(StrategyMisconfigured, match="orders"):
            migrate_all(store, [users_strategy, orders_strategy], {"users": USERS_DDL})
