from __future__ import annotations

from dataclasses import dataclass

import pytest

from tableshard.errors import ShardNotFoundError, ShardResolutionError, StrategyMisconfigured
from tableshard.infrastructure.sqlite import SQLiteShardStore
from tableshard.router import ShardRouter
from tableshard.strategies import CustomShardingStrategy, HashShardingStrategy, ModuloShardingStrategy

USERS_DDL = "CREATE TABLE users (user_id INTEGER PRIMARY KEY, name TEXT NOT NULL)"


@dataclass
class User:
    user_id: int
    name: str


@dataclass
class Invoice:
    invoice_no: int
    total: float


@pytest.fixture
def router(store: SQLiteShardStore, users_strategy: HashShardingStrategy) -> ShardRouter:
    shard_router = ShardRouter(store)
    shard_router.register(users_strategy, create_sql=USERS_DDL)
    return shard_router


class TestRegistry:
    def test_register_by_base_table(self, router: ShardRouter, users_strategy):
        assert router.base_tables == ["users"]
        assert router.get_strategy("users") is users_strategy

    def test_unknown_base_table(self, router: ShardRouter):
        with pytest.raises(StrategyMisconfigured, match="strategy not found for table: orders"):
            router.get_strategy("orders")

    def test_reregistering_replaces(self, router: ShardRouter):
        replacement = ModuloShardingStrategy("users", "user_id", 2)
        router.register(replacement)
        assert router.get_strategy("users") is replacement


class TestResolveTable:
    def test_explicit_base_table(self, router: ShardRouter, users_strategy):
        assert router.resolve_table({"user_id": 7}, "users") == users_strategy.get_table_name("users", 7)

    def test_first_matching_strategy_wins(self, router: ShardRouter):
        router.register(ModuloShardingStrategy("invoices", "invoice_no", 3))
        assert router.resolve_table(Invoice(invoice_no=10, total=1.0)) == "invoices_1"

    def test_no_strategy_can_route(self, router: ShardRouter):
        with pytest.raises(ShardResolutionError):
            router.resolve_table({"sku": "A-1"})


class TestCreate:
    def test_creates_missing_shard_and_inserts(self, router: ShardRouter, store: SQLiteShardStore, users_strategy):
        table = router.create(User(user_id=7, name="ada"))

        assert table == users_strategy.get_table_name("users", 7)
        assert store.table_exists(table)
        assert router.find("users", 7) == [{"user_id": 7, "name": "ada"}]

    def test_without_create_sql_the_shard_must_exist(self, store: SQLiteShardStore):
        router = ShardRouter(store)
        router.register(HashShardingStrategy("users", "user_id", 4))
        with pytest.raises(ShardNotFoundError):
            router.create({"user_id": 1, "name": "ada"})


class TestReads:
    @pytest.fixture
    def populated(self, router: ShardRouter) -> ShardRouter:
        for user_id in range(1, 9):
            router.create({"user_id": user_id, "name": f"user{user_id}"}, "users")
        return router

    def test_find_converts_records(self, populated: ShardRouter):
        users = populated.find("users", 3, lambda q: q.where("user_id = %s", 3), record_type=User)
        assert users == [User(user_id=3, name="user3")]

    def test_find_reads_the_whole_routed_shard(self, populated: ShardRouter, users_strategy):
        table = users_strategy.get_table_name("users", 3)
        expected = {u for u in range(1, 9) if users_strategy.get_table_name("users", u) == table}
        assert {row["user_id"] for row in populated.find("users", 3)} == expected

    def test_find_on_missing_shard_propagates(self, store: SQLiteShardStore):
        router = ShardRouter(store)
        router.register(HashShardingStrategy("users", "user_id", 4))
        with pytest.raises(ShardNotFoundError):
            router.find("users", 1)

    def test_find_all_and_count_all(self, populated: ShardRouter):
        assert len(populated.find_all("users")) == 8
        assert populated.count_all("users", lambda q: q.where("user_id % 2 = %s", 0)) == 4

    def test_paginate(self, populated: ShardRouter):
        paginator = populated.paginate("users", page=2, page_size=3, record_type=User)
        assert paginator.total == 8
        assert paginator.total_pages == 3
        assert all(isinstance(user, User) for user in paginator.data)
        assert len(paginator.data) == 3


class TestCustomStrategy:
    def test_routes_through_callables(self, store: SQLiteShardStore):
        strategy = CustomShardingStrategy(
            "tenants",
            "region",
            table_name_func=lambda base, value: f"{base}_{value}",
            all_tables_func=lambda base: [f"{base}_eu", f"{base}_us"],
        )
        router = ShardRouter(store)
        router.register(strategy, create_sql="CREATE TABLE tenants (name TEXT, region TEXT)")

        assert router.create({"name": "acme", "region": "eu"}) == "tenants_eu"
        assert router.create({"name": "globex", "region": "us"}) == "tenants_us"
        assert sorted(row["name"] for row in router.find_all("tenants")) == ["acme", "globex"]
