from __future__ import annotations

import pytest

from tableshard.domain.models import JoinInfo, JoinType, MultiJoinConfig
from tableshard.engine import (
    cross_table_join,
    generate_table_combinations,
    multi_join,
    multi_join_optimized,
    replace_table_names_in_condition,
)
from tableshard.engine.join import build_join_plan, join_combinations
from tableshard.errors import ShardNotFoundError, ShardResolutionError, StoreExecutionError
from tableshard.infrastructure.sqlite import SQLiteShardStore
from tableshard.migrate import create_all_sharding_tables
from tableshard.router import ShardRouter
from tableshard.strategies import HashShardingStrategy, TimeShardingStrategy, TimeUnit

SEEDED_USERS = 12
SEEDED_ORDERS = 24
ON_USER = "users.user_id = orders.user_id"


def _select_user_orders(q):
    return q.select("users.user_id", "users.name", "orders.order_id", "orders.amount")


def _config(users_strategy, orders_strategy, **kwargs) -> MultiJoinConfig:
    return MultiJoinConfig(
        main_table=JoinInfo(users_strategy),
        join_tables=[JoinInfo(orders_strategy, JoinType.INNER, ON_USER)],
        **kwargs,
    )


class TestCombinations:
    def test_cartesian_product_in_order(self):
        combos = generate_table_combinations(["u0", "u1"], [["o0", "o1"], ["p0"]])
        assert combos == [("u0", "o0", "p0"), ("u0", "o1", "p0"), ("u1", "o0", "p0"), ("u1", "o1", "p0")]

    def test_no_joined_tables(self):
        assert generate_table_combinations(["u0", "u1"], []) == [("u0",), ("u1",)]

    def test_size_is_product_of_shard_counts(self, users_strategy, orders_strategy):
        assert len(join_combinations(_config(users_strategy, orders_strategy))) == 16


class TestConditionRewrite:
    def test_rewrites_only_whole_identifiers(self):
        condition = "users.id = orders.user_id AND power_users.id = users.id"
        rewritten = replace_table_names_in_condition(condition, {"users": "u", "orders": "o"})
        assert rewritten == "u.id = o.user_id AND power_users.id = u.id"

    def test_same_alias_is_untouched(self):
        assert replace_table_names_in_condition(ON_USER, {"users": "users"}) == ON_USER

    def test_plan_uses_aliases(self, users_strategy, orders_strategy):
        config = MultiJoinConfig(
            main_table=JoinInfo(users_strategy, alias="u"),
            join_tables=[JoinInfo(orders_strategy, JoinType.LEFT, ON_USER, alias="o")],
        )
        plan = build_join_plan(config, ("users_1", "orders_3"))

        assert plan.main.alias == "u"
        assert plan.joins[0].table.physical == "orders_3"
        assert plan.joins[0].join_type is JoinType.LEFT
        assert plan.joins[0].on_condition == "u.user_id = o.user_id"


class TestMultiJoin:
    def test_brute_force_join_matches_same_index_tuples_only(
        self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy
    ):
        """16 shard tuples, but matches only come from the 4 same-index tuples."""
        rows = cross_table_join(
            seeded_store, users_strategy, orders_strategy, JoinType.INNER, ON_USER, _select_user_orders
        )
        assert len(rows) == SEEDED_ORDERS
        assert len({row["order_id"] for row in rows}) == SEEDED_ORDERS

    def test_dedup_by_user_returns_each_logical_match_once(
        self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy
    ):
        config = _config(users_strategy, orders_strategy, deduplicate_fields=[["user_id"]])
        rows = multi_join(seeded_store, config, _select_user_orders)

        assert len(rows) == SEEDED_USERS
        assert {row["user_id"] for row in rows} == set(range(1, SEEDED_USERS + 1))

    def test_default_dedup_keeps_distinct_orders(
        self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy
    ):
        rows = multi_join(seeded_store, _config(users_strategy, orders_strategy), _select_user_orders)
        assert len(rows) == SEEDED_ORDERS

    def test_filter_applies_to_logical_names(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        rows = multi_join(
            seeded_store,
            _config(users_strategy, orders_strategy),
            lambda q: _select_user_orders(q).where("users.user_id = %s", 4),
        )
        assert sorted(row["order_id"] for row in rows) == [7, 8]

    def test_missing_shard_tuples_are_skipped(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        seeded_store.execute_script("DROP TABLE orders_1")
        rows = multi_join(seeded_store, _config(users_strategy, orders_strategy), _select_user_orders)

        expected = [u for u in range(1, SEEDED_USERS + 1) if orders_strategy.get_table_name("orders", u) != "orders_1"]
        assert {row["user_id"] for row in rows} == set(expected)

    def test_other_errors_name_the_tuple(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        with pytest.raises(StoreExecutionError, match="query error on tables"):
            multi_join(
                seeded_store,
                _config(users_strategy, orders_strategy),
                lambda q: q.where("users.user_id >>> %s", 1),
            )

    def test_left_join_keeps_users_without_orders(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        seeded_store.insert(users_strategy.get_table_name("users", 99), {"user_id": 99, "name": "lonely"})
        config = MultiJoinConfig(
            main_table=JoinInfo(users_strategy),
            join_tables=[JoinInfo(orders_strategy, JoinType.LEFT, ON_USER)],
            deduplicate_fields=[["user_id", "order_id"], ["user_id"]],
        )
        rows = multi_join(seeded_store, config, lambda q: _select_user_orders(q).where("users.user_id = %s", 99))

        assert [row["order_id"] for row in rows] == [None]


class TestMultiJoinWithTimeShards:
    def test_window_selects_monthly_shards(self, seeded_store: SQLiteShardStore, users_strategy):
        events = TimeShardingStrategy("events", "created_at", TimeUnit.MONTH)
        create_all_sharding_tables(
            seeded_store,
            events,
            "CREATE TABLE events (event_id INTEGER PRIMARY KEY, user_id INTEGER, created_at TEXT)",
            start="2024-01-01",
            end="2024-03-31",
        )
        router = ShardRouter(seeded_store)
        router.register(events)
        router.create({"event_id": 1, "user_id": 1, "created_at": "2024-01-15 10:00:00"})
        router.create({"event_id": 2, "user_id": 2, "created_at": "2024-02-15 10:00:00"})
        router.create({"event_id": 3, "user_id": 3, "created_at": "2024-03-15 10:00:00"})

        config = MultiJoinConfig(
            main_table=JoinInfo(users_strategy),
            join_tables=[JoinInfo(events, JoinType.INNER, "users.user_id = events.user_id")],
        ).with_time_range("2024-01-01", "2024-02-29")
        rows = multi_join(seeded_store, config, lambda q: q.select("users.user_id", "events.event_id"))

        assert sorted(row["event_id"] for row in rows) == [1, 2]


class TestMultiJoinOptimized:
    def test_single_tuple_from_join_key(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        rows = multi_join_optimized(
            seeded_store,
            _config(users_strategy, orders_strategy),
            {"user_id": 5},
            lambda q: _select_user_orders(q).where("users.user_id = %s", 5),
        )
        assert sorted(row["order_id"] for row in rows) == [9, 10]

    def test_key_matching_is_case_insensitive(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        rows = multi_join_optimized(
            seeded_store,
            _config(users_strategy, orders_strategy),
            {"UserID": 5},
            lambda q: _select_user_orders(q).where("users.user_id = %s", 5),
        )
        assert len(rows) == 2

    def test_no_key_value_is_an_error(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        with pytest.raises(ShardResolutionError):
            multi_join_optimized(seeded_store, _config(users_strategy, orders_strategy), {"user_id": None})

    def test_missing_shard_propagates(self, seeded_store: SQLiteShardStore, users_strategy, orders_strategy):
        seeded_store.execute_script(f"DROP TABLE {orders_strategy.get_table_name('orders', 5)}")
        with pytest.raises(ShardNotFoundError):
            multi_join_optimized(seeded_store, _config(users_strategy, orders_strategy), {"user_id": 5})
