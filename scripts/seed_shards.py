"""
Demo data seeding for tableshard.

Creates hash-sharded ``users`` and ``orders`` tables (both sharded on
``user_id`` so a user's orders land on the same shard index) and inserts
deterministic pseudo-random rows through the router's explicit routing stage.
Targets Postgres by default, or a SQLite file with ``--sqlite``.
"""

from __future__ import annotations

import random
import sys
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator, Optional

import typer

from tableshard.infrastructure.postgres import PostgresShardStore
from tableshard.infrastructure.sqlite import SQLiteShardStore
from tableshard.infrastructure.store import SQLShardStore
from tableshard.migrate import create_all_sharding_tables
from tableshard.router import ShardRouter
from tableshard.strategies.hash_sharding import HashShardingStrategy

app = typer.Typer(help="Create demo shard tables and seed them with users and orders.")

USERS_DDL = "CREATE TABLE users (user_id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT NOT NULL)"
ORDERS_DDL = (
    "CREATE TABLE orders (order_id INTEGER PRIMARY KEY, user_id INTEGER NOT NULL, "
    "amount NUMERIC(12, 2) NOT NULL, created_at TEXT NOT NULL)"
)


def _generate_users(count: int, rng: random.Random) -> Iterator[Dict[str, object]]:
    names = ["ada", "grace", "linus", "guido", "barbara", "ken", "margaret", "dennis"]
    for user_id in range(1, count + 1):
        name = f"{rng.choice(names)}{user_id}"
        yield {"user_id": user_id, "name": name, "email": f"{name}@example.com"}


def _generate_orders(users: int, per_user: int, rng: random.Random) -> Iterator[Dict[str, object]]:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    order_id = 0
    for user_id in range(1, users + 1):
        for _ in range(rng.randint(0, per_user)):
            order_id += 1
            created_at = start + timedelta(minutes=rng.randint(0, 365 * 24 * 60))
            yield {
                "order_id": order_id,
                "user_id": user_id,
                "amount": round(rng.uniform(1, 500), 2),
                "created_at": created_at.strftime("%Y-%m-%d %H:%M:%S"),
            }


def _open_store(sqlite_path: Optional[str], dsn: Optional[str]) -> SQLShardStore:
    if sqlite_path:
        return SQLiteShardStore(sqlite_path)
    return PostgresShardStore(dsn_override=dsn)


@app.command()
def main(
    users: int = typer.Option(100, "--users", "-u", help="Number of users to generate."),
    orders_per_user: int = typer.Option(5, "--orders-per-user", help="Maximum orders per user."),
    shards: int = typer.Option(4, "--shards", "-n", help="Hash shard count for both tables."),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    sqlite_path: Optional[str] = typer.Option(None, "--sqlite", help="Seed a SQLite file instead of Postgres."),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
) -> None:
    """
    Create shard tables (idempotently) and insert demo rows.
    """
    rng = random.Random(seed)
    store = _open_store(sqlite_path, dsn)
    users_strategy = HashShardingStrategy("users", "user_id", shards)
    orders_strategy = HashShardingStrategy("orders", "user_id", shards)

    start = time.perf_counter()
    create_all_sharding_tables(store, users_strategy, USERS_DDL)
    create_all_sharding_tables(store, orders_strategy, ORDERS_DDL)

    router = ShardRouter(store)
    router.register(users_strategy)
    router.register(orders_strategy)

    user_rows = 0
    for row in _generate_users(users, rng):
        router.create(row, "users")
        user_rows += 1
    order_rows = 0
    for row in _generate_orders(users, orders_per_user, rng):
        router.create(row, "orders")
        order_rows += 1

    duration = time.perf_counter() - start
    typer.echo(
        f"Seeded {user_rows:,} users and {order_rows:,} orders across {shards} shards "
        f"in {duration:.2f}s."
    )
    store.close()


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
