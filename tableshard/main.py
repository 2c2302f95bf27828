from __future__ import annotations

import enum
import sys
from typing import Any, Optional

import typer

from tableshard.config import get_settings
from tableshard.engine.pagination import cross_table_paginate
from tableshard.engine.tables import resolve_table_names
from tableshard.errors import ShardingError
from tableshard.infrastructure.sqlite import SQLiteShardStore
from tableshard.reporter import print_paginator, print_tables
from tableshard.strategies.abstract import ShardingStrategy
from tableshard.strategies.hash_sharding import HashShardingStrategy
from tableshard.strategies.numeric import DEFAULT_RANGE_SIZE, ModuloShardingStrategy, RangeShardingStrategy
from tableshard.strategies.time_sharding import TimeShardingStrategy, TimeUnit
from tableshard.utils.logging import configure_logging

app = typer.Typer(help="tableshard CLI: inspect shard layouts and route keys.")


class StrategyKind(str, enum.Enum):
    HASH = "hash"
    RANGE = "range"
    MODULO = "modulo"
    TIME = "time"


def build_strategy(
    kind: StrategyKind,
    base: str,
    key: str,
    count: int,
    range_size: int,
    unit: TimeUnit,
) -> ShardingStrategy:
    """Build a strategy from CLI options."""
    if kind is StrategyKind.HASH:
        return HashShardingStrategy(base, key, count)
    if kind is StrategyKind.RANGE:
        return RangeShardingStrategy(base, key, range_size, count)
    if kind is StrategyKind.MODULO:
        return ModuloShardingStrategy(base, key, count)
    return TimeShardingStrategy(base, key, unit)


def parse_value(text: str) -> Any:
    """Integers stay integers; everything else is passed through as text."""
    stripped = text.strip()
    if stripped.lstrip("-").isdigit():
        return int(stripped)
    return text


KindOption = typer.Option(StrategyKind.HASH, "--strategy", "-s", help="Sharding strategy.")
BaseOption = typer.Option(..., "--base", "-b", help="Logical (base) table name.")
KeyOption = typer.Option("id", "--key", "-k", help="Sharding key field.")
CountOption = typer.Option(4, "--count", "-n", help="Shard count (hash, range) or modulus (modulo).")
RangeSizeOption = typer.Option(DEFAULT_RANGE_SIZE, "--range-size", help="Values per range shard.")
UnitOption = typer.Option(TimeUnit.MONTH, "--unit", "-u", help="Time granularity.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"page_size={settings.default_page_size} lookback_years={settings.default_lookback_years} "
        f"epoch_millis_threshold={settings.epoch_millis_threshold}"
    )


@app.command()
def tables(
    kind: StrategyKind = KindOption,
    base: str = BaseOption,
    key: str = KeyOption,
    count: int = CountOption,
    range_size: int = RangeSizeOption,
    unit: TimeUnit = UnitOption,
    start: Optional[str] = typer.Option(None, "--start", help="Window start (time strategy)."),
    end: Optional[str] = typer.Option(None, "--end", help="Window end (time strategy)."),
) -> None:
    """
    List the physical tables a fan-out over this strategy visits.
    """
    configure_logging(level=get_settings().log_level)
    strategy = build_strategy(kind, base, key, count, range_size, unit)
    try:
        names = resolve_table_names(strategy, start, end)
    except ShardingError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    print_tables(repr(strategy), names)


@app.command()
def route(
    value: str = typer.Argument(..., help="Sharding key value."),
    kind: StrategyKind = KindOption,
    base: str = BaseOption,
    key: str = KeyOption,
    count: int = CountOption,
    range_size: int = RangeSizeOption,
    unit: TimeUnit = UnitOption,
) -> None:
    """
    Resolve a key value to its physical table.
    """
    configure_logging(level=get_settings().log_level)
    strategy = build_strategy(kind, base, key, count, range_size, unit)
    try:
        table = strategy.get_table_name(base, parse_value(value))
    except ShardingError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(table)


@app.command()
def browse(
    database: str = typer.Option(..., "--sqlite", help="SQLite database file holding the shard tables."),
    kind: StrategyKind = KindOption,
    base: str = BaseOption,
    key: str = KeyOption,
    count: int = CountOption,
    range_size: int = RangeSizeOption,
    unit: TimeUnit = UnitOption,
    page: int = typer.Option(1, "--page", "-p", help="Page number, starting at 1."),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Rows per page (default from settings)."),
) -> None:
    """
    Page through a sharded table stored in a SQLite database.
    """
    configure_logging(level=get_settings().log_level)
    strategy = build_strategy(kind, base, key, count, range_size, unit)
    with SQLiteShardStore(database) as store:
        try:
            paginator = cross_table_paginate(store, strategy, page, page_size)
        except ShardingError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1)
    print_paginator(base, paginator)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
