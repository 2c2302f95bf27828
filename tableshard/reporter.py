from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from tableshard.domain.fields import record_to_row
from tableshard.domain.models import Paginator


def print_tables(title: str, tables: Sequence[str], console: Optional[Console] = None) -> None:
    """Render an enumerated shard list, one physical table per row."""
    console = console or Console()

    if not tables:
        console.print("[yellow]No shard tables.[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED, caption=f"{len(tables)} shard table(s)")
    table.add_column("#", justify="right", style="blue")
    table.add_column("Physical table", style="cyan", no_wrap=True)
    for index, name in enumerate(tables):
        table.add_row(str(index), name)

    console.print(table)


def _row_dict(item: Any) -> Dict[str, Any]:
    if isinstance(item, dict):
        return item
    return record_to_row(item)


def print_paginator(title: str, paginator: Paginator, console: Optional[Console] = None) -> None:
    """
    Render one page of results.

    Columns are the union of the row keys in first-seen order; the caption
    carries the page position and the cross-shard total.
    """
    console = console or Console()
    caption = (
        f"Page {paginator.page}/{max(paginator.total_pages, 1)} │ "
        f"{paginator.page_size} per page │ {paginator.total:,} total"
    )

    rows: List[Dict[str, Any]] = [_row_dict(item) for item in paginator.data]
    if not rows:
        console.print(f"[yellow]No rows on this page.[/yellow] [dim]{caption}[/dim]")
        return

    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)

    table = Table(title=title, box=box.ROUNDED, caption=caption)
    for column in columns:
        table.add_column(column, style="cyan" if column.endswith("id") else None)
    for row in rows:
        table.add_row(*("" if row.get(column) is None else str(row.get(column)) for column in columns))

    console.print(table)


__all__ = ["print_paginator", "print_tables"]
