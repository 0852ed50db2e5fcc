"""
CLI utility helpers - settings, async bridging and output formatting.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from typing import Any, NoReturn, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from relay.core.errors import RelayError
from relay.core.logging import configure_logging
from relay.core.models import RequestRecord
from relay.core.settings import RelaySettings, get_settings

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


def load_settings() -> RelaySettings:
    """Read settings from the environment and configure logging from them."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` to completion, turning relay errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except RelayError as exc:
        fail(exc)


def fail(exc: RelayError) -> NoReturn:
    err_console.print(f"[bold red]Error[/bold red] ({exc.__class__.__name__}): {exc.message}")
    raise typer.Exit(code=1)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def _preview(text: Any, width: int = 60) -> str:
    value = "" if text is None else str(text).replace("\n", " ")
    return value if len(value) <= width else value[: width - 3] + "..."


def print_records(records: list[RequestRecord], *, title: str, show_response: bool = False) -> None:
    """Render queue records as a table."""
    if not records:
        console.print(f"[dim]{title}: none[/dim]")
        return

    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Origin")
    table.add_column("Created")
    table.add_column("Query")
    if show_response:
        table.add_column("Response")

    for record in records:
        row = [str(record.id), record.origin or "-", record.created_at or "-", _preview(record.query)]
        if show_response:
            row.append(_preview(record.response))
        table.add_row(*row)
    console.print(table)
