"""CLI commands for the worker-side queue helper.

Usage::

    relay queue list
    relay queue respond 1718000000000 "Here is the summary..."
    relay queue respond 1718000000000 --file answer.md --origin relay
    relay queue init
"""

from __future__ import annotations

from pathlib import Path

import typer

from relay.cli.utils import console, load_settings, print_json, print_records, run

app = typer.Typer(
    name="queue",
    help="Inspect and answer queued requests.",
    no_args_is_help=True,
)


def _store():
    from relay.store.queue import QueueStore
    from relay.transport import create_executor

    settings = load_settings()
    return QueueStore(create_executor(settings), settings.queue_path)


@app.command("list")
def list_requests(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List pending requests."""
    from relay.ops.queue_admin import list_pending

    records = run(list_pending(_store()))
    if as_json:
        print_json([record.to_dict() for record in records])
        return
    print_records(records, title="Pending requests")
    console.print(f"Total: {len(records)} pending")


@app.command("respond")
def respond_cmd(
    message_id: str = typer.Argument(..., help="Id of the request to answer"),
    response: str | None = typer.Argument(None, help="Response text"),  # noqa: UP007
    file: Path | None = typer.Option(  # noqa: UP007
        None, "--file", "-f", exists=True, dir_okay=False, help="Read the response from a file"
    ),
    origin: str | None = typer.Option(  # noqa: UP007
        None, "--origin", help="Refuse requests from any other producer"
    ),
) -> None:
    """Move a request to processed with its response."""
    from relay.ops.queue_admin import respond

    if file is not None:
        response = file.read_text(encoding="utf-8")
    if response is None:
        console.print("[red]Provide the response text or --file.[/red]")
        raise typer.Exit(code=2)

    record = run(respond(_store(), message_id, response, origin=origin))
    console.print(f"[green]Responded[/green] to {record.id} ({len(response)} chars)")


@app.command("init")
def init() -> None:
    """Create an empty queue document if none exists."""
    from relay.ops.queue_admin import initialize_store

    store = _store()
    if run(initialize_store(store)):
        console.print(f"[green]Created[/green] {store.path}")
    else:
        console.print(f"{store.path} already exists")
