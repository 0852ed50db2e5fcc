"""
CLI: ``relay send``, ``relay status``, ``relay history``.

Usage::

    relay send "summarize today's alerts"
    relay send "long job" --timeout 600
    relay status --json
    relay history 5
"""

from __future__ import annotations

import typer

from relay.cli.utils import console, load_settings, print_json, print_records, run


def send(
    query: str = typer.Argument(..., help="Text handed to the remote agent"),
    timeout: float | None = typer.Option(  # noqa: UP007
        None, "--timeout", "-t", help="Seconds to wait (default: RELAY_MESSAGE_TIMEOUT_MS)"
    ),
    channel: str | None = typer.Option(None, "--channel", help="Channel recorded on the request"),  # noqa: UP007
    session: str | None = typer.Option(None, "--session", help="Remote session name"),  # noqa: UP007
    poll_only: bool = typer.Option(False, "--poll-only", help="Do not start the webhook endpoint"),
) -> None:
    """Queue a query and print the agent's response."""
    from relay.dispatcher import RequestDispatcher

    settings = load_settings()
    if poll_only:
        settings = settings.model_copy(update={"use_webhooks": False})

    async def _send() -> object:
        async with RequestDispatcher(settings) as dispatcher:
            return await dispatcher.send_message(
                query, timeout=timeout, channel=channel, session=session
            )

    response = run(_send())
    typer.echo(response if isinstance(response, str) else repr(response))


def status(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show queue counts and connection details."""
    from relay.dispatcher import RequestDispatcher

    settings = load_settings()
    info = run(RequestDispatcher(settings).get_status())

    if as_json:
        print_json(info)
        return

    console.print(f"[bold]Queue[/bold]        {info['queuePath']}")
    console.print(
        f"[bold]Pending[/bold]      {info['pending']}   "
        f"[bold]Processing[/bold] {info['processing']}   "
        f"[bold]Processed[/bold] {info['processed']}"
    )
    console.print(f"[bold]Webhooks[/bold]     {'enabled' if info['webhooksEnabled'] else 'disabled'}")


def history(
    limit: int = typer.Argument(10, help="Number of processed requests to show"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the most recent processed requests, newest first."""
    from relay.dispatcher import RequestDispatcher

    settings = load_settings()
    records = run(RequestDispatcher(settings).get_history(limit))

    if as_json:
        print_json([record.to_dict() for record in records])
        return
    print_records(records, title="Recent responses", show_response=True)
