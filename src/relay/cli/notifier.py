"""CLI: ``relay notifier watch`` - push completions to the dispatcher."""

from __future__ import annotations

import asyncio
import signal

import typer

from relay.cli.utils import console, load_settings, run

app = typer.Typer(
    name="notifier",
    help="Worker-side webhook notifier.",
    no_args_is_help=True,
)


@app.command("watch")
def watch(
    webhook_url: str | None = typer.Option(  # noqa: UP007
        None, "--url", help="Notification endpoint (default: RELAY_WEBHOOK_URL)"
    ),
    interval: float | None = typer.Option(  # noqa: UP007
        None, "--interval", help="Seconds between checks (default: RELAY_NOTIFIER_INTERVAL_MS)"
    ),
) -> None:
    """Watch the processed bucket and POST each new completion."""
    from relay.ops.notifier import WebhookNotifier
    from relay.store.queue import QueueStore
    from relay.transport import create_executor

    settings = load_settings()
    url = webhook_url or settings.webhook_url
    if not url:
        console.print("[red]No webhook URL. Pass --url or set RELAY_WEBHOOK_URL.[/red]")
        raise typer.Exit(code=1)

    notifier = WebhookNotifier(
        QueueStore(create_executor(settings), settings.queue_path),
        url,
        origin=settings.origin,
        interval=interval if interval is not None else settings.notifier_interval_seconds,
    )

    async def _watch() -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, notifier.stop)
        await notifier.run()

    console.print(f"Watching {settings.queue_path} -> {url}")
    run(_watch())
