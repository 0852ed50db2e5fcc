"""
CLI: ``relay serve`` - run the notification endpoint on its own.

Useful for checking the webhook path from the worker host
(``curl -X POST :9000/notify -d '{"messageId": 1}'``) without sending a
request.
"""

from __future__ import annotations

import typer
import uvicorn

from relay.cli.utils import console, load_settings


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),  # noqa: UP007
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),  # noqa: UP007
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the standalone notification endpoint."""
    from relay.api.app import create_app
    from relay.coordination.hub import NotificationHub

    settings = load_settings()
    bind_host = host or settings.notification_host
    bind_port = port if port is not None else settings.notification_port

    console.print(
        f"[bold green]Starting notification endpoint[/bold green] on {bind_host}:{bind_port}"
    )
    uvicorn.run(
        create_app(NotificationHub(cache_ttl=settings.cache_ttl_seconds)),
        host=bind_host,
        port=bind_port,
        log_level=log_level,
    )
