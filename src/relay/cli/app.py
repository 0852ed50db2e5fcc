"""
Root Typer application for the relay CLI.

Caller side: ``send``, ``status``, ``history``, ``serve``.
Worker side: ``queue`` and ``notifier`` groups.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="relay",
    help="relay - hand queries to a remote agent through a shared queue.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("relay")
        except PackageNotFoundError:
            from relay import __version__ as v
        typer.echo(f"relay {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """relay CLI - send queries, inspect the queue, run the webhook side."""


# ── Sub-command registration ─────────────────────────────────────────────

from relay.cli import agent  # noqa: E402
from relay.cli.notifier import app as notifier_app  # noqa: E402
from relay.cli.queue import app as queue_app  # noqa: E402
from relay.cli.serve import serve  # noqa: E402

app.command("send")(agent.send)
app.command("status")(agent.status)
app.command("history")(agent.history)
app.command("serve")(serve)

app.add_typer(queue_app, name="queue", help="Worker-side queue helper.")
app.add_typer(notifier_app, name="notifier", help="Worker-side webhook notifier.")
