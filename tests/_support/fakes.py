"""
In-memory stand-ins for the worker host.

Usage in test code::

    from tests._support.fakes import FakeExecutor, make_record

    executor = FakeExecutor()
    executor.put_document(pending=[make_record(1)])
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from relay.core.errors import RemoteCommandError
from relay.core.settings import RelaySettings

QUEUE_PATH = "/srv/relay/message-queue.json"


class FakeExecutor:
    """``RemoteExecutor`` backed by a dict of path -> text.

    ``read_errors`` are raised (in order) by the next reads; ``read_delay``
    makes every read take that long; ``write_error`` fails every write.
    """

    name = "fake"

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.commands: list[str] = []
        self.read_errors: list[Exception] = []
        self.read_delay = 0.0
        self.write_error: Exception | None = None
        self.run_error: Exception | None = None
        self.reads = 0
        self.writes = 0
        self.cancelled_reads = 0

    async def run(self, command: str, *, stdin: str | None = None, timeout: float | None = None) -> str:
        self.commands.append(command)
        if self.run_error is not None:
            raise self.run_error
        return ""

    async def read_file(self, path: str, *, timeout: float | None = None) -> str:
        self.reads += 1
        if self.read_delay:
            try:
                await asyncio.sleep(self.read_delay)
            except asyncio.CancelledError:
                self.cancelled_reads += 1
                raise
        if self.read_errors:
            raise self.read_errors.pop(0)
        if path not in self.files:
            raise RemoteCommandError(
                f"cat: {path}: No such file or directory", exit_code=1, stderr="No such file"
            )
        return self.files[path]

    async def write_file(self, path: str, content: str, *, timeout: float | None = None) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.writes += 1
        self.files[path] = content

    async def exists(self, path: str, *, timeout: float | None = None) -> bool:
        return path in self.files

    def describe(self) -> dict:
        return {"transport": "fake"}

    def document(self, path: str = QUEUE_PATH) -> dict[str, Any]:
        return json.loads(self.files[path])

    def put_document(self, path: str = QUEUE_PATH, **buckets: Any) -> None:
        doc: dict[str, Any] = {"pending": [], "processed": []}
        doc.update(buckets)
        self.files[path] = json.dumps(doc)

    def answer(self, message_id: int | str, response: str, path: str = QUEUE_PATH) -> None:
        """Move a pending record to processed, as the worker would."""
        doc = self.document(path)
        record = next(r for r in doc["pending"] if str(r["id"]) == str(message_id))
        doc["pending"].remove(record)
        record.update(response=response, respondedAt="2026-01-01T00:00:01.000Z")
        doc["processed"].append(record)
        self.files[path] = json.dumps(doc)


def make_record(message_id: int | str, query: str = "hello", **fields: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": message_id,
        "query": query,
        "user": "relay",
        "timestamp": "2026-01-01T00:00:00.000Z",
        "retries": 0,
    }
    record.update(fields)
    return record


def make_settings(**overrides: Any) -> RelaySettings:
    values: dict[str, Any] = {
        "transport": "local",
        "queue_path": QUEUE_PATH,
        "use_webhooks": False,
        "poll_interval_ms": 10,
        "message_timeout_ms": 2000,
        "notification_host": "127.0.0.1",
        "notification_port": 0,
        "tmux_session": None,
    }
    values.update(overrides)
    return RelaySettings(_env_file=None, **values)
