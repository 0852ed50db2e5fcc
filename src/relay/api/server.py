"""In-process notification server.

Runs uvicorn as a task on the caller's event loop so the HTTP handler and
the dispatcher's waiters share one ``NotificationHub`` without threads.
The listening socket is bound up front: a busy port surfaces as
``NotificationServerError`` from ``start()`` instead of uvicorn exiting the
process.
"""

from __future__ import annotations

import asyncio
import contextlib
import socket
from collections.abc import Iterator
from typing import Any

import uvicorn

from relay.api.app import create_app
from relay.coordination.hub import NotificationHub
from relay.core.errors import NotificationServerError
from relay.core.logging import get_logger

logger = get_logger(__name__)


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signal handling to the host app."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class NotificationServer:
    def __init__(
        self,
        hub: NotificationHub,
        *,
        host: str = "0.0.0.0",
        port: int = 9000,
        log_level: str = "warning",
        startup_timeout: float = 5.0,
    ) -> None:
        self.hub = hub
        self.host = host
        self.port = port
        self.log_level = log_level
        self.startup_timeout = startup_timeout
        self._server: _EmbeddedServer | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def url(self) -> str:
        host = "localhost" if self.host in ("0.0.0.0", "") else self.host
        return f"http://{host}:{self.port}"

    async def start(self) -> int:
        """Bind, start serving, and return the bound port."""
        if self.running:
            return self.port

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as exc:
            sock.close()
            raise NotificationServerError(
                f"Cannot bind notification server to {self.host}:{self.port}: {exc}", cause=exc
            ) from exc
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(
            create_app(self.hub),
            log_level=self.log_level,
            access_log=False,
            lifespan="on",
        )
        self._server = _EmbeddedServer(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]), name="relay-notify-http")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout
        while not self._server.started:
            if self._task.done() or loop.time() >= deadline:
                await self._abort(self._task, sock)
                raise NotificationServerError(
                    f"Notification server failed to start on {self.host}:{self.port}"
                )
            await asyncio.sleep(0.01)

        logger.info("notification_server.started", url=f"{self.url}/notify")
        return self.port

    async def stop(self, timeout: float = 5.0) -> None:
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except TimeoutError:
            self._server.force_exit = True
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._server = None
        self._task = None
        logger.info("notification_server.stopped", port=self.port)

    async def _abort(self, task: asyncio.Task[None], sock: socket.socket) -> None:
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.warning("notification_server.startup_failed", error=str(exc))
        sock.close()
        self._server = None
        self._task = None

    def get_status(self) -> dict[str, Any]:
        return {**self.hub.get_status(), "running": self.running, "port": self.port}
