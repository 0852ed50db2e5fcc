"""
Request dispatcher - the caller-facing side of the relay.

``send_message()`` builds a request, appends it to the shared queue, hands
the id to the dual-path waiter and turns the waiter's verdict into either
the agent's response or an exception. The dispatcher owns the long-lived
pieces (executor, store, hub, notification server) and tears them down in
``close()``.

Manifesto:
    - **The store is the answer:** a webhook only says *when*; the response
      text is always read from the ``processed`` bucket
    - **Fail fast on write:** a request that never reached the queue is an
      error at once, not after the full wait
    - **Webhooks are optional:** if the notification server cannot start,
      requests still complete by polling

Architecture:
    ::

        send_message(query)
          ├─ IdAllocator.next_id()
          ├─ QueueStore.append_pending(record)        StoreWriteError on failure
          ├─ trigger_queue_check()                    (auto_trigger only)
          ├─ DualPathWaiter.wait(id, timeout)
          │     ├─ viaSignal ──► QueueStore.find_processed(id) ──► response
          │     ├─ polled    ──► response from that poll
          │     └─ timedOut  ──► RequestTimeoutError
          └─ return response

Examples:
    >>> async with RequestDispatcher(settings) as relay:
    ...     answer = await relay.send_message("What's on the calendar today?")

Tags:
    dispatcher, request-response, queue, webhook, relay

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import shlex
import time
from typing import Any

from relay.api.server import NotificationServer
from relay.coordination.hub import NotificationHub
from relay.coordination.poller import Poller
from relay.coordination.waiter import DualPathWaiter
from relay.core.errors import (
    NotificationServerError,
    PayloadMissingError,
    RelayError,
    RequestNotFoundError,
    RequestTimeoutError,
    StoreWriteError,
    TransportError,
)
from relay.core.ids import IdAllocator
from relay.core.logging import LogContext, get_logger
from relay.core.models import RequestRecord, utcnow_iso
from relay.core.settings import RelaySettings, get_settings
from relay.store.queue import QueueStore
from relay.transport import create_executor
from relay.transport.protocol import RemoteExecutor

logger = get_logger(__name__)


class RequestDispatcher:
    """Send queries to the remote agent and wait for their responses."""

    def __init__(
        self,
        settings: RelaySettings | None = None,
        *,
        executor: RemoteExecutor | None = None,
        store: QueueStore | None = None,
        hub: NotificationHub | None = None,
        id_allocator: IdAllocator | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.executor = executor or (store.executor if store else create_executor(self.settings))
        self.store = store or QueueStore(self.executor, self.settings.queue_path)
        self.hub = hub
        self.ids = id_allocator or IdAllocator()
        self.server: NotificationServer | None = None
        self.poller = Poller(self.store, interval=self.settings.poll_interval_seconds)
        self._owns_hub = False
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Start the notification server when webhooks are enabled.

        A server that cannot start (port taken, bind refused) is logged and
        the dispatcher continues in polling-only mode.
        """
        if self._initialized:
            return
        self._initialized = True

        if not self.settings.use_webhooks:
            logger.info("dispatcher.ready", mode="poll-only", queue_path=self.store.path)
            return

        if self.hub is None:
            self.hub = NotificationHub(cache_ttl=self.settings.cache_ttl_seconds)
            self._owns_hub = True

        server = NotificationServer(
            self.hub,
            host=self.settings.notification_host,
            port=self.settings.notification_port,
        )
        try:
            await server.start()
        except NotificationServerError as exc:
            logger.warning(
                "dispatcher.webhooks_unavailable",
                error=exc.message,
                fallback="polling",
            )
            if self._owns_hub:
                self.hub.close()
                self.hub = None
                self._owns_hub = False
        else:
            self.server = server

        logger.info(
            "dispatcher.ready",
            mode="dual-path" if self.server else "poll-only",
            queue_path=self.store.path,
        )

    async def close(self) -> None:
        if self.server is not None:
            await self.server.stop()
            self.server = None
        if self.hub is not None and self._owns_hub:
            self.hub.close()
            self.hub = None
            self._owns_hub = False
        self._initialized = False

    async def __aenter__(self) -> RequestDispatcher:
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def send_message(
        self,
        query: str,
        *,
        timeout: float | None = None,
        channel: str | None = None,
        session: str | None = None,
        images: list[str] | None = None,
    ) -> Any:
        """Queue ``query`` and return the agent's response.

        Args:
            query: text handed to the agent
            timeout: seconds to wait; defaults to ``message_timeout_ms``
            channel: originating chat channel, stored on the record
            session: remote session name, stored as ``sessionName``
            images: image paths on the worker host

        Raises:
            StoreWriteError: the request could not be appended to the queue
            RequestTimeoutError: no response within ``timeout``
            PayloadMissingError: signaled complete but absent from ``processed``
        """
        await self.initialize()
        wait_for = self.settings.message_timeout_seconds if timeout is None else timeout
        message_id = self.ids.next_id()
        record = RequestRecord(
            id=message_id,
            query=query,
            origin=self.settings.origin,
            channel=channel,
            created_at=utcnow_iso(),
            session_name=session or self.settings.tmux_session,
            images=images or None,
            image_count=len(images) if images else None,
        )

        async with LogContext(message_id=message_id):
            await self._enqueue(record)
            logger.info("request.queued", query_chars=len(query), timeout_s=wait_for)

            if self.settings.auto_trigger:
                await self.trigger_queue_check()

            started = time.monotonic()
            waiter = DualPathWaiter(self.poller, self._live_hub())
            result = await waiter.wait(message_id, wait_for)
            elapsed = time.monotonic() - started

            if result.timed_out:
                logger.warning("request.timeout", elapsed_ms=round(elapsed * 1000))
                raise RequestTimeoutError(message_id, elapsed=elapsed, timeout=wait_for)

            if result.polled:
                response = result.response
            else:
                response = await self._read_response(message_id)

            logger.info("request.completed", path=result.path, elapsed_ms=round(elapsed * 1000))
            return response

    async def _enqueue(self, record: RequestRecord) -> None:
        try:
            await self.store.append_pending(record)
        except StoreWriteError:
            raise
        except RelayError as exc:
            raise StoreWriteError(
                f"Failed to queue message {record.id}: {exc.message}", cause=exc
            ).with_context(message_id=record.id, queue_path=self.store.path) from exc

    async def _read_response(self, message_id: int) -> Any:
        record = await self.store.find_processed(message_id)
        if record is None:
            raise PayloadMissingError(message_id, via="signal").with_context(
                queue_path=self.store.path
            )
        return record.response

    def _live_hub(self) -> NotificationHub | None:
        if self.hub is None or self.hub.closed:
            return None
        return self.hub

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_history(self, limit: int = 10) -> list[RequestRecord]:
        """The last ``limit`` processed requests, most recent first."""
        if limit <= 0:
            return []
        doc = await self.store.load()
        return list(reversed(doc.processed[-limit:]))

    async def get_request(self, message_id: int | str) -> tuple[str, RequestRecord]:
        """Find a request in any bucket. Returns ``(bucket, record)``."""
        found = await self.store.locate(message_id)
        if found is None:
            raise RequestNotFoundError(message_id).with_context(queue_path=self.store.path)
        return found

    async def get_status(self) -> dict[str, Any]:
        doc = await self.store.load()
        return {
            **doc.counts(),
            "queuePath": self.store.path,
            "transport": self.executor.describe(),
            "webhooksEnabled": self.settings.use_webhooks,
            "notificationServer": self.server.get_status() if self.server else None,
        }

    # ------------------------------------------------------------------
    # Remote session
    # ------------------------------------------------------------------

    async def trigger_queue_check(self) -> bool:
        """Type the trigger text into the remote tmux session and press Enter.

        Returns False (and logs) when no session is configured or the remote
        command fails; the request itself is already queued either way.
        """
        session = self.settings.tmux_session
        if not session:
            logger.debug("trigger.skipped", reason="no tmux session configured")
            return False

        target = shlex.quote(session)
        command = (
            f"tmux send-keys -t {target} {shlex.quote(self.settings.trigger_text)}"
            f" && tmux send-keys -t {target} C-m"
        )
        try:
            await self.executor.run(command)
        except TransportError as exc:
            logger.warning("trigger.failed", session=session, error=str(exc))
            return False
        logger.info("trigger.sent", session=session)
        return True
