"""
Webhook notifier - runs next to the queue and pushes completions.

Watches the ``processed`` bucket and POSTs ``{messageId, status, timestamp}``
to the dispatcher's ``/notify`` endpoint for every newly answered request of
one origin. Records answered before the notifier started are skipped, and a
record is only marked as notified once the endpoint accepted it, so a
failed POST is retried on the next check.

Guardrails:
    - Records of other origins are marked seen without a POST
    - A failed read or POST is logged; the loop keeps running

Doc-Types: OPS_MODULE
"""

from __future__ import annotations

import asyncio
import contextlib

import httpx

from relay.core.errors import ConfigError, RelayError
from relay.core.logging import get_logger
from relay.core.models import RequestRecord, id_key, utcnow_iso
from relay.store.queue import QueueStore

logger = get_logger(__name__)


class WebhookNotifier:
    def __init__(
        self,
        store: QueueStore,
        webhook_url: str,
        *,
        origin: str = "relay",
        interval: float = 10.0,
        request_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.store = store
        self.webhook_url = webhook_url
        self.origin = origin
        self.interval = interval
        self.request_timeout = request_timeout
        self._client = client
        self._seen: set[str] = set()
        self._primed = False
        self._stopping = asyncio.Event()

    @property
    def primed(self) -> bool:
        return self._primed

    def has_notified(self, message_id: int | str) -> bool:
        return id_key(message_id) in self._seen

    async def prime(self) -> int:
        """Mark everything already processed as seen. Returns the count."""
        doc = await self.store.load()
        self._seen.update(record.key for record in doc.processed)
        self._primed = True
        logger.info("notifier.primed", already_processed=len(self._seen))
        return len(self._seen)

    async def check_once(self) -> list[int | str]:
        """Notify for new processed records. Returns the ids that were sent."""
        if not self._primed:
            await self.prime()
            return []

        doc = await self.store.load()
        sent: list[int | str] = []
        for record in doc.processed:
            if record.key in self._seen:
                continue
            if record.origin != self.origin:
                self._seen.add(record.key)
                continue
            if await self._post(record):
                self._seen.add(record.key)
                sent.append(record.id)
        return sent

    async def _post(self, record: RequestRecord) -> bool:
        payload = {"messageId": record.id, "status": "completed", "timestamp": utcnow_iso()}
        client = self._client
        if client is None:
            raise ConfigError("check_once() needs an HTTP client; use run() or pass client=")
        try:
            response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("notifier.post_failed", message_id=record.id, error=str(exc))
            return False

        if response.is_success:
            logger.info("notifier.sent", message_id=record.id, status_code=response.status_code)
            return True
        logger.warning(
            "notifier.rejected",
            message_id=record.id,
            status_code=response.status_code,
            body=response.text[:200],
        )
        return False

    async def run(self) -> None:
        """Check every ``interval`` seconds until ``stop()`` is called."""
        owns_client = self._client is None
        if owns_client:
            self._client = httpx.AsyncClient(timeout=self.request_timeout)
        logger.info("notifier.started", webhook_url=self.webhook_url, origin=self.origin)
        try:
            while not self._stopping.is_set():
                try:
                    await self.check_once()
                except RelayError as exc:
                    logger.warning("notifier.check_failed", **exc.to_dict())
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
        finally:
            if owns_client:
                await self._client.aclose()
                self._client = None
            logger.info("notifier.stopped")

    def stop(self) -> None:
        self._stopping.set()
