"""
Queue store - the shared JSON document, read and written wholesale.

The document lives on the worker host and is mutated by both sides through
full read-modify-write cycles. There is no server-side lock, so writes are
guarded optimistically: every read records the ETag (SHA-256 of the raw
text), and a write first re-reads the file and refuses to overwrite it if
the ETag moved. ``update()`` retries such conflicts a bounded number of
times by re-running the mutation against a fresh read.

Architecture:
    ::

        update(mutate)
          │
          ├─ load()  ──► executor.read_file(path) ──► QueueDocument(etag=E1)
          ├─ mutate(doc)
          └─ save(doc)
               ├─ executor.read_file(path) ──► etag E2
               ├─ E1 != E2  ──► StoreConflictError (retry from load)
               └─ executor.write_file(path, doc.to_json())   (tmp + mv)

Guardrails:
    - The re-read/write pair is two remote commands; a writer landing
      between them is still lost. The window is one round trip instead of
      the whole mutation.
    - ``load()`` never mutates; a failed read leaves nothing behind.

Tags:
    queue, store, optimistic-concurrency, etag, relay

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from relay.core.errors import MalformedStoreError, RequestNotFoundError, StoreConflictError
from relay.core.logging import get_logger
from relay.core.models import QueueDocument, RequestRecord, utcnow_iso
from relay.transport.protocol import RemoteExecutor

logger = get_logger(__name__)

T = TypeVar("T")


class QueueStore:
    """Read/write access to one queue document through a ``RemoteExecutor``."""

    def __init__(
        self,
        executor: RemoteExecutor,
        path: str,
        *,
        max_conflict_retries: int = 3,
    ) -> None:
        self.executor = executor
        self.path = path
        self.max_conflict_retries = max_conflict_retries

    async def load(self, *, timeout: float | None = None) -> QueueDocument:
        """Read and parse the whole document.

        Raises:
            TransportError: the read command failed
            MalformedStoreError: the text is not a valid queue document
        """
        raw = await self.executor.read_file(self.path, timeout=timeout)
        if not raw.strip():
            raise MalformedStoreError("queue document is empty").with_context(queue_path=self.path)
        try:
            return QueueDocument.from_json(raw)
        except MalformedStoreError as exc:
            raise exc.with_context(queue_path=self.path)

    async def save(self, doc: QueueDocument, *, timeout: float | None = None) -> QueueDocument:
        """Write ``doc`` back, refusing if the file changed since ``doc`` was read."""
        if doc.etag is not None:
            current = await self.executor.read_file(self.path, timeout=timeout)
            actual = QueueDocument.compute_etag(current)
            if actual != doc.etag:
                raise StoreConflictError(
                    "queue document changed since it was read",
                    expected=doc.etag,
                    actual=actual,
                ).with_context(queue_path=self.path)

        doc.version += 1
        text = doc.to_json()
        await self.executor.write_file(self.path, text, timeout=timeout)
        doc.etag = QueueDocument.compute_etag(text)
        logger.debug("queue.saved", path=self.path, version=doc.version, **doc.counts())
        return doc

    async def update(
        self,
        mutate: Callable[[QueueDocument], T],
        *,
        timeout: float | None = None,
    ) -> T:
        """Apply ``mutate`` to a fresh read and save, retrying on conflicts."""
        attempt = 0
        while True:
            doc = await self.load(timeout=timeout)
            result = mutate(doc)
            try:
                await self.save(doc, timeout=timeout)
                return result
            except StoreConflictError:
                attempt += 1
                if attempt > self.max_conflict_retries:
                    raise
                logger.warning("queue.write_conflict", path=self.path, attempt=attempt)

    async def initialize(self) -> bool:
        """Create an empty document if none exists. Returns True if created."""
        if await self.executor.exists(self.path):
            return False
        await self.executor.write_file(self.path, QueueDocument(has_processing=True).to_json())
        logger.info("queue.initialized", path=self.path)
        return True

    async def append_pending(self, record: RequestRecord) -> None:
        await self.update(lambda doc: doc.pending.append(record))

    async def find_processed(
        self, message_id: int | str, *, timeout: float | None = None
    ) -> RequestRecord | None:
        """The processed record for ``message_id``, or None.

        Ids duplicated across buckets are reported as missing.
        """
        doc = await self.load(timeout=timeout)
        record = doc.find("processed", message_id)
        if record is not None and doc.duplicates(message_id) > 1:
            logger.warning("queue.duplicate_id", message_id=message_id, path=self.path)
            return None
        return record

    async def locate(self, message_id: int | str) -> tuple[str, RequestRecord] | None:
        doc = await self.load()
        return doc.locate(message_id)

    async def mark_processed(
        self,
        message_id: int | str,
        response: str,
        *,
        guard: Callable[[RequestRecord], None] | None = None,
    ) -> RequestRecord:
        """Move a record from ``pending``/``processing`` to ``processed``.

        ``guard`` may raise to veto the move after the record is found.
        """

        def _move(doc: QueueDocument) -> RequestRecord:
            for bucket in ("pending", "processing"):
                records = doc.bucket(bucket)
                for index, record in enumerate(records):
                    if record.matches(message_id):
                        if guard is not None:
                            guard(record)
                        del records[index]
                        record.response = response
                        record.responded_at = utcnow_iso()
                        doc.processed.append(record)
                        return record
            raise RequestNotFoundError(message_id, bucket="pending").with_context(
                queue_path=self.path
            )

        record = await self.update(_move)
        logger.info("queue.processed", message_id=message_id, path=self.path)
        return record
