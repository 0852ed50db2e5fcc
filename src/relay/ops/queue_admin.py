"""
Worker-side queue operations.

What the agent host runs to inspect and answer queued requests: list the
pending bucket, move a request to ``processed`` with its response, and
create an empty queue document. The webhook notifier picks up the move and
tells the dispatcher.

Doc-Types: OPS_MODULE
"""

from __future__ import annotations

from relay.core.errors import OriginMismatchError
from relay.core.logging import get_logger
from relay.core.models import RequestRecord
from relay.store.queue import QueueStore

logger = get_logger(__name__)


async def list_pending(store: QueueStore) -> list[RequestRecord]:
    """Return the pending records in queue order."""
    doc = await store.load()
    return list(doc.pending)


async def respond(
    store: QueueStore,
    message_id: int | str,
    response: str,
    *,
    origin: str | None = None,
) -> RequestRecord:
    """Answer a queued request.

    Args:
        store: Queue store on the worker host.
        message_id: Id of the request to answer.
        response: Response text recorded on the processed record.
        origin: When set, refuse to answer requests from any other producer.

    Raises:
        RequestNotFoundError: no pending or processing record has that id.
        OriginMismatchError: ``origin`` was given and the record's differs.
    """

    def _check_origin(record: RequestRecord) -> None:
        if origin is not None and record.origin != origin:
            raise OriginMismatchError(
                f"Message {record.id} is from {record.origin!r}, not {origin!r}"
            ).with_context(message_id=record.id, queue_path=store.path)

    record = await store.mark_processed(message_id, response, guard=_check_origin)
    logger.info(
        "queue.responded",
        message_id=record.id,
        origin=record.origin,
        response_chars=len(response),
    )
    return record


async def initialize_store(store: QueueStore) -> bool:
    """Create an empty queue document if none exists. Returns True if created."""
    return await store.initialize()
