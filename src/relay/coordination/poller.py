"""Poll loop: re-read the queue until a request shows up in ``processed``.

Each attempt is a full read-and-parse of the store. Transport and parse
failures are logged and count as "not yet"; only the deadline ends the loop.
Every read is bounded by the time left, so the loop returns at the deadline
even if the worker host stops answering (the in-flight ssh child is killed
by the executor when the bounded read is cancelled).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

from relay.core.errors import RelayError
from relay.core.logging import get_logger
from relay.core.models import Completion
from relay.store.queue import QueueStore

logger = get_logger(__name__)


class Poller:
    """Fixed-interval poller over a ``QueueStore``."""

    def __init__(
        self,
        store: QueueStore,
        *,
        interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.interval = interval
        self._clock = clock

    async def poll(self, message_id: Any, timeout: float) -> Completion:
        """Return ``polled`` with the response, or ``timed_out`` at the deadline."""
        started = self._clock()
        deadline = started + timeout
        attempt = 0

        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break

            attempt += 1
            record = None
            try:
                record = await asyncio.wait_for(
                    self.store.find_processed(message_id, timeout=remaining),
                    timeout=remaining,
                )
            except TimeoutError:
                logger.debug("poll.read_overran_deadline", message_id=message_id, attempt=attempt)
                break
            except RelayError as exc:
                logger.warning(
                    "poll.attempt_failed",
                    message_id=message_id,
                    attempt=attempt,
                    error=exc.to_dict(),
                )

            if record is not None:
                logger.info(
                    "poll.found",
                    message_id=message_id,
                    attempts=attempt,
                    elapsed_ms=round((self._clock() - started) * 1000),
                )
                return Completion.from_poll(message_id, record.response)

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.interval, remaining))

        logger.info(
            "poll.timeout",
            message_id=message_id,
            attempts=attempt,
            elapsed_ms=round((self._clock() - started) * 1000),
        )
        return Completion.timeout(message_id)
