"""
Dual-path waiter - race the webhook against the poll loop.

Whichever path settles first decides *when* the request is done; the store
stays the source of truth for *what* the answer is. The losing path is
cancelled and awaited before ``wait()`` returns, so neither a registration
nor an ssh child outlives the call.

Architecture:
    ::

        wait(id, timeout)
          ├─ hub.await_completion(id, timeout) ──┐
          │                                      ├─ asyncio.wait(FIRST_COMPLETED)
          └─ task(poller.poll(id, timeout)) ─────┘
                                                 │
              success (signal > poll) > timed_out ◄┘   loser: cancel + await

Guardrails:
    - Both paths share one deadline; a timed-out winner ends the wait even
      if the other path is still running
    - No hub, or a hub that shuts down mid-wait, degrades to polling only
    - Ties inside one scheduler step prefer success over timeout and the
      signal over the poll

Tags:
    coordination, race, structured-concurrency, relay
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from relay.coordination.hub import NotificationHub
from relay.coordination.poller import Poller
from relay.core.logging import get_logger
from relay.core.models import Completion

logger = get_logger(__name__)


class DualPathWaiter:
    def __init__(self, poller: Poller, hub: NotificationHub | None = None) -> None:
        self.poller = poller
        self.hub = hub

    async def wait(self, message_id: Any, timeout: float) -> Completion:
        started = time.monotonic()
        hub = self.hub

        if hub is None or hub.closed:
            result = await self.poller.poll(message_id, timeout)
            self._log_outcome(result, started, mode="poll-only")
            return result

        signal_future = hub.await_completion(message_id, timeout)
        poll_task = asyncio.create_task(
            self.poller.poll(message_id, timeout), name=f"relay-poll-{message_id}"
        )

        try:
            pending: set[asyncio.Future[Completion]] = {signal_future, poll_task}
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                result = self._pick(done, signal_future, poll_task)
                if result is not None:
                    self._log_outcome(result, started, mode="race")
                    return result
                logger.info("wait.signal_path_closed", message_id=message_id)
            # unreachable: the poll path always settles with a value
            return Completion.timeout(message_id)
        finally:
            await self._discard(signal_future, poll_task)

    @staticmethod
    def _pick(
        done: set[asyncio.Future[Completion]],
        signal_future: asyncio.Future[Completion],
        poll_task: asyncio.Task[Completion],
    ) -> Completion | None:
        settled = [
            future.result()
            for future in (signal_future, poll_task)
            if future in done and not future.cancelled()
        ]
        for result in settled:
            if not result.timed_out:
                return result
        return settled[0] if settled else None

    @staticmethod
    async def _discard(
        signal_future: asyncio.Future[Completion], poll_task: asyncio.Task[Completion]
    ) -> None:
        if not signal_future.done():
            signal_future.cancel()
        if not poll_task.done():
            poll_task.cancel()
        results = await asyncio.gather(poll_task, return_exceptions=True)
        for outcome in results:
            if isinstance(outcome, Exception):
                logger.warning("wait.loser_failed", error=repr(outcome))

    @staticmethod
    def _log_outcome(result: Completion, started: float, *, mode: str) -> None:
        elapsed_ms = round((time.monotonic() - started) * 1000)
        if result.timed_out:
            logger.info("wait.timeout", message_id=result.message_id, elapsed_ms=elapsed_ms, mode=mode)
        else:
            logger.info(
                "wait.resolved",
                message_id=result.message_id,
                path=result.path,
                elapsed_ms=elapsed_ms,
                mode=mode,
            )
