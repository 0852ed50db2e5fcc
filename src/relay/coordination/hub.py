"""
Notification hub - turns inbound completion signals into awaitable futures.

A caller registers interest in a message id and gets an ``asyncio.Future``
that settles exactly once: with the signal when the webhook arrives, or with
a timed-out ``Completion`` when its timer fires. Signals that arrive before
anyone registered are cached for a grace period so the next registration for
that id resolves immediately.

Manifesto:
    - **Exactly once:** a registration is removed from the map *before* its
      future settles, and every settling path checks identity and
      ``future.done()``; a late signal can only ever find an empty slot
    - **No leaked timers:** the path that settles a registration or evicts a
      cache entry cancels its ``TimerHandle``; timers that still fire check
      that the slot holds the same object before touching it
    - **Instance state:** one hub per process, passed to whoever needs it
    - **Timeout is a value:** ``Completion(timed_out=True)``, never raised

Architecture:
    ::

        signal(id, status)                    await_completion(id, timeout)
              │                                         │
              ├─ waiter for id? ── yes ─► settle ◄──────┤─ cached(id)? ── yes ─► settle now
              │                                         │
              └─ no ─► cache[id] (ttl timer)            └─ no ─► waiters[id] + call_later(timeout)
                                                                        │
                                                          timer fires ──┴─► settle(timed_out)

Concurrency:
    Everything runs on one asyncio loop. Map mutations never straddle an
    ``await``, so no locks are needed. ``signal()`` is synchronous and may
    be called from the HTTP handler, a test, or a subscriber.

Examples:
    >>> hub = NotificationHub(cache_ttl=60.0)
    >>> hub.signal(42, "completed")          # nobody waiting yet: cached
    <SignalOutcome.CACHED: 'cached'>
    >>> result = await hub.await_completion(42, timeout=5.0)
    >>> result.to_dict()
    {'messageId': 42, 'status': 'completed', 'viaSignal': True}

Tags:
    coordination, futures, webhook, race-window, relay

Doc-Types:
    - API Reference
    - Concurrency Notes
"""

from __future__ import annotations

import asyncio
import functools
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from relay.core.errors import CoordinationError, DuplicateRegistrationError, InvalidSignalError
from relay.core.logging import get_logger
from relay.core.models import Completion, id_key

logger = get_logger(__name__)

SignalCallback = Callable[[Any, str], None]


class SignalOutcome(str, Enum):
    """What ``signal()`` did with the completion."""

    RESOLVED = "resolved"
    CACHED = "cached"


@dataclass
class _Registration:
    message_id: Any
    future: asyncio.Future[Completion]
    created_at: float
    started: float
    timer: asyncio.TimerHandle | None = None


@dataclass
class _CachedCompletion:
    message_id: Any
    status: str
    arrived_at: float
    received: float
    expires_at: float
    timer: asyncio.TimerHandle | None = None


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class NotificationHub:
    """Registry of waiters and early completions keyed by message id."""

    def __init__(
        self,
        *,
        cache_ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._wall_clock = wall_clock
        self._waiters: dict[str, _Registration] = {}
        self._cache: dict[str, _CachedCompletion] = {}
        self._subscribers: dict[str, list[SignalCallback]] = {}
        self._started = clock()
        self._closed = False

    # ------------------------------------------------------------------
    # Inbound signals
    # ------------------------------------------------------------------

    def signal(self, message_id: Any, status: str | None = "completed") -> SignalOutcome:
        """Record that ``message_id`` completed.

        Resolves the live registration if there is one, otherwise caches the
        completion for ``cache_ttl`` seconds (replacing any older entry).
        Duplicate signals are accepted.

        Raises:
            InvalidSignalError: ``message_id`` is missing or blank.
        """
        if message_id is None or id_key(message_id) == "":
            raise InvalidSignalError("messageId required")
        status = status or "completed"
        key = id_key(message_id)

        self._notify_subscribers(key, message_id, status)

        registration = self._waiters.pop(key, None)
        if registration is not None:
            self._cancel_timer(registration.timer)
            if not registration.future.done():
                registration.future.set_result(
                    Completion.signaled(registration.message_id, status)
                )
                logger.info(
                    "completion.signal",
                    message_id=message_id,
                    status=status,
                    path="resolved",
                    waited_ms=round((self._clock() - registration.started) * 1000),
                )
                return SignalOutcome.RESOLVED

        refreshed = self._cache_completion(key, message_id, status)
        logger.info(
            "completion.signal",
            message_id=message_id,
            status=status,
            path="cached",
            refreshed=refreshed,
        )
        return SignalOutcome.CACHED

    def _cache_completion(self, key: str, message_id: Any, status: str) -> bool:
        previous = self._cache.pop(key, None)
        if previous is not None:
            self._cancel_timer(previous.timer)

        now = self._clock()
        entry = _CachedCompletion(
            message_id=message_id,
            status=status,
            arrived_at=self._wall_clock(),
            received=now,
            expires_at=now + self.cache_ttl,
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop (sync caller): expiry is enforced lazily on read
            loop = None
        if loop is not None:
            entry.timer = loop.call_later(self.cache_ttl, self._expire_cached, key, entry)
        self._cache[key] = entry
        return previous is not None

    def _expire_cached(self, key: str, entry: _CachedCompletion) -> None:
        if self._cache.get(key) is not entry:
            return
        del self._cache[key]
        logger.debug("completion.cache_expired", message_id=entry.message_id)

    def _take_cached(self, key: str) -> _CachedCompletion | None:
        entry = self._cache.pop(key, None)
        if entry is None:
            return None
        self._cancel_timer(entry.timer)
        if self._clock() >= entry.expires_at:
            logger.debug("completion.cache_expired", message_id=entry.message_id)
            return None
        return entry

    def _purge_expired(self) -> None:
        now = self._clock()
        for key, entry in list(self._cache.items()):
            if now >= entry.expires_at:
                self._cancel_timer(entry.timer)
                del self._cache[key]

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------

    def await_completion(self, message_id: Any, timeout: float) -> asyncio.Future[Completion]:
        """Register interest in ``message_id`` and return a future for it.

        The registration exists as soon as this call returns, before the
        caller first awaits, so a signal arriving in between is not lost.
        Cancelling the returned future drops the registration.

        Raises:
            DuplicateRegistrationError: another live waiter holds this id.
            CoordinationError: the hub is closed.
        """
        if self._closed:
            raise CoordinationError("notification hub is closed")

        key = id_key(message_id)
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Completion] = loop.create_future()

        cached = self._take_cached(key)
        if cached is not None:
            future.set_result(Completion.signaled(message_id, cached.status))
            logger.info(
                "completion.cache_hit",
                message_id=message_id,
                status=cached.status,
                age_ms=round((self._clock() - cached.received) * 1000),
            )
            return future

        existing = self._waiters.get(key)
        if existing is not None and not existing.future.done():
            raise DuplicateRegistrationError(
                f"message {message_id} already has a waiter"
            ).with_context(message_id=message_id)

        registration = _Registration(
            message_id=message_id,
            future=future,
            created_at=self._wall_clock(),
            started=self._clock(),
        )
        registration.timer = loop.call_later(
            max(timeout, 0.0), self._expire_waiter, key, registration
        )
        self._waiters[key] = registration
        future.add_done_callback(functools.partial(self._on_waiter_done, key, registration))
        logger.debug("completion.waiting", message_id=message_id, timeout_s=timeout)
        return future

    def _expire_waiter(self, key: str, registration: _Registration) -> None:
        if self._waiters.get(key) is not registration:
            return
        del self._waiters[key]
        if not registration.future.done():
            registration.future.set_result(Completion.timeout(registration.message_id))
            logger.info(
                "completion.timeout",
                message_id=registration.message_id,
                waited_ms=round((self._clock() - registration.started) * 1000),
            )

    def _on_waiter_done(
        self, key: str, registration: _Registration, future: asyncio.Future[Completion]
    ) -> None:
        self._cancel_timer(registration.timer)
        if future.cancelled() and self._waiters.get(key) is registration:
            del self._waiters[key]
            logger.debug("completion.wait_cancelled", message_id=registration.message_id)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, message_id: Any, callback: SignalCallback) -> None:
        """Call ``callback(message_id, status)`` whenever ``message_id`` is signaled."""
        self._subscribers.setdefault(id_key(message_id), []).append(callback)

    def unsubscribe(self, message_id: Any, callback: SignalCallback) -> None:
        key = id_key(message_id)
        callbacks = self._subscribers.get(key)
        if not callbacks:
            return
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            del self._subscribers[key]

    def _notify_subscribers(self, key: str, message_id: Any, status: str) -> None:
        for callback in list(self._subscribers.get(key, ())):
            try:
                callback(message_id, status)
            except Exception:
                # a broken observer must not turn an accepted webhook into a 500
                logger.exception("completion.subscriber_failed", message_id=message_id)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def uptime(self) -> float:
        return self._clock() - self._started

    @property
    def closed(self) -> bool:
        return self._closed

    def is_waiting(self, message_id: Any) -> bool:
        return id_key(message_id) in self._waiters

    def has_cached(self, message_id: Any) -> bool:
        self._purge_expired()
        return id_key(message_id) in self._cache

    def get_status(self) -> dict[str, Any]:
        self._purge_expired()
        return {
            "running": not self._closed,
            "uptime": round(self.uptime, 3),
            "pendingMessages": len(self._waiters),
            "cachedCompletions": len(self._cache),
        }

    def pending_snapshot(self) -> list[dict[str, Any]]:
        now = self._clock()
        return [
            {
                "messageId": reg.message_id,
                "waitingSince": _iso(reg.created_at),
                "age": round((now - reg.started) * 1000),
            }
            for reg in self._waiters.values()
        ]

    def cached_snapshot(self) -> list[dict[str, Any]]:
        self._purge_expired()
        now = self._clock()
        return [
            {
                "messageId": entry.message_id,
                "status": entry.status,
                "arrivedAt": _iso(entry.arrived_at),
                "age": round((now - entry.received) * 1000),
            }
            for entry in self._cache.values()
        ]

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel every timer and outstanding waiter."""
        self._closed = True
        waiters, self._waiters = self._waiters, {}
        for registration in waiters.values():
            self._cancel_timer(registration.timer)
            registration.future.cancel()
        for entry in self._cache.values():
            self._cancel_timer(entry.timer)
        self._cache.clear()
        self._subscribers.clear()
        logger.debug("hub.closed", cancelled_waiters=len(waiters))

    @staticmethod
    def _cancel_timer(timer: asyncio.TimerHandle | None) -> None:
        if timer is not None:
            timer.cancel()
