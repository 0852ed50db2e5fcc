"""Tests for NotificationHub: signal/await ordering, cache, timers, cleanup."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import MagicMock

import pytest

from relay.coordination.hub import NotificationHub, SignalOutcome
from relay.core.errors import CoordinationError, DuplicateRegistrationError, InvalidSignalError


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestSignalAfterWait:
    @pytest.mark.asyncio
    async def test_signal_resolves_waiter(self):
        hub = NotificationHub()
        future = hub.await_completion(42, timeout=5.0)
        assert hub.is_waiting(42)

        assert hub.signal(42, "completed") is SignalOutcome.RESOLVED

        result = await future
        assert result.to_dict() == {"messageId": 42, "status": "completed", "viaSignal": True}
        assert not hub.is_waiting(42)
        assert not hub.has_cached(42)

    @pytest.mark.asyncio
    async def test_string_and_int_ids_match(self):
        hub = NotificationHub()
        future = hub.await_completion(42, timeout=5.0)
        hub.signal("42")
        assert (await future).via_signal

    @pytest.mark.asyncio
    async def test_second_signal_does_not_resettle(self):
        hub = NotificationHub()
        future = hub.await_completion(7, timeout=5.0)
        hub.signal(7, "completed")
        assert hub.signal(7, "failed") is SignalOutcome.CACHED
        assert (await future).status == "completed"

    @pytest.mark.asyncio
    async def test_missing_status_defaults_to_completed(self):
        hub = NotificationHub()
        future = hub.await_completion(7, timeout=5.0)
        hub.signal(7, None)
        assert (await future).status == "completed"


class TestSignalBeforeWait:
    @pytest.mark.asyncio
    async def test_early_signal_is_cached_then_consumed(self):
        hub = NotificationHub(cache_ttl=60.0)
        assert hub.signal(42) is SignalOutcome.CACHED
        assert hub.has_cached(42)

        started = time.monotonic()
        future = hub.await_completion(42, timeout=5.0)
        assert future.done()
        assert (await future).to_dict() == {
            "messageId": 42,
            "status": "completed",
            "viaSignal": True,
        }
        assert time.monotonic() - started < 0.05
        assert not hub.has_cached(42)
        assert not hub.is_waiting(42)

    @pytest.mark.asyncio
    async def test_duplicate_early_signal_refreshes_entry(self):
        hub = NotificationHub()
        hub.signal(1, "completed")
        hub.signal(1, "failed")
        assert hub.get_status()["cachedCompletions"] == 1
        assert (await hub.await_completion(1, timeout=1.0)).status == "failed"

    @pytest.mark.asyncio
    async def test_cache_entry_expires(self):
        hub = NotificationHub(cache_ttl=0.05)
        hub.signal(42)
        await asyncio.sleep(0.1)
        assert not hub.has_cached(42)

        result = await hub.await_completion(42, timeout=0.05)
        assert result.timed_out

    def test_cache_expiry_without_event_loop(self):
        clock = FakeClock()
        hub = NotificationHub(cache_ttl=60.0, clock=clock)
        hub.signal(42)
        assert hub.has_cached(42)
        clock.now += 61
        assert not hub.has_cached(42)
        assert hub.cached_snapshot() == []


class TestTimeout:
    @pytest.mark.asyncio
    async def test_waiter_times_out(self):
        hub = NotificationHub()
        started = time.monotonic()
        result = await hub.await_completion(7, timeout=0.2)
        elapsed = time.monotonic() - started

        assert result.to_dict() == {"messageId": 7, "timedOut": True}
        assert 0.19 <= elapsed < 0.5
        assert not hub.is_waiting(7)

    @pytest.mark.asyncio
    async def test_signal_after_timeout_is_cached(self):
        hub = NotificationHub()
        await hub.await_completion(5, timeout=0.01)
        assert hub.signal(5) is SignalOutcome.CACHED


class TestRegistration:
    @pytest.mark.asyncio
    async def test_second_live_waiter_rejected(self):
        hub = NotificationHub()
        future = hub.await_completion(9, timeout=5.0)
        with pytest.raises(DuplicateRegistrationError):
            hub.await_completion(9, timeout=5.0)
        future.cancel()

    @pytest.mark.asyncio
    async def test_new_waiter_after_first_settles(self):
        hub = NotificationHub()
        first = hub.await_completion(9, timeout=0.01)
        await first
        second = hub.await_completion(9, timeout=5.0)
        hub.signal(9)
        assert (await second).via_signal

    @pytest.mark.asyncio
    async def test_cancel_drops_registration(self):
        hub = NotificationHub()
        future = hub.await_completion(3, timeout=5.0)
        future.cancel()
        await asyncio.sleep(0)
        assert not hub.is_waiting(3)
        assert hub.signal(3) is SignalOutcome.CACHED

    def test_missing_id_rejected(self):
        hub = NotificationHub()
        with pytest.raises(InvalidSignalError):
            hub.signal(None)
        with pytest.raises(InvalidSignalError):
            hub.signal("  ")


class TestSubscribers:
    @pytest.mark.asyncio
    async def test_subscriber_sees_signal(self):
        hub = NotificationHub()
        callback = MagicMock()
        hub.subscribe(11, callback)
        hub.signal(11, "completed")
        callback.assert_called_once_with(11, "completed")

        hub.unsubscribe(11, callback)
        hub.signal(11)
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_resolution(self):
        hub = NotificationHub()
        hub.subscribe(12, MagicMock(side_effect=RuntimeError("observer bug")))
        future = hub.await_completion(12, timeout=5.0)
        assert hub.signal(12) is SignalOutcome.RESOLVED
        assert (await future).via_signal


class TestIntrospectionAndClose:
    @pytest.mark.asyncio
    async def test_status_and_snapshots(self):
        hub = NotificationHub()
        future = hub.await_completion(1, timeout=5.0)
        hub.signal(2, "completed")

        status = hub.get_status()
        assert status["running"] is True
        assert status["pendingMessages"] == 1
        assert status["cachedCompletions"] == 1

        [pending] = hub.pending_snapshot()
        assert pending["messageId"] == 1
        assert pending["waitingSince"].endswith("Z")
        [cached] = hub.cached_snapshot()
        assert cached["messageId"] == 2
        assert cached["status"] == "completed"
        future.cancel()

    @pytest.mark.asyncio
    async def test_close_cancels_everything(self):
        hub = NotificationHub()
        future = hub.await_completion(1, timeout=5.0)
        hub.signal(2)

        hub.close()

        assert future.cancelled()
        status = hub.get_status()
        assert status["running"] is False
        assert status["pendingMessages"] == 0
        assert status["cachedCompletions"] == 0
        with pytest.raises(CoordinationError):
            hub.await_completion(3, timeout=1.0)
