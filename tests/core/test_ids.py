"""Tests for IdAllocator."""

from __future__ import annotations

from relay.core.ids import IdAllocator


class TestIdAllocator:
    def test_time_derived(self):
        ids = IdAllocator(clock=lambda: 1700000000.123)
        assert ids.next_id() == 1700000000123

    def test_same_millisecond_is_unique(self):
        ids = IdAllocator(clock=lambda: 1700000000.0)
        first, second, third = ids.next_id(), ids.next_id(), ids.next_id()
        assert second == first + 1
        assert third == first + 2
        assert ids.last == third

    def test_clock_stepping_back_stays_monotonic(self):
        times = iter([100.0, 50.0])
        ids = IdAllocator(clock=lambda: next(times))
        first = ids.next_id()
        assert ids.next_id() == first + 1
