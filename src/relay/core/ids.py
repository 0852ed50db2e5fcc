"""Request identifier allocation.

Identifiers stay time-derived integers (milliseconds since the epoch) because
the worker-side tooling sorts and displays them that way, but the allocator
never hands out the same value twice within a process: two calls in the same
millisecond get consecutive values.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class IdAllocator:
    """Strictly increasing, time-derived message ids."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def next_id(self) -> int:
        candidate = int(self._clock() * 1000)
        # clock may stall or step backwards; monotonicity wins over wall time
        self._last = max(candidate, self._last + 1)
        return self._last

    @property
    def last(self) -> int:
        return self._last
