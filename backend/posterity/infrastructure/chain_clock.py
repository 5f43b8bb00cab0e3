"""Chain Clock - wall-clock time source for decay and auction computations.

Invariants:
    - now() returns integer UNIX seconds
    - now() never returns less than a value it already returned in this process

Design Decisions:
    - Wall clock (not a block/sequence counter) applied uniformly to decay,
      settlement timestamps and the auction clock
"""

import threading
import time


class SystemClock:
    """Integer seconds from time.time(), clamped to be non-decreasing."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last
