"""Request identifiers."""

from __future__ import annotations

import time


class RequestIdGenerator:
    """Millisecond-clock ids, strictly increasing within the process.

    Two requests in the same millisecond (or a clock step backwards)
    get ``last + 1`` instead of a duplicate.
    """

    def __init__(self) -> None:
        self._last = 0

    def next_int(self) -> int:
        now_ms = time.time_ns() // 1_000_000
        self._last = max(now_ms, self._last + 1)
        return self._last

    def next_id(self) -> str:
        return str(self.next_int())
