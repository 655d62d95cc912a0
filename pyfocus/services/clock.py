from __future__ import annotations

import time

from pyfocus.domain.interfaces import IClock


class SystemClock(IClock):
    """Wall clock. Deadlines are wall-clock instants so they survive suspends."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
