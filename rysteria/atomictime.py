"""Thread-safe Unix timestamp holder used for idle tracking."""

from __future__ import annotations

import threading
import time


def _unix_secs_now() -> int:
    return int(time.time())


class AtomicTime:
    """A Unix timestamp in whole seconds, safe to share between threads.

    Without an argument it starts at the current time.
    """

    def __init__(self, secs: int | None = None) -> None:
        self._lock = threading.Lock()
        self._secs = _unix_secs_now() if secs is None else secs

    def update(self) -> None:
        """Set the stored time to now."""
        now = _unix_secs_now()
        with self._lock:
            self._secs = now

    def load(self) -> int:
        """Return the stored Unix timestamp in seconds."""
        with self._lock:
            return self._secs

    def is_idle(self, idle_secs: int) -> bool:
        """True if the stored time is more than ``idle_secs`` seconds ago."""
        return max(_unix_secs_now() - self.load(), 0) > idle_secs