"""Thread-safe key/value store with per-entry expiry.

One instance is owned by a process-lifetime component (the Dagster sourcing
resource, or the worker pool in local runs) and passed to whatever needs it.
There is no module-level instance.
"""

import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLStore:
    def __init__(
        self,
        default_ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    def get(self, key: Hashable, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)

    def get_or_set(self, key: Hashable, factory: Callable[[], Any], ttl_seconds: float | None = None):
        """Return the cached value for key, computing and storing it on a miss.

        The factory runs outside the lock, so two threads missing at once may
        both compute; the last writer wins.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = factory()
        self.set(key, value, ttl_seconds)
        return value

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def start_sweeper(self, interval_seconds: float = 30.0) -> None:
        """Run sweep() every interval on a daemon thread until stop() is called."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def _loop():
            while not self._stop.wait(interval_seconds):
                removed = self.sweep()
                if removed:
                    logger.debug("TTLStore sweep removed %d expired entries", removed)

        self._sweeper = threading.Thread(target=_loop, name="ttl-store-sweeper", daemon=True)
        self._sweeper.start()

    def stop(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None
