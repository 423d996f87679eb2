import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional


@dataclass(frozen=True)
class _Entry:
    value: Any
    stored_at: float


class PermissionCache:
    """
    Per-user cache of resolved access decisions.

    Entries expire after `ttl_seconds` and are dropped immediately by
    `invalidate`. A lookup that was already running when its key was
    invalidated is returned to its caller but never stored.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, _Entry] = {}
        self._generations: Dict[Hashable, int] = {}
        self._epoch = 0

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return entry.value

    def get_or_compute(self, key: Hashable, compute: Callable[[], Optional[Any]]) -> Optional[Any]:
        """Returns the cached value or runs `compute` once. None results are not cached."""
        cached = self.get(key)
        if cached is not None:
            return cached

        with self._lock:
            snapshot = (self._epoch, self._generations.get(key, 0))

        value = compute()
        if value is None:
            return None

        with self._lock:
            if (self._epoch, self._generations.get(key, 0)) == snapshot:
                self._entries[key] = _Entry(value=value, stored_at=self._clock())
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()
            self._epoch += 1

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
