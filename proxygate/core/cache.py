from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple


class ResultCache:
    """
    TTL cache of delivered payloads keyed by normalized identifier.

    Only consulted after policy allows a request, so it can never serve a
    denied identifier. Failures are never stored.
    """

    def __init__(self, ttl_s: float, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic):
        self._ttl_s = float(ttl_s)
        self._max_entries = max(1, int(max_entries))
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self._ttl_s > 0

    def get(self, key: str) -> Optional[str]:
        if not self.enabled:
            return None
        now = self._clock()
        with self._lock:
            hit = self._entries.get(key)
            if hit is None:
                return None
            expires_at, payload = hit
            if expires_at <= now:
                del self._entries[key]
                return None
            return payload

    def put(self, key: str, payload: str) -> None:
        if not self.enabled:
            return
        expires_at = self._clock() + self._ttl_s
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (expires_at, payload)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
