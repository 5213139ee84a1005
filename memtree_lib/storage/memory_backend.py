"""Memory-backed cache backend.

Stores serialized values in a dict keyed by the raw backend key, next to
an absolute expiry time and a version counter used for check-and-set.
Values are copied through the serializer on every set/get, so callers
never share mutable objects with the store, the same as a real memcached.
"""
from threading import RLock
from typing import Any, Callable, Dict, Optional, Tuple
import itertools
import logging
import time

from .base import CasCapableBackend
from .serializer import PickleSerializer, Serializer

logger = logging.getLogger(__name__)


class MemoryCacheBackend(CasCapableBackend):
    def __init__(self, serializer: Optional[Serializer] = None, clock: Callable[[], float] = time.time):
        self._lock = RLock()
        # key -> (expires_at, version, payload)
        self._store: Dict[bytes, Tuple[float, int, bytes]] = {}
        self._versions = itertools.count(1)
        self.serializer = serializer or PickleSerializer()
        self.clock = clock

    def _live(self, key: bytes) -> Optional[Tuple[float, int, bytes]]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry[0] <= self.clock():
            # lazily expire, like memcached does on access
            del self._store[key]
            logger.debug("Expired %s", key)
            return None
        return entry

    def _put(self, key: bytes, value: Any, ttl: int) -> None:
        payload = self.serializer.dump(value)
        self._store[key] = (self.clock() + ttl, next(self._versions), payload)

    def get(self, key: bytes) -> Any:
        with self._lock:
            entry = self._live(key)
            return self.serializer.load(entry[2]) if entry else None

    def set(self, key: bytes, value: Any, ttl: int) -> bool:
        with self._lock:
            self._put(key, value, ttl)
            return True

    def delete(self, key: bytes) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def flush(self) -> bool:
        with self._lock:
            self._store.clear()
            return True

    def gets(self, key: bytes) -> Tuple[Any, Optional[int]]:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return None, None
            return self.serializer.load(entry[2]), entry[1]

    def cas(self, key: bytes, value: Any, ttl: int, token: Optional[int]) -> bool:
        with self._lock:
            entry = self._live(key)
            current = entry[1] if entry else None
            if current != token:
                logger.debug("CAS mismatch on %s (have %s, expected %s)", key, current, token)
                return False
            self._put(key, value, ttl)
            return True

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for k in list(self._store) if self._live(k) is not None)
