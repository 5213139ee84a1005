"""The key map: an enumerable shadow of the backend's key population.

The backend cannot list its keys, so every canonical path that holds a leaf
is recorded here. The map lives in memory and is persisted as a single blob
under the reserved index key. It is loaded lazily, mutated in memory and
written back after each mutation.

Persisting a single blob is a read-modify-write on a shared key. When the
backend offers `gets`/`cas` the write is a check-and-set against the token
from the last load: on a lost race the fresh blob is reloaded, this
instance's pending adds and removes are re-applied, and the write is retried.
Without check-and-set the last writer wins and a concurrent writer's change
can be lost until a later write or garbage collection repairs it.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Set
import logging
import threading

from memtree_lib.config.config import CacheConfig
from memtree_lib.errors import IndexConflict
from memtree_lib.keys.resolver import PathResolver
from memtree_lib.keys.tree import expand, merge
from memtree_lib.storage.base import CacheBackend
from memtree_lib.storage.interfaces import CasCapableProtocol

logger = logging.getLogger(__name__)

# Value recorded for every known path; leaves are never stored in the map.
KNOWN = False


class KeyMapIndex:
    def __init__(self, backend: CacheBackend, config: Optional[CacheConfig] = None):
        self.backend = backend
        self.config = config or CacheConfig()
        self.delimiter = self.config.delimiter
        self._backend_key = PathResolver.encode(self.config.index_key)
        self._map: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self._token: Optional[int] = None
        self._pending_add: Set[str] = set()
        self._pending_remove: Set[str] = set()
        self._use_cas = self.config.index_cas and isinstance(backend, CasCapableProtocol)

    def _fetch(self) -> Any:
        if self._use_cas:
            blob, self._token = self.backend.gets(self._backend_key)
            return blob
        return self.backend.get(self._backend_key)

    def reconcile(self, force: bool = False) -> None:
        """Merge the persisted map into memory if memory is empty or `force` is set."""
        with self._lock:
            if self._map and not force:
                return
            blob = self._fetch()
            if isinstance(blob, dict):
                self._map = merge(self._map, blob)
                for path in self._pending_remove:
                    self._map.pop(path, None)
                logger.debug("Reconciled key map: %d paths", len(self._map))

    def add(self, path: str) -> None:
        with self._lock:
            self.reconcile()
            self._map = merge(self._map, {path: KNOWN})
            self._pending_add.add(path)
            self._pending_remove.discard(path)
            self.persist()

    def remove(self, path: str, persist: bool = True) -> None:
        """Drop `path` from the map.

        The persisted map is reloaded first so additions made by other
        writers since the last load are not clobbered.
        """
        with self._lock:
            self.reconcile(force=True)
            self._map.pop(path, None)
            self._pending_remove.add(path)
            self._pending_add.discard(path)
            if persist:
                self.persist()

    def persist(self) -> None:
        """Write the whole in-memory map to the backend under the index key."""
        with self._lock:
            ttl = self.config.index_ttl
            if not self._use_cas:
                self.backend.set(self._backend_key, dict(self._map), ttl)
                self._clear_pending()
                return
            for attempt in range(self.config.index_cas_retries + 1):
                if self.backend.cas(self._backend_key, dict(self._map), ttl, self._token):
                    # adopt whatever is stored now; a newer writer already includes our change
                    blob, self._token = self.backend.gets(self._backend_key)
                    if isinstance(blob, dict):
                        self._map = blob
                    self._clear_pending()
                    return
                logger.debug("Key map changed underneath us (attempt %d); reloading", attempt + 1)
                self._rebase()
            raise IndexConflict(
                f"key map update lost {self.config.index_cas_retries + 1} check-and-set races"
            )

    def _rebase(self) -> None:
        blob = self._fetch()
        fresh = dict(blob) if isinstance(blob, dict) else {}
        for path in self._pending_remove:
            fresh.pop(path, None)
        for path in self._pending_add:
            fresh[path] = KNOWN
        self._map = fresh

    def _clear_pending(self) -> None:
        self._pending_add.clear()
        self._pending_remove.clear()

    def clear(self) -> None:
        """Empty the map and unconditionally persist the empty map."""
        with self._lock:
            self._map = {}
            self._clear_pending()
            self.backend.set(self._backend_key, {}, self.config.index_ttl)
            if self._use_cas:
                _, self._token = self.backend.gets(self._backend_key)

    def paths(self, prefix: Optional[str] = None) -> List[str]:
        """Known paths, sorted; restricted to `prefix` on a segment boundary."""
        with self._lock:
            keys = sorted(self._map)
        if prefix is None:
            return keys
        return [k for k in keys if k == prefix or k.startswith(prefix + self.delimiter)]

    def tree(self, paths: Optional[Iterable[str]] = None) -> Any:
        """Expand the known paths into a nested tree with `KNOWN` leaves.

        Paths are expanded in sorted order so a path that is both a stale
        leaf and a parent shows up as the parent.
        """
        selected = sorted(paths) if paths is not None else self.paths()
        return expand({p: KNOWN for p in selected}, self.delimiter)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._map

    def __len__(self) -> int:
        with self._lock:
            return len(self._map)
