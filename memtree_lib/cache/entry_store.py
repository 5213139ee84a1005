"""Hierarchical entry store over a flat TTL backend.

`EntryStore` is the public face of the cache. Paths are dotted strings that
resolve into the global or meta namespace. Structured values are flattened
into one backend key per scalar leaf; every leaf is recorded in the key map
so that subtrees can be read back, listed and deleted even though the
backend itself cannot enumerate keys. Each data leaf gets a metadata record,
stored as one leaf at `meta.<path>.__record__` and used by the garbage
collector to purge entries whose TTL has passed.

Usage:

    store = EntryStore(MemoryCacheBackend(), CacheConfig(app_roots=['shop']))
    store.write('shop.cart.42', {'items': ['a', 'b'], 'total': 12}, ttl='10 minutes')
    store.read('shop.cart.42.total')      # -> 12
    store.list('shop')                    # -> {'cart': {'42': {...}}}
    store.delete('shop.cart')
"""
from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, Optional
import logging
import time

from memtree_lib.cache.metadata import TTL, MetadataRecord, parse_ttl
from memtree_lib.config.config import CacheConfig
from memtree_lib.errors import BackendUnavailable, InvalidValue
from memtree_lib.index.key_map import KNOWN, KeyMapIndex
from memtree_lib.keys.resolver import EntryKind, PathResolver
from memtree_lib.keys.tree import (
    MISSING,
    ValueKind,
    children,
    expand,
    extract,
    flatten,
    is_structured,
    value_kind,
)
from memtree_lib.storage.base import CacheBackend

logger = logging.getLogger(__name__)


class EntryStore:
    def __init__(
        self,
        backend: CacheBackend,
        config: Optional[CacheConfig] = None,
        index: Optional[KeyMapIndex] = None,
        app_roots: Optional[Iterable[str]] = None,
        author_provider: Optional[Callable[[], str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.config = config or CacheConfig()
        self.resolver = PathResolver(self.config, app_roots)
        self.index = index if index is not None else KeyMapIndex(backend, self.config)
        self.author_provider = author_provider
        self.clock = clock
        self.delimiter = self.config.delimiter

    # -- helpers -----------------------------------------------------------

    def _key(self, path: str) -> bytes:
        return self.resolver.encode(path)

    def _subtree(self, path: str) -> Any:
        """Node at `path` in the expanded key map: MISSING, KNOWN or a mapping."""
        return extract(self.index.tree(self.index.paths(path)), path, self.delimiter)

    def _author(self, author: Optional[str]) -> str:
        if author is not None:
            return author
        if self.author_provider is not None:
            return self.author_provider() or ''
        return ''

    # -- write -------------------------------------------------------------

    def write(self, path: str, value: Any, ttl: TTL = None, author: Optional[str] = None) -> None:
        """Store `value` at `path`, replacing whatever was there.

        Mappings and sequences are stored leaf by leaf under `path`. `ttl`
        is seconds, a timedelta or a duration string like ``"10 seconds"``;
        None means the configured default.
        """
        path = self.resolver.resolve(path)
        seconds = parse_ttl(ttl, self.config.default_ttl)
        kind = value_kind(value)
        if kind is ValueKind.STRUCTURED:
            # validate the whole value before touching the backend
            leaves = flatten(value, self.delimiter)
            for sub, leaf in leaves.items():
                if leaf is None:
                    raise InvalidValue(f'cannot store None at {self.resolver.join(path, sub)!r}')
                self.resolver.validate(self.resolver.join(path, sub))
        elif value is None:
            raise InvalidValue(f'cannot store None at {path!r}')
        self.index.reconcile()
        who = self._author(author)
        if kind is ValueKind.STRUCTURED:
            self._write_structured(path, leaves, seconds, who)
        else:
            self._write_scalar(path, value, seconds, who)

    def _write_structured(self, path: str, leaves: Dict[str, Any], ttl: int, author: str) -> None:
        # Writing a structure supersedes both a scalar and a subtree at `path`.
        self.backend.delete(self._key(path))
        if self._subtree(path) is not MISSING:
            self._delete(path)
            self.index.persist()
        for sub, leaf in leaves.items():
            self._write_scalar(self.resolver.join(path, sub), leaf, ttl, author)

    def _write_scalar(self, path: str, value: Any, ttl: int, author: str) -> None:
        if is_structured(self._subtree(path)):
            self._delete(path)
            self.index.persist()
        if not self.backend.set(self._key(path), value, ttl):
            raise BackendUnavailable(f'backend refused to store {path!r}')
        self.index.add(path)
        logger.debug('Wrote %s (ttl=%ss)', path, ttl)

        if self.config.metadata_enabled and self.resolver.entry_kind(path) is EntryKind.DATA:
            now = int(self.clock())
            record = MetadataRecord(
                duration=ttl,
                key=path,
                key_encoded=self._key(path).decode('ascii'),
                created=now,
                expires=now + ttl,
                author=author,
            )
            self._write_scalar(self.resolver.meta_record_path(path), record.to_dict(), ttl, author)

    # -- read --------------------------------------------------------------

    def read(self, path: str) -> Any:
        """Return the value at `path`, or None if nothing is stored there."""
        path = self.resolver.resolve(path)
        self.index.reconcile()
        return self._read(path)

    def read_meta(self, path: str) -> Any:
        """Return the metadata record of `path` as a mapping.

        Returns False when metadata is disabled and None when no record exists.
        """
        if not self.config.metadata_enabled:
            return False
        self.index.reconcile()
        return self._read(self.resolver.meta_record_path(path))

    def _read(self, path: str) -> Any:
        node = self._subtree(path)
        if not is_structured(node):
            # a known leaf, or a key the map has not seen; ask the backend either way
            return self.backend.get(self._key(path))
        out: Dict[str, Any] = {}
        for sub in flatten(node, self.delimiter):
            value = self.backend.get(self._key(self.resolver.join(path, sub)))
            if value is not None:
                out[sub] = value
        if not out:
            return None
        return expand(out, self.delimiter, restore_sequences=True)

    # -- delete ------------------------------------------------------------

    def delete(self, path: str) -> None:
        """Delete `path` and everything below it, including metadata."""
        path = self.resolver.resolve(path)
        self.index.reconcile()
        self._delete(path)
        self.index.persist()

    destroy = delete

    def delete_meta(self, path: str) -> None:
        """Delete only the metadata record paired with `path`."""
        self.index.reconcile()
        self._delete_leaf(self.resolver.meta_record_path(path))
        self.index.persist()

    def _delete(self, path: str) -> None:
        node = self._subtree(path)
        if is_structured(node):
            for seg, _ in children(node):
                self._delete(self.resolver.join(path, seg))
            if path not in self.index:
                return
        self._delete_leaf(path)

    def _delete_leaf(self, path: str) -> None:
        self.backend.delete(self._key(path))
        self.index.remove(path, persist=False)
        logger.debug('Deleted %s', path)
        if self.config.metadata_enabled and self.resolver.entry_kind(path) is EntryKind.DATA:
            meta_path = self.resolver.meta_record_path(path)
            if meta_path in self.index:
                self._delete_leaf(meta_path)

    # -- browse / flush ----------------------------------------------------

    def list(self, prefix: Optional[str] = None) -> Dict[str, Any]:
        """Preview the structure below `prefix` without fetching any values.

        Leaves of the returned tree are placeholders, not stored values.
        Defaults to the default application root.
        """
        self.index.reconcile()
        root = self.resolver.resolve(prefix or self.config.default_app_root)
        relative = {
            self.resolver.relative_to(p, root): KNOWN
            for p in self.index.paths(root)
            if p != root
        }
        return expand(relative, self.delimiter)

    map = list

    def flush(self) -> None:
        """Drop every backend key and reset the key map."""
        if not self.backend.flush():
            raise BackendUnavailable('backend refused to flush')
        self.index.clear()
        logger.info('Flushed cache and key map')

    kill = flush
