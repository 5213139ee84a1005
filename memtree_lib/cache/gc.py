"""Garbage collection of expired or unaccounted-for entries.

The backend drops expired keys on its own, but the key map does not know
about that. The collector walks every known data path, reads its metadata
record and deletes the entry when the record is gone or past its expiry.
Metadata left behind for data paths the map no longer knows is removed too.

This is best effort: a write racing with a pass can be collected if its
metadata had not landed yet, and a stale map entry may survive until the
next pass.
"""
from __future__ import annotations
from typing import Callable, List, Optional
import logging

from memtree_lib.cache.entry_store import EntryStore
from memtree_lib.cache.metadata import MetadataRecord

logger = logging.getLogger(__name__)


class GarbageCollector:
    def __init__(self, store: EntryStore, clock: Optional[Callable[[], float]] = None):
        self.store = store
        self.clock = clock or store.clock

    def collect(self) -> List[str]:
        """Run one pass and return the data paths that were deleted."""
        store = self.store
        if not store.config.metadata_enabled:
            logger.debug('Metadata disabled; nothing to collect')
            return []
        store.index.reconcile()
        now = self.clock()
        removed: List[str] = []
        for path in store.index.paths(store.config.global_root):
            if path not in store.index:
                # already gone with an earlier subtree in this pass
                continue
            meta = store.read_meta(path)
            record = MetadataRecord.from_dict(meta) if isinstance(meta, dict) else None
            if record is None or record.is_expired(now):
                logger.debug('Collecting %s (metadata %s)', path, 'expired' if record else 'missing')
                store.delete(path)
                removed.append(path)
        orphans = self._collect_orphaned_meta()
        if removed or orphans:
            logger.info('Garbage collection removed %d entries and %d orphaned metadata records',
                        len(removed), orphans)
        return removed

    def _collect_orphaned_meta(self) -> int:
        store = self.store
        resolver = store.resolver
        meta_prefix = resolver.join(store.config.meta_root, store.config.global_root)
        owners = set()
        for meta_leaf in store.index.paths(meta_prefix):
            owner = resolver.owner_of_record(meta_leaf)
            if owner is not None:
                owners.add(owner)
        count = 0
        for data_path in sorted(owners):
            if data_path not in store.index:
                store.delete_meta(data_path)
                count += 1
        return count
