"""Composition root for the cache layer.

`create_cache(config)` builds the backend, key map, entry store and garbage
collector and runs one collection pass at startup. Nothing is created at
import time, so tests and host applications can build isolated caches.

    from memtree_lib.main import create_cache
    cache = create_cache(CacheConfig(app_roots=['shop', 'admin']))
    cache.store.write('shop.banner', 'Hello')
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional
import logging
import time

from memtree_lib.cache.entry_store import EntryStore
from memtree_lib.cache.gc import GarbageCollector
from memtree_lib.config.config import CacheConfig, load_config
from memtree_lib.index.key_map import KeyMapIndex
from memtree_lib.logging_config import configure_logging
from memtree_lib.storage import CacheBackend, create_storage

logger = logging.getLogger(__name__)


@dataclass
class Cache:
    config: CacheConfig
    backend: CacheBackend
    index: KeyMapIndex
    store: EntryStore
    gc: GarbageCollector


def create_cache(
    config: Optional[CacheConfig] = None,
    *,
    config_path: Optional[Path | str] = None,
    backend: Optional[CacheBackend] = None,
    app_roots: Optional[Iterable[str]] = None,
    author_provider: Optional[Callable[[], str]] = None,
    clock: Callable[[], float] = time.time,
    setup_logging: bool = False,
) -> Cache:
    """Create and return a fully composed cache.

    `config` wins over `config_path`; with neither the default config file
    location is tried. A ready `backend` may be passed in, otherwise one is
    built from `config.backend`/`config.serializer`.
    """
    cfg = config or load_config(config_path)
    if setup_logging:
        configure_logging(level=cfg.log_level)

    if backend is None:
        backend = create_storage(
            backend=cfg.backend,
            serializer=cfg.serializer,
            data_dir=cfg.data_dir,
            clock=clock,
        )

    index = KeyMapIndex(backend, cfg)
    store = EntryStore(
        backend,
        cfg,
        index=index,
        app_roots=app_roots,
        author_provider=author_provider,
        clock=clock,
    )
    gc = GarbageCollector(store, clock=clock)
    if cfg.gc_on_startup:
        removed = gc.collect()
        logger.debug('Startup collection removed %d entries', len(removed))

    logger.info('Cache ready: backend=%s roots=%s', type(backend).__name__, sorted(store.resolver.legal_roots))
    return Cache(config=cfg, backend=backend, index=index, store=store, gc=gc)
