"""Backend abstraction package for memtree."""
from __future__ import annotations
import time
from typing import Any

from .base import CacheBackend, CasCapableBackend
from .file_backend import FileCacheBackend
from .memory_backend import MemoryCacheBackend
from .serializer import get_serializer


def create_storage(backend: str = "memory", serializer: str = "pickle", **options: Any) -> CacheBackend:
    """Build a backend by name.

    `options` are passed to the backend constructor (`data_dir`, `clock`).
    """
    ser = get_serializer(serializer)
    if backend == "memory":
        return MemoryCacheBackend(serializer=ser, clock=options.get("clock") or time.time)
    if backend == "file":
        kwargs = {k: v for k, v in options.items() if k in ("data_dir", "clock") and v is not None}
        return FileCacheBackend(serializer=ser, **kwargs)
    raise ValueError(f"Unknown storage backend {backend!r}; expected 'memory' or 'file'")


__all__ = [
    "CacheBackend",
    "CasCapableBackend",
    "FileCacheBackend",
    "MemoryCacheBackend",
    "create_storage",
]
