"""Cache backend interface definitions.

Defines the `CacheBackend` abstract class the cache layer stores leaves in.
A backend is a flat key-value store with per-key TTLs: it cannot list its
keys and knows nothing about paths or nesting. Implementations translate
values to whatever format they persist.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple


class CacheBackend(ABC):
    """Abstract flat TTL key-value backend.

    Implementations must be thread-safe if used concurrently. Transport or
    storage failures are raised as `memtree_lib.errors.BackendUnavailable`.
    """

    @abstractmethod
    def get(self, key: bytes) -> Any:
        """Return the value stored under `key`, or None if missing or expired."""

    @abstractmethod
    def set(self, key: bytes, value: Any, ttl: int) -> bool:
        """Store `value` under `key` for `ttl` seconds. Return True on success."""

    @abstractmethod
    def delete(self, key: bytes) -> bool:
        """Delete `key`. A missing key is not an error; return False for it."""

    @abstractmethod
    def flush(self) -> bool:
        """Drop every stored key."""


class CasCapableBackend(CacheBackend):
    """Backend that additionally offers memcached-style check-and-set."""

    @abstractmethod
    def gets(self, key: bytes) -> Tuple[Any, Optional[int]]:
        """Return `(value, token)`; `(None, None)` when the key is missing."""

    @abstractmethod
    def cas(self, key: bytes, value: Any, ttl: int, token: Optional[int]) -> bool:
        """Store `value` only if `key` is unchanged since `token` was read.

        A `token` of None means "only if the key is currently absent".
        """
