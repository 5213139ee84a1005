"""Path resolution for the dotted cache namespace.

Every path the cache stores is canonical: its first segment is the global
root or the meta root. User paths are resolved by prefixing the default
application root when their first segment is not a known root, and the
global root when they are not already under global or meta. Namespace
membership is always tested on whole segments, never on string prefixes.
"""
from __future__ import annotations
from enum import Enum
from typing import Iterable, List, Optional
import hashlib

from memtree_lib.config.config import CacheConfig
from memtree_lib.errors import InvalidValue


class EntryKind(Enum):
    DATA = "data"
    META = "meta"
    INDEX_ROOT = "index"


class PathResolver:
    def __init__(self, config: Optional[CacheConfig] = None, app_roots: Optional[Iterable[str]] = None):
        self.config = config or CacheConfig()
        self.delimiter = self.config.delimiter
        self.global_root = self.config.global_root
        self.meta_root = self.config.meta_root
        self.default_app_root = self.config.default_app_root
        self.record_segment = self.config.meta_record_segment
        roots = self.config.legal_roots()
        for r in app_roots or ():
            if r not in roots:
                roots.append(r)
        self._legal_roots = frozenset(roots)

    @property
    def legal_roots(self) -> frozenset:
        return self._legal_roots

    def split(self, path: str) -> List[str]:
        return path.split(self.delimiter)

    def join(self, *segments: str) -> str:
        return self.delimiter.join(str(s) for s in segments if s != "")

    def first_segment(self, path: str) -> str:
        return path.split(self.delimiter, 1)[0]

    def is_under(self, path: str, prefix: str) -> bool:
        """True if `path` equals `prefix` or lies below it on a segment boundary."""
        return path == prefix or path.startswith(prefix + self.delimiter)

    def relative_to(self, path: str, prefix: str) -> str:
        if path == prefix:
            return ""
        if not self.is_under(path, prefix):
            raise ValueError(f"{path!r} is not under {prefix!r}")
        return path[len(prefix) + len(self.delimiter):]

    def validate(self, path: str) -> None:
        """Reject paths that cannot name a cache entry."""
        if not isinstance(path, str) or not path:
            raise InvalidValue(f"cache path must be a non-empty string, got {path!r}")
        segments = self.split(path)
        if "" in segments:
            raise InvalidValue(f"cache path {path!r} has an empty segment")
        if self.record_segment in segments:
            raise InvalidValue(f"segment {self.record_segment!r} is reserved, got {path!r}")

    def resolve(self, path: str) -> str:
        """Return the canonical form of `path`. Idempotent."""
        self.validate(path)
        if self.first_segment(path) not in self._legal_roots:
            path = self.join(self.default_app_root, path)
        if self.first_segment(path) not in (self.global_root, self.meta_root):
            path = self.join(self.global_root, path)
        return path

    def resolve_meta(self, path: str) -> str:
        """Return the metadata path paired with `path`."""
        path = self.resolve(path)
        if self.first_segment(path) != self.meta_root:
            path = self.join(self.meta_root, path)
        return path

    def meta_record_path(self, path: str) -> str:
        """Path of the single leaf holding the metadata record of `path`.

        The record sits under a reserved segment so that metadata of child
        paths can never land on top of it.
        """
        return self.join(self.resolve_meta(path), self.record_segment)

    def owner_of_record(self, record_path: str) -> Optional[str]:
        """Data path a metadata record belongs to, or None if `record_path` is not one."""
        segments = self.split(record_path)
        if len(segments) < 3 or segments[0] != self.meta_root or segments[-1] != self.record_segment:
            return None
        return self.join(*segments[1:-1])

    def entry_kind(self, path: str) -> EntryKind:
        """Classify a canonical path by the namespace it lives in."""
        if path == self.config.index_key:
            return EntryKind.INDEX_ROOT
        if self.first_segment(path) == self.meta_root:
            return EntryKind.META
        return EntryKind.DATA

    def is_meta(self, path: str) -> bool:
        return self.entry_kind(path) is EntryKind.META

    @staticmethod
    def encode(path: str) -> bytes:
        """Backend key for a canonical path."""
        return hashlib.md5(path.encode("utf-8")).hexdigest().encode("ascii")
