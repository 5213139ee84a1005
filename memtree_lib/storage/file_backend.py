"""File-backed cache backend.

Every key is stored as `<data_dir>/<key>.entry`, holding the absolute expiry
time followed by the serialized value. Writes are atomic: the entry is
written to a temporary file which then replaces the target. Expired entries
are removed on access. This backend does not offer check-and-set, so index
updates against it keep last-writer-wins semantics.
"""
from __future__ import annotations
import os
import struct
import time
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from memtree_lib.errors import BackendUnavailable

from .base import CacheBackend
from .serializer import PickleSerializer, Serializer

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">d")
_SUFFIX = ".entry"


class FileCacheBackend(CacheBackend):
    def __init__(
        self,
        data_dir: str | Path = "./data/cache",
        serializer: Optional[Serializer] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.serializer = serializer or PickleSerializer()
        self.clock = clock
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendUnavailable(f"Cannot create cache dir {self.data_dir}: {e}") from e

    def _path_for(self, key: bytes) -> Path:
        safe_key = key.decode("ascii", errors="replace").replace("/", "_")
        return self.data_dir / f"{safe_key}{_SUFFIX}"

    def get(self, key: bytes) -> Any:
        path = self._path_for(key)
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BackendUnavailable(f"Failed to read {path}: {e}") from e
        (expires,) = _HEADER.unpack_from(raw)
        if expires <= self.clock():
            self.delete(key)
            return None
        return self.serializer.load(raw[_HEADER.size:])

    def set(self, key: bytes, value: Any, ttl: int) -> bool:
        path = self._path_for(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        payload = _HEADER.pack(self.clock() + ttl) + self.serializer.dump(value)
        try:
            with open(tmp, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            tmp.replace(path)
        except OSError as e:
            raise BackendUnavailable(f"Failed to write {path}: {e}") from e
        return True

    def delete(self, key: bytes) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise BackendUnavailable(f"Failed to delete {path}: {e}") from e
        return True

    def flush(self) -> bool:
        try:
            for p in self.data_dir.iterdir():
                if p.is_file() and p.name.endswith((_SUFFIX, _SUFFIX + ".tmp")):
                    p.unlink()
        except OSError as e:
            raise BackendUnavailable(f"Failed to flush {self.data_dir}: {e}") from e
        logger.debug("Flushed file cache at %s", self.data_dir)
        return True
