from typing import Protocol, Any, Optional, Tuple, runtime_checkable


@runtime_checkable
class CacheBackendProtocol(Protocol):
    """Backend protocol mirroring `memtree_lib.storage.base.CacheBackend`.

    Implementations should follow the semantics documented on the abstract
    base class (None for missing keys, deleting a missing key is not an
    error, BackendUnavailable on transport failure).
    """

    def get(self, key: bytes) -> Any: ...

    def set(self, key: bytes, value: Any, ttl: int) -> bool: ...

    def delete(self, key: bytes) -> bool: ...

    def flush(self) -> bool: ...


@runtime_checkable
class CasCapableProtocol(CacheBackendProtocol, Protocol):
    """Backends that also support check-and-set against a version token."""

    def gets(self, key: bytes) -> Tuple[Any, Optional[int]]: ...

    def cas(self, key: bytes, value: Any, ttl: int, token: Optional[int]) -> bool: ...
