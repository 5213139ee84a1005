from .entry_store import EntryStore
from .gc import GarbageCollector
from .metadata import MetadataRecord, parse_ttl

__all__ = ["EntryStore", "GarbageCollector", "MetadataRecord", "parse_ttl"]
