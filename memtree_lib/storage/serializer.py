"""Byte codecs for what the cache hands a backend.

A backend only ever sees two kinds of payload: a single scalar leaf of a
flattened value (or the metadata record of one, a flat dict of ints and
strings) and the key map blob, a dict from canonical path to a marker.
Backends that persist bytes pick one of these codecs by name.
"""
from typing import Any, Protocol
import pickle
import json
import yaml

class Serializer(Protocol):
    """Turn a leaf or key map payload into bytes and back.

    `load(dump(v))` must equal `v` for every value the cache stores.
    """

    def dump(self, value: Any) -> bytes: ...

    def load(self, data: bytes) -> Any: ...


class PickleSerializer:
    """Default codec. Keeps leaf types exactly, including bytes and tuples."""

    def dump(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def load(self, data: bytes) -> Any:
        return pickle.loads(data)


class JSONSerializer:
    """Readable codec for file caches.

    Leaves must be JSON scalars; a tuple leaf comes back as a list. The key
    map and metadata records are plain str-keyed dicts and survive as is.
    """

    def dump(self, value: Any) -> bytes:
        return json.dumps(value).encode("utf-8")

    def load(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class YAMLSerializer:
    """Readable codec using the safe YAML dialect; same leaf limits as JSON."""

    def dump(self, value: Any) -> bytes:
        return yaml.safe_dump(value).encode("utf-8")

    def load(self, data: bytes) -> Any:
        return yaml.safe_load(data.decode("utf-8"))


SERIALIZERS = {
    "pickle": PickleSerializer,
    "json": JSONSerializer,
    "yaml": YAMLSerializer,
}


def get_serializer(name: str) -> Serializer:
    """Return a fresh codec registered under `name` (`pickle`, `json` or `yaml`)."""
    try:
        return SERIALIZERS[name]()
    except KeyError:
        raise ValueError(f"Unknown serializer {name!r}; expected one of {sorted(SERIALIZERS)}") from None
