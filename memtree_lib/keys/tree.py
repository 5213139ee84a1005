"""Flatten/expand transforms between nested values and dotted-path mappings.

`flatten` turns a nested mapping/sequence into ``{"a.b.0": leaf, ...}`` and
`expand` builds the nested value back. Branches are combined with `merge`,
which merges mappings by key identity: integer-like keys such as ``"0"``,
``"2"`` and ``"5"`` stay exactly those keys and are never compacted or
renumbered. Sequences take part in merges as mappings keyed by their index
strings; `expand(..., restore_sequences=True)` turns a mapping back into a
list only when its keys are exactly ``"0"`` .. ``"n-1"``.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Sequence, Tuple

from memtree_lib.errors import InvalidValue


class ValueKind(Enum):
    SCALAR = "scalar"
    STRUCTURED = "structured"


class _Missing:
    """Marker for a path that is absent from a tree."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def is_structured(value: Any) -> bool:
    return isinstance(value, Mapping) or (
        isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))
    )


def value_kind(value: Any) -> ValueKind:
    return ValueKind.STRUCTURED if is_structured(value) else ValueKind.SCALAR


def _items(value: Any) -> Iterator[Tuple[str, Any]]:
    if isinstance(value, Mapping):
        for k, v in value.items():
            if isinstance(k, bool) or not isinstance(k, (str, int)):
                raise InvalidValue(f"mapping keys must be str or int, got {k!r}")
            yield str(k), v
    else:
        for i, v in enumerate(value):
            yield str(i), v


def flatten(value: Any, delimiter: str = ".") -> Dict[str, Any]:
    """Flatten a nested value into ``{dotted_subpath: scalar}``.

    Empty containers produce no entries. Raises `InvalidValue` for cycles and
    for keys that are not str/int or that contain the delimiter.
    """
    out: Dict[str, Any] = {}
    if not is_structured(value):
        raise InvalidValue(f"cannot flatten scalar value {value!r}")

    def walk(node: Any, prefix: str, active: set) -> None:
        if id(node) in active:
            raise InvalidValue("cannot flatten a cyclic structure")
        active.add(id(node))
        for key, child in _items(node):
            if not key or delimiter in key:
                raise InvalidValue(f"key {key!r} is empty or contains the path delimiter {delimiter!r}")
            path = f"{prefix}{delimiter}{key}" if prefix else key
            if is_structured(child):
                walk(child, path, active)
            else:
                out[path] = child
        active.discard(id(node))

    walk(value, "", set())
    return out


def _as_mapping(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {str(i): v for i, v in enumerate(value)}


def merge(a: Any, b: Any) -> Any:
    """Recursively merge `b` into `a` by key identity; `b` wins on conflicts.

    Neither input is mutated. Keys are never renumbered: merging
    ``{"0": x}`` with ``{"2": y}`` yields both ``"0"`` and ``"2"``.
    """
    if not is_structured(a) or not is_structured(b):
        return b
    if not b:
        return a
    if not a:
        return b
    result = _as_mapping(a)
    for key, val in _as_mapping(b).items():
        cur = result.get(key, MISSING)
        if cur is not MISSING and is_structured(cur) and is_structured(val) and cur:
            result[key] = merge(cur, val)
        else:
            result[key] = val
    return result


def _restore_sequences(node: Any) -> Any:
    if not isinstance(node, MutableMapping):
        return node
    for k in list(node):
        node[k] = _restore_sequences(node[k])
    if node and list(node) == [str(i) for i in range(len(node))]:
        return list(node.values())
    return node


def expand(flat: Mapping[str, Any], delimiter: str = ".", restore_sequences: bool = False) -> Any:
    """Inverse of `flatten`: build a nested value from dotted paths."""
    result: Dict[str, Any] = {}
    for path, value in flat.items():
        keys = path.split(delimiter)
        child: Any = value
        for k in reversed(keys):
            child = {k: child}
        result = merge(result, child)
    if restore_sequences:
        return _restore_sequences(result)
    return result


def extract(tree: Any, path: str, delimiter: str = ".") -> Any:
    """Return the node at dotted `path` inside `tree`, or `MISSING`."""
    cur = tree
    for seg in path.split(delimiter):
        if isinstance(cur, Mapping):
            if seg not in cur:
                return MISSING
            cur = cur[seg]
        elif is_structured(cur):
            if not seg.isdigit() or int(seg) >= len(cur):
                return MISSING
            cur = cur[int(seg)]
        else:
            return MISSING
    return cur


def children(node: Any) -> Iterator[Tuple[str, Any]]:
    """Yield `(segment, child)` pairs of a structured node."""
    return _items(node)
