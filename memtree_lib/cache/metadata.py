"""Per-entry metadata records and TTL parsing."""
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional, Union
import re

from memtree_lib.errors import InvalidValue

TTL = Union[int, timedelta, str, None]

_UNITS = {
    's': 1, 'sec': 1, 'secs': 1, 'second': 1, 'seconds': 1,
    'm': 60, 'min': 60, 'mins': 60, 'minute': 60, 'minutes': 60,
    'h': 3600, 'hr': 3600, 'hrs': 3600, 'hour': 3600, 'hours': 3600,
    'd': 86400, 'day': 86400, 'days': 86400,
    'w': 604800, 'week': 604800, 'weeks': 604800,
}
_DURATION_PART = re.compile(r'\s*(\d+)\s*([a-z]+)\s*', re.IGNORECASE)


def parse_ttl(ttl: TTL, default: int) -> int:
    """Normalize a TTL to whole seconds.

    Accepts None (use `default`), an int, a timedelta, or a string such as
    ``"10 seconds"``, ``"5 min"`` or ``"1 hour 30 minutes"``.
    """
    if ttl is None:
        return default
    if isinstance(ttl, bool):
        raise InvalidValue(f'invalid ttl {ttl!r}')
    if isinstance(ttl, int):
        seconds = ttl
    elif isinstance(ttl, timedelta):
        seconds = int(ttl.total_seconds())
    elif isinstance(ttl, str):
        text = ttl.strip()
        if text.isdigit():
            seconds = int(text)
        else:
            pos, seconds = 0, 0
            for m in _DURATION_PART.finditer(text):
                if m.start() != pos or m.group(2).lower() not in _UNITS:
                    raise InvalidValue(f'cannot parse ttl {ttl!r}')
                seconds += int(m.group(1)) * _UNITS[m.group(2).lower()]
                pos = m.end()
            if pos != len(text) or not text:
                raise InvalidValue(f'cannot parse ttl {ttl!r}')
    else:
        raise InvalidValue(f'invalid ttl {ttl!r}')
    if seconds <= 0:
        raise InvalidValue(f'ttl must be positive, got {ttl!r}')
    return seconds


@dataclass
class MetadataRecord:
    duration: int
    key: str
    key_encoded: str
    created: int
    expires: int
    author: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Optional['MetadataRecord']:
        """Build a record from a stored mapping; None if fields are missing."""
        try:
            return cls(
                duration=int(data['duration']),
                key=str(data['key']),
                key_encoded=str(data['key_encoded']),
                created=int(data['created']),
                expires=int(data['expires']),
                author=str(data.get('author') or ''),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def is_expired(self, now: float) -> bool:
        return self.expires < now
