from datetime import timedelta

import pytest

from memtree_lib.cache.metadata import MetadataRecord, parse_ttl
from memtree_lib.errors import InvalidValue


@pytest.mark.parametrize('ttl,expected', [
    (None, 600),
    (10, 10),
    ('10', 10),
    (timedelta(minutes=5), 300),
    ('10 seconds', 10),
    ('1 second', 1),
    ('5 min', 300),
    ('2 hours', 7200),
    ('1 hour 30 minutes', 5400),
    ('1 day', 86400),
    ('1 Week', 604800),
])
def test_parse_ttl(ttl, expected):
    assert parse_ttl(ttl, 600) == expected


@pytest.mark.parametrize('ttl', ['', 'soon', '10 fortnights', '5 minutes ago', 0, -5, True, 1.5, 'seconds 10'])
def test_parse_ttl_rejects(ttl):
    with pytest.raises(InvalidValue):
        parse_ttl(ttl, 600)


def test_record_round_trip():
    rec = MetadataRecord(duration=10, key='global.app.x', key_encoded='abc', created=100, expires=110, author='a')
    assert MetadataRecord.from_dict(rec.to_dict()) == rec


def test_record_from_incomplete_mapping():
    assert MetadataRecord.from_dict({'duration': 10}) is None
    assert MetadataRecord.from_dict({'duration': 'x', 'key': 'k', 'key_encoded': 'e',
                                     'created': 1, 'expires': 2}) is None


def test_record_missing_author_defaults_empty():
    rec = MetadataRecord.from_dict({'duration': 1, 'key': 'k', 'key_encoded': 'e', 'created': 1, 'expires': 2})
    assert rec.author == ''


def test_is_expired():
    rec = MetadataRecord(duration=10, key='k', key_encoded='e', created=100, expires=110)
    assert rec.is_expired(111)
    assert not rec.is_expired(110)
