from datetime import timedelta

import pytest

from memtree_lib.cache.entry_store import EntryStore
from memtree_lib.config.config import CacheConfig
from memtree_lib.errors import BackendUnavailable, InvalidValue
from memtree_lib.index.key_map import KNOWN
from memtree_lib.storage.memory_backend import MemoryCacheBackend


def test_scalar_write_read(store):
    store.write('banner', 'hello', ttl=30)
    assert store.read('banner') == 'hello'
    # the same entry through its canonical path
    assert store.read('global.app.banner') == 'hello'
    assert 'global.app.banner' in store.index


def test_scalar_metadata_record(store, clock):
    store.write('banner', 'hello', ttl=30)
    meta = store.read_meta('banner')
    assert meta['duration'] == 30
    assert meta['key'] == 'global.app.banner'
    assert meta['key_encoded'] == store.resolver.encode('global.app.banner').decode('ascii')
    assert meta['created'] == int(clock.now)
    assert meta['expires'] - meta['created'] == 30
    assert meta['author'] == 'alice@example.com'


def test_explicit_author_wins(store):
    store.write('banner', 'hello', author='bob')
    assert store.read_meta('banner')['author'] == 'bob'


def test_default_ttl_and_duration_strings(store):
    store.write('a', 1)
    assert store.read_meta('a')['duration'] == 600
    store.write('b', 1, ttl='10 seconds')
    assert store.read_meta('b')['duration'] == 10
    store.write('c', 1, ttl=timedelta(minutes=2))
    assert store.read_meta('c')['duration'] == 120


def test_structured_write_read(store):
    store.write('K', {'a': 1, 'b': 2}, ttl=60)
    assert store.read('K') == {'a': 1, 'b': 2}
    assert store.read('K.a') == 1
    assert store.read('K.b') == 2
    assert store.read_meta('K.a')['key'] == 'global.app.K.a'


def test_nested_and_sequence_values(store):
    value = {'items': ['x', 'y', 'z'], 'owner': {'name': 'Ann', 'id': 7}}
    store.write('shop.cart.42', value)
    assert store.read('shop.cart.42') == value
    assert store.read('shop.cart.42.items') == ['x', 'y', 'z']
    assert store.read('shop.cart.42.items.1') == 'y'
    assert store.read('shop.cart') == {'42': value}


def test_sparse_integer_keys_survive(store):
    store.write('sparse', {0: 'a', 2: 'b', 5: 'c'})
    assert store.read('sparse') == {'0': 'a', '2': 'b', '5': 'c'}
    store.write('sparse.7', 'd')
    assert store.read('sparse') == {'0': 'a', '2': 'b', '5': 'c', '7': 'd'}


def test_read_missing_returns_none(store):
    assert store.read('nothing.here') is None
    assert store.read_meta('nothing.here') is None


def test_structure_overwrites_scalar(store):
    store.write('K', 'scalar')
    store.write('K', {'a': 1})
    assert store.read('K') == {'a': 1}
    assert 'global.app.K' not in store.index
    # the scalar's record went with it, the child has its own
    assert 'meta.global.app.K.__record__' not in store.index
    assert store.read_meta('K') is None
    assert store.read_meta('K.a')['key'] == 'global.app.K.a'


def test_structure_overwrites_structure(store):
    store.write('K', {'a': 1, 'b': 2})
    store.write('K', {'c': 3})
    assert store.read('K') == {'c': 3}
    assert store.read('K.a') is None


def test_scalar_overwrites_structure(store):
    store.write('K', {'a': 1, 'b': {'c': 2}})
    store.write('K', 'flat')
    assert store.read('K') == 'flat'
    assert store.index.paths('global.app.K') == ['global.app.K']
    assert store.read_meta('K.a') is None


def test_invalid_values_rejected_before_any_write(store, backend):
    cyclic = {'a': 1}
    cyclic['loop'] = cyclic
    with pytest.raises(InvalidValue):
        store.write('K', cyclic)
    with pytest.raises(InvalidValue):
        store.write('K', None)
    with pytest.raises(InvalidValue):
        store.write('K', 1, ttl='forever')
    assert len(backend) == 0
    assert len(store.index) == 0


def test_delete_structured_removes_leaves_and_metadata(store):
    store.write('K', {'a': 1, 'b': {'c': 2, 'd': 3}})
    store.delete('K')
    for leaf in ('K.a', 'K.b.c', 'K.b.d'):
        assert store.read(leaf) is None
        assert store.read_meta(leaf) is None
    assert store.read('K') is None
    assert store.index.paths('global.app.K') == []
    assert store.index.paths('meta.global.app.K') == []


def test_delete_scalar_and_destroy_alias(store):
    store.write('a', 1)
    store.write('b', 2)
    store.destroy('a')
    assert store.read('a') is None
    assert store.read('b') == 2
    assert store.read_meta('b')['duration'] == 600


def test_delete_persists_index(store, backend):
    store.write('K', {'a': 1})
    store.delete('K')
    fresh = EntryStore(backend, store.config)
    assert fresh.list() == {}


def test_delete_unknown_path_is_harmless(store):
    store.delete('never.written')
    assert store.read('never.written') is None


def test_list_is_a_structure_preview(store):
    store.write('K.a', 'x')
    store.write('K.b.c', 'y')
    assert store.list('K') == {'a': KNOWN, 'b': {'c': KNOWN}}
    assert store.map('K') == store.list('K')


def test_list_defaults_to_application_root(store):
    store.write('a', 1)
    store.write('shop.b', 2)
    assert store.list() == {'a': KNOWN}
    assert store.list('shop') == {'b': KNOWN}
    assert store.list('global') == {'app': {'a': KNOWN}, 'shop': {'b': KNOWN}}


def test_list_excludes_sibling_prefixes(store):
    store.write('app2.x', 1)
    store.write('ap', 2)
    assert store.list('ap') == {}


def test_flush_clears_everything(store, backend):
    store.write('K', {'a': 1})
    store.flush()
    assert store.read('K') is None
    assert store.list('global') == {}
    assert len(store.index) == 0
    # the empty map was persisted
    assert EntryStore(backend, store.config).list('global') == {}


def test_kill_alias(store):
    store.write('a', 1)
    store.kill()
    assert store.read('a') is None


def test_metadata_disabled(backend, clock):
    s = EntryStore(backend, CacheConfig(metadata_enabled=False), clock=clock)
    s.write('a', 1)
    assert s.read('a') == 1
    assert s.read_meta('a') is False
    assert s.index.paths('meta') == []


def test_expired_leaves_are_omitted(store, clock):
    store.write('K.short', 1, ttl=5)
    store.write('K.long', 2, ttl=50)
    clock.advance(10)
    assert store.read('K') == {'long': 2}
    assert store.read('K.short') is None


def test_two_stores_share_the_backend(store, backend, clock):
    store.write('shop.a', 1)
    other = EntryStore(backend, store.config, clock=clock)
    assert other.read('shop.a') == 1
    other.write('shop.b', 2)
    assert store.read('shop.b') == 2


class FailingBackend(MemoryCacheBackend):
    def __init__(self, *args, fail_after=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_after = fail_after
        self.deletes = 0

    def delete(self, key):
        self.deletes += 1
        if self.fail_after is not None and self.deletes > self.fail_after:
            raise BackendUnavailable('connection reset')
        return super().delete(key)


def test_backend_failure_aborts_delete(clock):
    backend = FailingBackend(clock=clock)
    s = EntryStore(backend, CacheConfig(metadata_enabled=False), clock=clock)
    s.write('K', {'a': 1, 'b': 2, 'c': 3})
    backend.fail_after = backend.deletes + 1
    with pytest.raises(BackendUnavailable):
        s.delete('K')
    # the first leaf went, the rest were left for the caller to retry
    assert s.read('K.a') is None
    assert s.read('K.b') == 2
    assert s.read('K.c') == 3


class RefusingBackend(MemoryCacheBackend):
    def set(self, key, value, ttl):
        return False


def test_refused_set_raises(clock):
    s = EntryStore(RefusingBackend(clock=clock), clock=clock)
    with pytest.raises(BackendUnavailable):
        s.write('a', 1)
    assert len(s.index) == 0


def test_nested_none_rejected_before_any_write(store, backend):
    with pytest.raises(InvalidValue):
        store.write('K', {'a': None, 'b': 1})
    with pytest.raises(InvalidValue):
        store.write('K', {'items': ['x', None]})
    assert len(backend) == 0
    assert len(store.index) == 0


def test_metadata_record_is_a_single_leaf(store):
    store.write('K', {'a': 1, 'duration': 2})
    assert store.index.paths('meta.global.app.K') == [
        'meta.global.app.K.a.__record__',
        'meta.global.app.K.duration.__record__',
    ]
    assert store.read_meta('K.duration')['key'] == 'global.app.K.duration'


@pytest.mark.parametrize('value', [{'__record__': 1}, {'a': {'__record__': 1}}])
def test_reserved_record_segment_rejected_in_values(store, backend, value):
    with pytest.raises(InvalidValue):
        store.write('K', value)
    with pytest.raises(InvalidValue):
        store.write('K.__record__', 1)
    assert len(backend) == 0


def test_delete_meta_keeps_data(store):
    store.write('a', 1)
    store.delete_meta('a')
    assert store.read_meta('a') is None
    assert store.read('a') == 1
    assert store.index.paths('meta') == []
