from memtree_lib.cache.entry_store import EntryStore
from memtree_lib.cache.gc import GarbageCollector
from memtree_lib.config.config import CacheConfig


def test_rand_scenario(store, clock):
    store.write('app.rand.x', 'hello', ttl=10)
    assert store.read('app.rand.x') == 'hello'
    meta = store.read_meta('app.rand.x')
    assert meta['duration'] == 10
    assert meta['key'] == store.resolver.resolve('app.rand.x')

    clock.advance(11)
    removed = GarbageCollector(store).collect()

    assert removed == ['global.app.rand.x']
    assert store.read('app.rand.x') is None
    assert store.list('global') == {}
    assert store.index.paths() == []


def test_live_entries_survive(store, clock):
    store.write('keep', 1, ttl=100)
    store.write('drop', 2, ttl=5)
    clock.advance(6)
    removed = GarbageCollector(store).collect()
    assert removed == ['global.app.drop']
    assert store.read('keep') == 1
    assert store.read_meta('keep')['duration'] == 100


def test_missing_metadata_is_collected(store, backend):
    store.write('a', 1)
    # metadata lost from the backend while the map still knows the entry
    for leaf in store.index.paths('meta.global.app.a'):
        backend.delete(store.resolver.encode(leaf))
    removed = GarbageCollector(store).collect()
    assert removed == ['global.app.a']
    assert store.read('a') is None


def test_structured_entries_collected_leaf_by_leaf(store, clock):
    store.write('K', {'a': 1, 'b': 2}, ttl=5)
    store.write('K.c', 3, ttl=60)
    clock.advance(6)
    removed = GarbageCollector(store).collect()
    assert removed == ['global.app.K.a', 'global.app.K.b']
    assert store.read('K') == {'c': 3}


def test_orphaned_metadata_is_removed(store):
    store.write('a', 1)
    # the map lost the data path but still lists its metadata
    store.index.remove('global.app.a')
    GarbageCollector(store).collect()
    assert store.index.paths('meta') == []


def test_noop_when_metadata_disabled(backend, clock):
    s = EntryStore(backend, CacheConfig(metadata_enabled=False), clock=clock)
    s.write('a', 1, ttl=5)
    clock.advance(10)
    assert GarbageCollector(s).collect() == []
    # without metadata the stale map entry stays until the path is deleted
    assert 'global.app.a' in s.index


def test_meta_root_entries_are_not_enumerated(store, clock):
    store.write('a', 1, ttl=100)
    clock.advance(1)
    assert GarbageCollector(store).collect() == []
    assert store.index.paths('meta.global.app.a') == ['meta.global.app.a.__record__']


def test_child_named_like_a_metadata_field_keeps_parent_alive(store, clock):
    written = int(clock.now)
    store.write('K', 's', ttl=100)
    store.write('K.expires', 1, ttl=100)
    clock.advance(1)
    assert GarbageCollector(store).collect() == []
    assert store.read_meta('K')['expires'] == written + 100
    assert store.read('K.expires') == 1
    assert store.read_meta('K.expires')['key'] == 'global.app.K.expires'
