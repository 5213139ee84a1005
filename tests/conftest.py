"""Pytest configuration and shared fixtures.

Ensure the project root is on sys.path so tests can import the package
without requiring PYTHONPATH to be set externally.
"""
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    # Insert repo root (one level up from tests/) to sys.path
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


class FakeClock:
    """Manually advanced clock shared by backend, store and collector."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    from memtree_lib.storage.memory_backend import MemoryCacheBackend
    return MemoryCacheBackend(clock=clock)


@pytest.fixture
def config():
    from memtree_lib.config.config import CacheConfig
    return CacheConfig(app_roots=['shop'])


@pytest.fixture
def store(backend, config, clock):
    from memtree_lib.cache.entry_store import EntryStore
    return EntryStore(backend, config, author_provider=lambda: 'alice@example.com', clock=clock)
