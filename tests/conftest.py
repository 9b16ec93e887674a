import pytest
from carmarket.db import init_db, make_engine, make_session_factory
from carmarket.embedded import EmbeddedStore
from carmarket.kvstore import FlatCache, InMemoryKeyValueStore, KeyValueStore, SessionStore
from carmarket.services import Marketplace
from carmarket.sync import DualStore


class BrokenEmbeddedStore:
    """Stands in for an embedded store that fails on every call."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RuntimeError(f"embedded store unavailable ({name})")
        return fail


class BrokenKeyValueStore(KeyValueStore):
    def get(self, key):
        raise OSError("quota exceeded")

    def set(self, key, value):
        raise OSError("quota exceeded")

    def delete(self, key):
        raise OSError("quota exceeded")


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def embedded(engine):
    return EmbeddedStore(make_session_factory(engine))


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def cache(kv):
    return FlatCache(kv)


@pytest.fixture
def store(cache, embedded):
    return DualStore(cache, embedded)


@pytest.fixture
def market(store, kv):
    return Marketplace(store, SessionStore(kv))
