"""Process-wide storage objects, handed to routes through `Depends`.

Tests replace these with `app.dependency_overrides`.
"""
from functools import lru_cache

from fastapi import HTTPException

from .. import config
from ..db import SessionLocal, init_db, make_engine
from ..embedded import EmbeddedStore
from ..kvstore import FlatCache, InMemoryKeyValueStore, JsonFileKeyValueStore, SessionStore
from ..remote import RemoteJoinFetcher, RemoteListingsSource
from ..services import Marketplace
from ..sync import DualStore
from ..utils import logger


@lru_cache()
def get_kv():
    if config.FLAT_CACHE_PATH:
        return JsonFileKeyValueStore(config.FLAT_CACHE_PATH)
    return InMemoryKeyValueStore()


@lru_cache()
def get_store() -> DualStore:
    embedded = None
    try:
        init_db()
        embedded = EmbeddedStore(SessionLocal)
    except Exception as e:
        # keep serving from the flat cache
        logger.error("Embedded store unavailable, running cache-only: %s", e)
    return DualStore(FlatCache(get_kv()), embedded)


@lru_cache()
def get_marketplace() -> Marketplace:
    return Marketplace(get_store(), SessionStore(get_kv()), unknown_name=config.UNKNOWN_SELLER_NAME)


@lru_cache()
def _remote_fetcher():
    if not config.REMOTE_DATABASE_URL:
        return None
    source = RemoteListingsSource(
        make_engine(config.REMOTE_DATABASE_URL),
        tries=config.REMOTE_FETCH_TRIES,
        delay=config.REMOTE_FETCH_DELAY,
    )
    return RemoteJoinFetcher(source, unknown_name=config.UNKNOWN_SELLER_NAME)


def get_remote_fetcher() -> RemoteJoinFetcher:
    fetcher = _remote_fetcher()
    if fetcher is None:
        raise HTTPException(status_code=503, detail="Remote backend not configured")
    return fetcher
