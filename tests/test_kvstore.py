import json
from carmarket.kvstore import (
    ACCOUNTS_KEY, CURRENT_USER_KEY, LISTINGS_KEY,
    FlatCache, InMemoryKeyValueStore, JsonFileKeyValueStore, SessionStore,
)
from carmarket.schemas import AccountRecord, ListingRecord, SessionUser


def test_json_file_store_persists_between_instances(tmp_path):
    path = str(tmp_path / "cache.json")
    JsonFileKeyValueStore(path).set("k", {"a": [1, 2]})
    other = JsonFileKeyValueStore(path)
    assert other.get("k") == {"a": [1, 2]}
    other.delete("k")
    assert JsonFileKeyValueStore(path).get("k") is None
    assert json.loads((tmp_path / "cache.json").read_text()) == {}


def test_missing_file_reads_as_empty(tmp_path):
    assert JsonFileKeyValueStore(str(tmp_path / "nope.json")).get("k") is None


def test_session_round_trip_and_clear():
    session = SessionStore(InMemoryKeyValueStore())
    assert session.get_current_user() is None
    user = SessionUser(id="u1", name="A", email="a@x.com", phone="555")
    session.set_current_user(user)
    assert session.get_current_user() == user
    session.set_current_user(None)
    assert session.get_current_user() is None


def test_corrupt_session_entry_reads_as_logged_out(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json")
    assert SessionStore(JsonFileKeyValueStore(str(path))).get_current_user() is None
    kv = InMemoryKeyValueStore({CURRENT_USER_KEY: {"name": "no id"}})
    assert SessionStore(kv).get_current_user() is None


def test_clear_all_drops_every_key():
    kv = InMemoryKeyValueStore({ACCOUNTS_KEY: [], LISTINGS_KEY: [], CURRENT_USER_KEY: {"id": "u1"}, "other": 1})
    SessionStore(kv).clear_all()
    assert kv.get(ACCOUNTS_KEY) is None
    assert kv.get(LISTINGS_KEY) is None
    assert kv.get(CURRENT_USER_KEY) is None
    assert kv.get("other") == 1


def test_flat_cache_upsert_replaces_by_id():
    cache = FlatCache(InMemoryKeyValueStore())
    cache.upsert_account(AccountRecord(id="u1", name="A", email="a@x.com"))
    cache.upsert_account(AccountRecord(id="u2", name="B", email="b@x.com"))
    cache.upsert_account(AccountRecord(id="u1", name="A2", email="a@x.com"))
    assert [(a.id, a.name) for a in cache.read_accounts()] == [("u1", "A2"), ("u2", "B")]


def test_flat_cache_skips_malformed_rows():
    kv = InMemoryKeyValueStore({LISTINGS_KEY: [{"id": "l1", "title": "ok", "owner_id": "u1"}, {"id": "l2"}]})
    assert [l.id for l in FlatCache(kv).read_listings()] == ["l1"]


def test_flat_cache_write_replaces_array():
    cache = FlatCache(InMemoryKeyValueStore())
    cache.upsert_listing(ListingRecord(id="old", title="x", owner_id="u1"))
    cache.write_listings([ListingRecord(id="new", title="y", owner_id="u1")])
    assert [l.id for l in cache.read_listings()] == ["new"]
