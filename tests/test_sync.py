from datetime import datetime, timedelta, timezone
import pytest
from carmarket.kvstore import FlatCache, InMemoryKeyValueStore
from carmarket.schemas import AccountRecord, ListingRecord
from carmarket.sync import DualStore, SyncStatus
from conftest import BrokenEmbeddedStore, BrokenKeyValueStore

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def account(id="u1", email="a@x.com", name="A"):
    return AccountRecord(id=id, name=name, email=email, created_at=T0)


def listing(id, owner_id="u1", minutes=0, price=1000):
    return ListingRecord(id=id, title=f"Car {id}", owner_id=owner_id, price=price,
                         created_at=T0 + timedelta(minutes=minutes))


@pytest.fixture
def cache_only():
    return DualStore(FlatCache(InMemoryKeyValueStore()), None)


def test_account_round_trip_by_email(store):
    res = store.save_account(account())
    assert res.status is SyncStatus.SYNCED
    assert res.ok and not res.degraded
    found = store.find_account_by_email("A@X.com")
    assert found.status is SyncStatus.SYNCED
    assert found.value.id == "u1"


def test_account_round_trip_cache_only(cache_only):
    assert cache_only.save_account(account()).status is SyncStatus.CACHED_ONLY
    found = cache_only.find_account_by_email("a@x.com")
    assert found.value.id == "u1"
    assert found.status is SyncStatus.CACHED_ONLY


def test_missing_account_is_not_an_error(store):
    res = store.find_account_by_email("nobody@x.com")
    assert res.value is None
    assert res.status is SyncStatus.SYNCED


def test_saves_do_not_duplicate(store, cache):
    for i in range(5):
        store.save_listing(listing(f"l{i}", minutes=i))
    store.save_listing(listing("l2", minutes=2, price=999))
    loaded = store.load_listings().value
    assert len(loaded) == 5
    assert next(l for l in loaded if l.id == "l2").price == 999
    assert len(cache.read_listings()) == 5


def test_owner_query_matches_scan_and_filter(store, cache_only):
    rows = [
        listing("a", "u1", minutes=5),
        listing("b", "u2", minutes=4),
        listing("c", "u1", minutes=5),
        listing("d", "u1", minutes=1),
        listing("e", "u3", minutes=9),
    ]
    for r in rows:
        store.save_listing(r)
        cache_only.save_listing(r)
    everything = store.load_listings().value
    for owner in ("u1", "u2", "u3", "nobody"):
        expected = [l.id for l in everything if l.owner_id == owner]
        indexed = store.listings_by_owner(owner)
        assert indexed.status is SyncStatus.SYNCED
        assert [l.id for l in indexed.value] == expected
        assert [l.id for l in store.scan_listings_by_owner(owner).value] == expected
        assert [l.id for l in cache_only.listings_by_owner(owner).value] == expected
    assert [l.id for l in store.listings_by_owner("u1").value] == ["a", "c", "d"]


def test_owner_query_falls_back_to_scan(store):
    store.save_listing(listing("l1"))
    store.embedded = BrokenEmbeddedStore()
    res = store.listings_by_owner("u1")
    assert res.status is SyncStatus.CACHED_ONLY
    assert [l.id for l in res.value] == ["l1"]


def test_failed_embedded_read_returns_last_synced_cache(store):
    store.save_account(account())
    store.save_listing(listing("l1"))
    assert store.load_accounts().status is SyncStatus.SYNCED
    store.embedded = BrokenEmbeddedStore()
    accounts = store.load_accounts()
    listings = store.load_listings()
    assert accounts.status is SyncStatus.CACHED_ONLY
    assert [a.id for a in accounts.value] == ["u1"]
    assert [l.id for l in listings.value] == ["l1"]


def test_embedded_write_failure_still_counts(cache):
    store = DualStore(cache, BrokenEmbeddedStore())
    res = store.save_account(account())
    assert res.status is SyncStatus.CACHED_ONLY
    assert res.ok
    assert [a.id for a in cache.read_accounts()] == ["u1"]


def test_total_failure_is_reported_not_raised():
    store = DualStore(FlatCache(BrokenKeyValueStore()), BrokenEmbeddedStore())
    assert store.save_listing(listing("l1")).status is SyncStatus.FAILED
    assert not store.save_account(account()).ok
    loaded = store.load_accounts()
    assert loaded.status is SyncStatus.FAILED and loaded.value == []
    assert store.find_account_by_email("a@x.com").value is None
    assert store.listings_by_owner("u1").value == []


def test_embedded_store_is_authoritative_on_read(store, cache, embedded):
    cache.upsert_account(account(id="stale", email="stale@x.com"))
    embedded.put_account(account())
    assert [a.id for a in store.load_accounts().value] == ["u1"]
    assert [a.id for a in cache.read_accounts()] == ["u1"]


def test_cache_only_hit_is_repaired_into_embedded(store, cache, embedded):
    cache.upsert_account(account())
    assert embedded.get_account_by_email("a@x.com") is None
    res = store.find_account_by_email("a@x.com")
    assert res.value.id == "u1"
    assert res.status is SyncStatus.SYNCED
    assert embedded.get_account_by_email("a@x.com").id == "u1"


def test_duplicate_email_lands_in_cache_only(store):
    store.save_account(account())
    res = store.save_account(account(id="u2"))
    assert res.status is SyncStatus.CACHED_ONLY


def test_get_listing_prefers_embedded_then_cache(store, cache):
    cache.upsert_listing(listing("cached"))
    assert store.get_listing("cached").value.id == "cached"
    assert store.get_listing("missing").value is None


def test_reconcile_pushes_cache_only_rows(store, cache, embedded):
    store.save_account(account())
    cache.upsert_account(account(id="u2", email="b@x.com"))
    cache.upsert_listing(listing("l9", owner_id="u2"))
    summary = store.reconcile()
    assert summary["accounts_pushed"] == 1
    assert summary["listings_pushed"] == 1
    assert summary["status"] == "synced"
    assert embedded.get_listing("l9") is not None
    assert {a.id for a in cache.read_accounts()} == {"u1", "u2"}


def test_reconcile_without_embedded_store(cache_only):
    assert cache_only.reconcile()["status"] == "cached_only"


def test_scenario_account_and_listing(store):
    store.save_account(AccountRecord(id="u1", email="a@x.com", name="A"))
    store.save_listing(ListingRecord(id="l1", title="Car", owner_id="u1", price=1000))
    assert [l.id for l in store.listings_by_owner("u1").value] == ["l1"]
    assert store.find_account_by_email("a@x.com").value.id == "u1"


def test_offset_timestamps_are_stored_as_utc(store, cache_only):
    dubai = timezone(timedelta(hours=4))
    rows = [
        ListingRecord(id="a", title="A", owner_id="u1", created_at=datetime(2024, 1, 1, 10, 0, tzinfo=dubai)),
        ListingRecord(id="b", title="B", owner_id="u1", created_at=datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)),
    ]
    for r in rows:
        store.save_listing(r)
        cache_only.save_listing(r)
    assert [l.id for l in store.listings_by_owner("u1").value] == ["b", "a"]
    assert [l.id for l in store.scan_listings_by_owner("u1").value] == ["b", "a"]
    assert [l.id for l in cache_only.listings_by_owner("u1").value] == ["b", "a"]
    a = store.get_listing("a").value
    assert a.created_at == datetime(2024, 1, 1, 6, 0, tzinfo=timezone.utc)
    assert a.created_at.utcoffset() == timedelta(0)


def test_undated_listings_sort_last_on_both_paths(store):
    store.save_listing(ListingRecord(id="undated", title="U", owner_id="u1"))
    store.save_listing(listing("dated", minutes=1))
    assert [l.id for l in store.listings_by_owner("u1").value] == ["dated", "undated"]
    assert [l.id for l in store.scan_listings_by_owner("u1").value] == ["dated", "undated"]
