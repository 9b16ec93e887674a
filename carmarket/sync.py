"""Dual-store synchronizer.

Every write goes to the flat cache first and then to the embedded store; every
read prefers the embedded store. When the embedded store answers it is treated
as authoritative and the flat cache is overwritten with what it returned. When
it is missing or fails, reads fall back to the last contents of the flat cache.

Nothing here raises to the caller. Each operation returns a `SyncResult` whose
`status` says how far the operation got:

- ``SYNCED``: the embedded store took part (the write landed there, or the
  read was answered by it).
- ``CACHED_ONLY``: only the flat cache was usable.
- ``FAILED``: neither store could serve the operation; ``value`` holds the
  empty fallback (``None``, ``[]``).
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from .embedded import EmbeddedStore
from .kvstore import FlatCache
from .schemas import AccountRecord, ListingRecord
from .utils import logger

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class SyncStatus(str, enum.Enum):
    SYNCED = "synced"
    CACHED_ONLY = "cached_only"
    FAILED = "failed"


@dataclass
class SyncResult:
    status: SyncStatus
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.status is not SyncStatus.FAILED

    @property
    def degraded(self) -> bool:
        return self.status is not SyncStatus.SYNCED


def sort_listings(rows: List[ListingRecord]) -> List[ListingRecord]:
    """Newest first, ties broken by id; undated rows go last."""
    rows = sorted(rows, key=lambda r: r.id)
    rows.sort(key=lambda r: (r.created_at is not None, r.created_at or _OLDEST), reverse=True)
    return rows


class DualStore:
    def __init__(self, cache: FlatCache, embedded: Optional[EmbeddedStore] = None):
        self.cache = cache
        self.embedded = embedded

    # -- generic paths -------------------------------------------------

    def _save(self, kind: str, record, cache_write: Callable, embedded_write: Optional[Callable]) -> SyncResult:
        cached = False
        try:
            cache_write(record)
            cached = True
        except Exception as e:
            logger.warning("Flat cache write failed for %s %s: %s", kind, record.id, e)

        if embedded_write is not None:
            try:
                embedded_write(record)
                logger.info("Saved %s %s", kind, record.id)
                return SyncResult(SyncStatus.SYNCED, record)
            except Exception as e:
                logger.warning("Embedded write failed for %s %s: %s", kind, record.id, e)

        if cached:
            return SyncResult(SyncStatus.CACHED_ONLY, record)
        logger.error("Could not persist %s %s in any store", kind, record.id)
        return SyncResult(SyncStatus.FAILED, record)

    def _load(self, kind: str, embedded_read: Optional[Callable], cache_read: Callable, cache_write: Callable) -> SyncResult:
        if embedded_read is not None:
            try:
                rows = embedded_read()
            except Exception as e:
                logger.warning("Embedded read of %s failed, using flat cache: %s", kind, e)
            else:
                try:
                    cache_write(rows)
                except Exception as e:
                    logger.warning("Could not refresh flat cache for %s: %s", kind, e)
                return SyncResult(SyncStatus.SYNCED, rows)
        try:
            return SyncResult(SyncStatus.CACHED_ONLY, cache_read())
        except Exception as e:
            logger.error("Flat cache read of %s failed: %s", kind, e)
            return SyncResult(SyncStatus.FAILED, [])

    def _find(self, kind: str, key: str, embedded_lookup: Optional[Callable], cache_read: Callable,
              match: Callable, repair: Optional[Callable]) -> SyncResult:
        answered = False
        if embedded_lookup is not None:
            try:
                found = embedded_lookup(key)
                answered = True
                if found is not None:
                    return SyncResult(SyncStatus.SYNCED, found)
            except Exception as e:
                logger.warning("Embedded lookup of %s %s failed: %s", kind, key, e)

        try:
            found = next((r for r in cache_read() if match(r)), None)
        except Exception as e:
            logger.error("Flat cache lookup of %s %s failed: %s", kind, key, e)
            return SyncResult(SyncStatus.SYNCED if answered else SyncStatus.FAILED, None)

        if found is None:
            return SyncResult(SyncStatus.SYNCED if answered else SyncStatus.CACHED_ONLY, None)

        # found only in the flat cache: push it back into the embedded store
        if repair is not None:
            try:
                repair(found)
                logger.info("Repaired %s %s from flat cache", kind, found.id)
                return SyncResult(SyncStatus.SYNCED, found)
            except Exception as e:
                logger.warning("Could not repair %s %s: %s", kind, found.id, e)
        return SyncResult(SyncStatus.CACHED_ONLY, found)

    def _embedded(self, name: str) -> Optional[Callable]:
        return getattr(self.embedded, name) if self.embedded is not None else None

    # -- accounts ------------------------------------------------------

    def save_account(self, record: AccountRecord) -> SyncResult:
        return self._save("account", record, self.cache.upsert_account, self._embedded("put_account"))

    def load_accounts(self) -> SyncResult:
        return self._load("accounts", self._embedded("get_accounts"),
                          self.cache.read_accounts, self.cache.write_accounts)

    def find_account_by_email(self, email: str) -> SyncResult:
        email = email.strip().lower()
        return self._find("account", email, self._embedded("get_account_by_email"),
                          self.cache.read_accounts, lambda r: r.email == email,
                          self._embedded("put_account"))

    def get_account(self, account_id: str) -> SyncResult:
        return self._find("account", account_id, self._embedded("get_account"),
                          self.cache.read_accounts, lambda r: r.id == account_id,
                          self._embedded("put_account"))

    # -- listings ------------------------------------------------------

    def save_listing(self, record: ListingRecord) -> SyncResult:
        return self._save("listing", record, self.cache.upsert_listing, self._embedded("put_listing"))

    def load_listings(self) -> SyncResult:
        return self._load("listings", self._embedded("get_listings"),
                          lambda: sort_listings(self.cache.read_listings()),
                          self.cache.write_listings)

    def get_listing(self, listing_id: str) -> SyncResult:
        return self._find("listing", listing_id, self._embedded("get_listing"),
                          self.cache.read_listings, lambda r: r.id == listing_id,
                          self._embedded("put_listing"))

    def listings_by_owner(self, owner_id: str) -> SyncResult:
        if self.embedded is not None:
            try:
                return SyncResult(SyncStatus.SYNCED, self.embedded.get_listings_by_owner(owner_id))
            except Exception as e:
                logger.warning("Indexed owner query failed for %s, scanning flat cache: %s", owner_id, e)
        return self.scan_listings_by_owner(owner_id)

    def scan_listings_by_owner(self, owner_id: str) -> SyncResult:
        """Scan-and-filter over the flat cache; same rows and order as the indexed path."""
        try:
            rows = [r for r in self.cache.read_listings() if r.owner_id == owner_id]
        except Exception as e:
            logger.error("Flat cache scan for owner %s failed: %s", owner_id, e)
            return SyncResult(SyncStatus.FAILED, [])
        return SyncResult(SyncStatus.CACHED_ONLY, sort_listings(rows))

    # -- maintenance ---------------------------------------------------

    def reconcile(self) -> dict:
        """Push cache-only rows into the embedded store, then refresh the cache from it."""
        summary = {"accounts_pushed": 0, "listings_pushed": 0, "status": SyncStatus.CACHED_ONLY.value}
        if self.embedded is None:
            logger.info("Reconcile skipped: no embedded store")
            return summary
        try:
            cached_accounts = self.cache.read_accounts()
            cached_listings = self.cache.read_listings()
        except Exception as e:
            logger.error("Reconcile could not read flat cache: %s", e)
            cached_accounts, cached_listings = [], []

        pushed = {"account": 0, "listing": 0}
        for kind, rows, lookup, put in (
            ("account", cached_accounts, self.embedded.get_account, self.embedded.put_account),
            ("listing", cached_listings, self.embedded.get_listing, self.embedded.put_listing),
        ):
            for row in rows:
                try:
                    if lookup(row.id) is None:
                        put(row)
                        pushed[kind] += 1
                except Exception as e:
                    logger.warning("Reconcile could not push %s %s: %s", kind, row.id, e)

        accounts = self.load_accounts()
        listings = self.load_listings()
        synced = accounts.status is SyncStatus.SYNCED and listings.status is SyncStatus.SYNCED
        summary.update(
            accounts_pushed=pushed["account"],
            listings_pushed=pushed["listing"],
            accounts=len(accounts.value),
            listings=len(listings.value),
            status=(SyncStatus.SYNCED if synced else SyncStatus.CACHED_ONLY).value,
        )
        logger.info("Reconcile finished: %s", summary)
        return summary
