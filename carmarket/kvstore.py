"""Key-value persistence: the session snapshot and the flat fallback cache.

A `KeyValueStore` maps a handful of fixed string keys to JSON-serializable
values. `JsonFileKeyValueStore` keeps them in one JSON document on disk;
`InMemoryKeyValueStore` is the drop-in used by tests and throwaway runs.

The flat cache stores whole arrays of records under one key, so every write is
a read-modify-write of the full array. There is no locking: two processes
writing the same file race and the last writer wins.
"""
import json
import os
import tempfile
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .schemas import AccountRecord, ListingRecord, SessionUser
from .utils import logger

CURRENT_USER_KEY = "currentUser"
ACCOUNTS_KEY = "users"
LISTINGS_KEY = "carListings"


class KeyValueStore:
    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for k, v in (initial or {}).items():
            self.set(k, v)

    # values round-trip through JSON so callers never share mutable state
    def get(self, key):
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key, value):
        self._data[key] = json.dumps(value)

    def delete(self, key):
        self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    def __init__(self, path: str):
        self.path = path

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".kv-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key):
        return self._read_all().get(key)

    def set(self, key, value):
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key):
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class SessionStore:
    """Reads and writes the logged-in user snapshot under a single key."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get_current_user(self) -> Optional[SessionUser]:
        try:
            raw = self.kv.get(CURRENT_USER_KEY)
            return SessionUser.model_validate(raw) if raw else None
        except (ValueError, OSError, ValidationError) as e:
            logger.error("Error getting current user: %s", e)
            return None

    def set_current_user(self, user: Optional[SessionUser]) -> None:
        if user:
            self.kv.set(CURRENT_USER_KEY, user.model_dump(mode="json"))
            logger.info("Current user set: %s", user.name)
        else:
            self.kv.delete(CURRENT_USER_KEY)
            logger.info("Current user cleared")

    def clear_all(self) -> None:
        for key in (ACCOUNTS_KEY, LISTINGS_KEY, CURRENT_USER_KEY):
            self.kv.delete(key)
        logger.info("All key-value data cleared")


def _upsert_by_id(rows: List[dict], row: dict) -> List[dict]:
    for i, existing in enumerate(rows):
        if existing.get("id") == row["id"]:
            rows[i] = row
            return rows
    rows.append(row)
    return rows


class FlatCache:
    """Serialized arrays of accounts and listings, one key per collection.

    Reads raise on an unreadable store; entries that fail validation are
    skipped with a warning rather than poisoning the whole array.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def _read(self, key, model):
        rows = self.kv.get(key) or []
        out = []
        for raw in rows:
            try:
                out.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping malformed %s entry: %s", key, e)
        return out

    def read_accounts(self) -> List[AccountRecord]:
        return self._read(ACCOUNTS_KEY, AccountRecord)

    def write_accounts(self, rows: List[AccountRecord]) -> None:
        self.kv.set(ACCOUNTS_KEY, [r.model_dump(mode="json") for r in rows])

    def upsert_account(self, row: AccountRecord) -> None:
        rows = self.kv.get(ACCOUNTS_KEY) or []
        self.kv.set(ACCOUNTS_KEY, _upsert_by_id(rows, row.model_dump(mode="json")))

    def read_listings(self) -> List[ListingRecord]:
        return self._read(LISTINGS_KEY, ListingRecord)

    def write_listings(self, rows: List[ListingRecord]) -> None:
        self.kv.set(LISTINGS_KEY, [r.model_dump(mode="json") for r in rows])

    def upsert_listing(self, row: ListingRecord) -> None:
        rows = self.kv.get(LISTINGS_KEY) or []
        self.kv.set(LISTINGS_KEY, _upsert_by_id(rows, row.model_dump(mode="json")))
