"""Embedded transactional store for accounts and listings.

Thin CRUD over the ORM models. Every public method runs in its own
transaction and lets exceptions propagate; deciding what a failure means is
the synchronizer's job.
"""
from typing import List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from .models import Account, Listing
from .schemas import AccountRecord, ListingRecord

_INSERTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}

# newest first; id breaks ties so every read path agrees on order
LISTING_ORDER = (Listing.created_at.desc().nullslast(), Listing.id)


class EmbeddedStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _upsert(self, db, model, data):
        table = model.__table__
        insert = _INSERTS.get(db.get_bind().dialect.name)
        if insert is None:
            db.merge(model(**data))
            return
        stmt = insert(table).values(**data)
        excluded = {c.name: stmt.excluded[c.name] for c in table.columns if c.name not in ("id", "created_at")}
        stmt = stmt.on_conflict_do_update(index_elements=["id"], set_=excluded)
        db.execute(stmt)

    def put_account(self, record: AccountRecord) -> None:
        with self.session_factory.begin() as db:
            self._upsert(db, Account, record.model_dump())

    def get_account(self, account_id: str) -> Optional[AccountRecord]:
        with self.session_factory() as db:
            obj = db.query(Account).filter(Account.id == account_id).first()
            return AccountRecord.model_validate(obj) if obj else None

    def get_accounts(self) -> List[AccountRecord]:
        with self.session_factory() as db:
            rows = db.query(Account).order_by(Account.created_at, Account.id).all()
            return [AccountRecord.model_validate(r) for r in rows]

    def get_account_by_email(self, email: str) -> Optional[AccountRecord]:
        with self.session_factory() as db:
            obj = db.query(Account).filter(Account.email == email.strip().lower()).first()
            return AccountRecord.model_validate(obj) if obj else None

    def put_listing(self, record: ListingRecord) -> None:
        with self.session_factory.begin() as db:
            self._upsert(db, Listing, record.model_dump())

    def get_listing(self, listing_id: str) -> Optional[ListingRecord]:
        with self.session_factory() as db:
            obj = db.query(Listing).filter(Listing.id == listing_id).first()
            return ListingRecord.model_validate(obj) if obj else None

    def get_listings(self) -> List[ListingRecord]:
        with self.session_factory() as db:
            rows = db.query(Listing).order_by(*LISTING_ORDER).all()
            return [ListingRecord.model_validate(r) for r in rows]

    def get_listings_by_owner(self, owner_id: str) -> List[ListingRecord]:
        with self.session_factory() as db:
            rows = db.query(Listing).filter(Listing.owner_id == owner_id).order_by(*LISTING_ORDER).all()
            return [ListingRecord.model_validate(r) for r in rows]
