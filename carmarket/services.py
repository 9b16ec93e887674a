from typing import Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from . import schemas
from .errors import AuthError, DuplicateEmailError, NotFoundError, StorageError
from .kvstore import SessionStore
from .sync import DualStore, SyncStatus
from .utils import logger, new_id, utcnow


class Marketplace:
    """Account, profile and listing operations on top of the dual store."""

    def __init__(self, store: DualStore, session: SessionStore, unknown_name: str = "Unknown"):
        self.store = store
        self.session = session
        self.unknown_name = unknown_name

    # accounts

    def register(self, payload: schemas.RegisterRequest) -> schemas.SessionUser:
        existing = self.store.find_account_by_email(payload.email)
        if existing.value is not None:
            raise DuplicateEmailError(f"{payload.email} is already registered")
        now = utcnow()
        account = schemas.AccountRecord(
            id=new_id(),
            name=payload.name,
            email=payload.email,
            password_hash=generate_password_hash(payload.password),
            phone=payload.phone or None,
            location=payload.location or None,
            created_at=now,
            updated_at=now,
        )
        res = self.store.save_account(account)
        if res.status is SyncStatus.FAILED:
            raise StorageError("could not save account")
        user = schemas.SessionUser.from_account(account)
        self.session.set_current_user(user)
        logger.info("Registered account %s (%s)", account.id, res.status.value)
        return user

    def login(self, email: str, password: str) -> schemas.SessionUser:
        account = self.store.find_account_by_email(email).value
        if account is None or not account.password_hash or not check_password_hash(account.password_hash, password):
            raise AuthError("invalid email or password")
        user = schemas.SessionUser.from_account(account)
        self.session.set_current_user(user)
        return user

    def logout(self) -> None:
        self.session.set_current_user(None)

    def current_user(self) -> Optional[schemas.SessionUser]:
        return self.session.get_current_user()

    def _require_user(self) -> schemas.SessionUser:
        user = self.session.get_current_user()
        if user is None:
            raise AuthError("not logged in")
        return user

    def update_profile(self, updates: schemas.ProfileUpdate) -> schemas.SessionUser:
        user = self._require_user()
        account = self.store.get_account(user.id).value
        if account is None:
            raise NotFoundError(f"account {user.id} not found")
        changes = updates.model_dump(exclude_unset=True)
        if changes.get("name") is None:
            changes.pop("name", None)
        changes["updated_at"] = utcnow()
        account = account.model_copy(update=changes)
        if self.store.save_account(account).status is SyncStatus.FAILED:
            raise StorageError("could not save profile")
        user = schemas.SessionUser.from_account(account)
        self.session.set_current_user(user)
        return user

    # listings

    def create_listing(self, payload: schemas.ListingCreate) -> schemas.ListingView:
        user = self._require_user()
        listing = schemas.ListingRecord(
            id=new_id(),
            owner_id=user.id,
            created_at=utcnow(),
            **payload.model_dump(),
        )
        if self.store.save_listing(listing).status is SyncStatus.FAILED:
            raise StorageError("could not save listing")
        logger.info("Created listing %s for %s", listing.id, user.id)
        return self._view(listing, self._sellers([listing]))

    def _sellers(self, listings: List[schemas.ListingRecord]) -> Dict[str, schemas.Seller]:
        # per-owner lookups; a full load would overwrite the flat cache on every page
        sellers = {}
        for owner_id in dict.fromkeys(l.owner_id for l in listings):
            a = self.store.get_account(owner_id).value
            if a is not None:
                sellers[a.id] = schemas.Seller(id=a.id, name=a.name, phone=a.phone)
        return sellers

    def _view(self, listing: schemas.ListingRecord, sellers: Dict[str, schemas.Seller]) -> schemas.ListingView:
        seller = sellers.get(listing.owner_id) or schemas.Seller(id=listing.owner_id, name=self.unknown_name)
        data = listing.model_dump(exclude={"owner_id"})
        data["image_url"] = data["image_url"] or ""
        return schemas.ListingView(seller=seller, **data)

    def _views(self, listings: List[schemas.ListingRecord]) -> List[schemas.ListingView]:
        sellers = self._sellers(listings)
        return [self._view(l, sellers) for l in listings]

    def browse(self, filters: Optional[schemas.ListingFilter] = None, skip: int = 0, limit: int = 50) -> dict:
        rows = self.store.load_listings().value
        f = filters or schemas.ListingFilter()
        if f.q:
            term = f.q.strip().lower()
            rows = [
                r for r in rows
                if any(term in (v or "").lower() for v in (r.title, r.make, r.model))
            ]
        if f.min_price is not None:
            rows = [r for r in rows if r.price is not None and r.price >= f.min_price]
        if f.max_price is not None:
            rows = [r for r in rows if r.price is not None and r.price <= f.max_price]
        if f.min_year is not None:
            rows = [r for r in rows if r.year is not None and r.year >= f.min_year]
        if f.max_year is not None:
            rows = [r for r in rows if r.year is not None and r.year <= f.max_year]
        if f.location and f.location != "all":
            rows = [r for r in rows if r.location == f.location]
        total = len(rows)
        return {"total": total, "items": self._views(rows[skip:skip + limit])}

    def locations(self) -> List[str]:
        return sorted({r.location for r in self.store.load_listings().value if r.location})

    def listing_detail(self, listing_id: str) -> schemas.ListingView:
        listing = self.store.get_listing(listing_id).value
        if listing is None:
            raise NotFoundError(f"listing {listing_id} not found")
        owner = self.store.get_account(listing.owner_id).value
        sellers = {owner.id: schemas.Seller(id=owner.id, name=owner.name, phone=owner.phone)} if owner else {}
        return self._view(listing, sellers)

    def owner_listings(self, owner_id: str) -> List[schemas.ListingView]:
        return self._views(self.store.listings_by_owner(owner_id).value)

    def seed(self, accounts: List[schemas.AccountRecord], listings: List[schemas.ListingRecord]) -> Dict[str, int]:
        saved = {"accounts": 0, "listings": 0}
        for a in accounts:
            if self.store.save_account(a).ok:
                saved["accounts"] += 1
        for l in listings:
            if self.store.save_listing(l).ok:
                saved["listings"] += 1
        logger.info("Seeded %d accounts and %d listings", saved["accounts"], saved["listings"])
        return saved
