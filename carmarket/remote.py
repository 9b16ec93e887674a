"""Listings from the hosted relational backend.

The backend keeps listings in ``car_listings`` and seller profiles in
``profiles``. The feed is built in two round trips: fetch the newest listings,
then fetch every referenced profile in one ``IN`` query, then merge the two
client-side with `project`. Single-listing reads use a server-side outer join.
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import Column, Float, Integer, MetaData, Table, Text, TIMESTAMP, select

from .errors import RemoteFetchError
from .schemas import ListingView, Seller
from .utils import logger, retry

remote_metadata = MetaData()

car_listings = Table(
    "car_listings", remote_metadata,
    Column("id", Text, primary_key=True),
    Column("title", Text, nullable=False),
    Column("make", Text),
    Column("model", Text),
    Column("year", Integer),
    Column("price", Float),
    Column("mileage", Integer),
    Column("location", Text),
    Column("description", Text),
    Column("image_url", Text),
    Column("user_id", Text, index=True),
    Column("created_at", TIMESTAMP(timezone=True)),
)

profiles = Table(
    "profiles", remote_metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text),
    Column("email", Text),
    Column("phone", Text),
    Column("location", Text),
)


def project(rows: Iterable[dict], owners: Dict[str, dict], unknown_name: str = "Unknown") -> List[ListingView]:
    """Merge listing rows with their resolved owners.

    Pure function: a row whose ``user_id`` is missing from ``owners`` gets a
    seller named ``unknown_name`` and no phone.
    """
    views = []
    for row in rows:
        # rows with no owner at all get the placeholder too
        owner = owners.get(row.get("user_id")) or {}
        views.append(ListingView(
            id=row["id"],
            title=row["title"],
            make=row.get("make"),
            model=row.get("model"),
            year=row.get("year"),
            price=row.get("price"),
            mileage=row.get("mileage"),
            location=row.get("location"),
            description=row.get("description"),
            image_url=row.get("image_url") or "",
            seller=Seller(id=row.get("user_id"), name=owner.get("name") or unknown_name, phone=owner.get("phone")),
            created_at=row.get("created_at"),
        ))
    return views


class RemoteListingsSource:
    def __init__(self, engine, tries: int = 3, delay: float = 1):
        self.engine = engine
        self._primary = retry(Exception, tries=tries, delay=delay)(self._query_primary)

    def _query_primary(self, limit=None, owner_id=None):
        stmt = select(car_listings).order_by(car_listings.c.created_at.desc().nullslast(), car_listings.c.id)
        if owner_id is not None:
            stmt = stmt.where(car_listings.c.user_id == owner_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            return [dict(r._mapping) for r in conn.execute(stmt)]

    def fetch_primary(self, limit: Optional[int] = None, owner_id: Optional[str] = None) -> List[dict]:
        return self._primary(limit=limit, owner_id=owner_id)

    def resolve_owners(self, ids: Iterable[str]) -> Dict[str, dict]:
        stmt = select(profiles.c.id, profiles.c.name, profiles.c.phone).where(profiles.c.id.in_(list(ids)))
        with self.engine.connect() as conn:
            return {r.id: dict(r._mapping) for r in conn.execute(stmt)}

    def fetch_joined(self, listing_id: str) -> Optional[dict]:
        stmt = (
            select(car_listings, profiles.c.name.label("owner_name"), profiles.c.phone.label("owner_phone"))
            .select_from(car_listings.outerjoin(profiles, car_listings.c.user_id == profiles.c.id))
            .where(car_listings.c.id == listing_id)
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        return dict(row._mapping) if row else None


class RemoteJoinFetcher:
    def __init__(self, source: RemoteListingsSource, unknown_name: str = "Unknown"):
        self.source = source
        self.unknown_name = unknown_name

    def _join(self, rows: List[dict]) -> List[ListingView]:
        if not rows:
            return []
        ids = list(dict.fromkeys(r["user_id"] for r in rows if r.get("user_id") is not None))
        owners = {}
        if ids:
            try:
                owners = self.source.resolve_owners(ids)
            except Exception as e:
                logger.error("Error fetching profiles for %d owners: %s", len(ids), e)
        return project(rows, owners, self.unknown_name)

    def _primary(self, **kwargs) -> List[dict]:
        try:
            return self.source.fetch_primary(**kwargs)
        except Exception as e:
            logger.exception("Error fetching listings: %s", e)
            raise RemoteFetchError("could not fetch listings") from e

    def fetch_listings(self, limit: Optional[int] = None) -> List[ListingView]:
        return self._join(self._primary(limit=limit))

    def fetch_owner_listings(self, owner_id: str) -> List[ListingView]:
        return self._join(self._primary(owner_id=owner_id))

    def fetch_listing(self, listing_id: str) -> Optional[ListingView]:
        try:
            row = self.source.fetch_joined(listing_id)
        except Exception as e:
            logger.exception("Error fetching listing %s: %s", listing_id, e)
            raise RemoteFetchError(f"could not fetch listing {listing_id}") from e
        if row is None:
            return None
        owner = {"name": row.pop("owner_name"), "phone": row.pop("owner_phone")}
        return project([row], {row.get("user_id"): owner}, self.unknown_name)[0]
