from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from .. import schemas
from ..errors import AuthError, CarMarketError, DuplicateEmailError, NotFoundError, RemoteFetchError, StorageError
from ..remote import RemoteJoinFetcher
from ..services import Marketplace
from ..sync import DualStore
from ..config import FEATURED_LIMIT
from .deps import get_marketplace, get_remote_fetcher, get_store

router = APIRouter()

_STATUS = {
    AuthError: 401,
    NotFoundError: 404,
    DuplicateEmailError: 409,
    StorageError: 503,
    RemoteFetchError: 502,
}

def _http_error(e: CarMarketError) -> HTTPException:
    return HTTPException(status_code=_STATUS.get(type(e), 500), detail=str(e))

@router.get("/health")
def health():
    return {"status": "ok"}

# auth / profile

@router.post("/auth/register", response_model=schemas.SessionUser, status_code=201)
def register(payload: schemas.RegisterRequest, market: Marketplace = Depends(get_marketplace)):
    try:
        return market.register(payload)
    except CarMarketError as e:
        raise _http_error(e)

@router.post("/auth/login", response_model=schemas.SessionUser)
def login(payload: schemas.LoginRequest, market: Marketplace = Depends(get_marketplace)):
    try:
        return market.login(payload.email, payload.password)
    except CarMarketError as e:
        raise _http_error(e)

@router.post("/auth/logout")
def logout(market: Marketplace = Depends(get_marketplace)):
    market.logout()
    return {"status": "logged out"}

@router.get("/auth/me", response_model=schemas.SessionUser)
def me(market: Marketplace = Depends(get_marketplace)):
    user = market.current_user()
    if not user:
        raise HTTPException(status_code=401, detail="Not logged in")
    return user

@router.put("/auth/profile", response_model=schemas.SessionUser)
def update_profile(payload: schemas.ProfileUpdate, market: Marketplace = Depends(get_marketplace)):
    try:
        return market.update_profile(payload)
    except CarMarketError as e:
        raise _http_error(e)

# listings

@router.get("/listings", response_model=schemas.ListingPage)
def listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None),
    max_price: Optional[float] = Query(None),
    min_year: Optional[int] = Query(None),
    max_year: Optional[int] = Query(None),
    location: Optional[str] = Query(None),
    market: Marketplace = Depends(get_marketplace)
):
    filters = schemas.ListingFilter(
        q=q,
        min_price=min_price,
        max_price=max_price,
        min_year=min_year,
        max_year=max_year,
        location=location
    )
    return market.browse(filters, skip=skip, limit=limit)

@router.get("/listings/locations", response_model=List[str])
def listing_locations(market: Marketplace = Depends(get_marketplace)):
    return market.locations()

@router.get("/listings/{listing_id}", response_model=schemas.ListingView)
def get_listing(listing_id: str, market: Marketplace = Depends(get_marketplace)):
    try:
        return market.listing_detail(listing_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Listing not found")

@router.post("/listings", response_model=schemas.ListingView, status_code=201)
def create_listing(payload: schemas.ListingCreate, market: Marketplace = Depends(get_marketplace)):
    try:
        return market.create_listing(payload)
    except CarMarketError as e:
        raise _http_error(e)

@router.get("/users/{user_id}/listings", response_model=List[schemas.ListingView])
def user_listings(user_id: str, market: Marketplace = Depends(get_marketplace)):
    return market.owner_listings(user_id)

# remote backend

@router.get("/remote/listings", response_model=List[schemas.ListingView])
def remote_listings(
    limit: int = Query(FEATURED_LIMIT, ge=1, le=100),
    fetcher: RemoteJoinFetcher = Depends(get_remote_fetcher)
):
    try:
        return fetcher.fetch_listings(limit)
    except RemoteFetchError as e:
        raise _http_error(e)

@router.get("/remote/listings/{listing_id}", response_model=schemas.ListingView)
def remote_listing(listing_id: str, fetcher: RemoteJoinFetcher = Depends(get_remote_fetcher)):
    try:
        view = fetcher.fetch_listing(listing_id)
    except RemoteFetchError as e:
        raise _http_error(e)
    if view is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return view

@router.post("/sync/reconcile")
def reconcile(store: DualStore = Depends(get_store)):
    return store.reconcile()
