from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from typing import Annotated, List, Optional
from datetime import datetime, timezone


def _as_utc(v):
    # everything is stored as UTC; SQLite hands back naive timestamps and drops offsets
    if isinstance(v, datetime):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
    return v


def _normalize_email(v):
    return v.strip().lower() if isinstance(v, str) else v


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]
Email = Annotated[str, BeforeValidator(_normalize_email)]


class AccountRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: Email
    password_hash: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class SessionUser(BaseModel):
    """Snapshot of the logged-in account kept in the key-value store."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def from_account(cls, account: AccountRecord) -> "SessionUser":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            phone=account.phone,
            location=account.location,
        )


class ListingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    price: Optional[float] = None
    mileage: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    owner_id: str
    created_at: Optional[UtcDatetime] = None


class Seller(BaseModel):
    id: Optional[str] = None
    name: str
    phone: Optional[str] = None


class ListingView(BaseModel):
    id: str
    title: str
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    price: Optional[float] = None
    mileage: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    image_url: str = ""
    seller: Seller
    created_at: Optional[UtcDatetime] = None


class ListingPage(BaseModel):
    total: int
    items: List[ListingView]


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Email = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    location: Optional[str] = None


class LoginRequest(BaseModel):
    email: Email
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = None
    location: Optional[str] = None


class ListingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1886, le=2100)
    price: float = Field(..., ge=0)
    mileage: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class ListingFilter(BaseModel):
    q: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    location: Optional[str] = None
