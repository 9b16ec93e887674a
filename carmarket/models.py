"""SQLAlchemy ORM models for the embedded store.

`accounts.email` carries a unique index and `listings.owner_id` a plain one;
those two indexes back the lookups in `embedded.EmbeddedStore`.
"""
from sqlalchemy import Column, Integer, Text, Float, TIMESTAMP, ForeignKey, Index
from .db import Base

class Account(Base):
    __tablename__ = "accounts"
    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    password_hash = Column(Text)
    phone = Column(Text)
    location = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

class Listing(Base):
    __tablename__ = "listings"
    id = Column(Text, primary_key=True)
    title = Column(Text, nullable=False)
    make = Column(Text)
    model = Column(Text)
    year = Column(Integer)
    price = Column(Float)
    mileage = Column(Integer)
    location = Column(Text)
    description = Column(Text)
    image_url = Column(Text)
    owner_id = Column(Text, ForeignKey("accounts.id"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True))

Index("idx_accounts_email", Account.email, unique=True)
Index("idx_listings_owner", Listing.owner_id)
