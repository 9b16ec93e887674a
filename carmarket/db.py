"""Database engine and session utilities.

The embedded store is a local SQLite file by default; any SQLAlchemy URL
works. `make_engine` is also used for the optional remote backend and by the
tests (``sqlite://`` gives a private in-memory database).
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL

Base = declarative_base()

def make_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # in-memory databases live as long as their single connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)

def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)

def init_db(bind=None):
    # models must be imported so their tables are registered on Base
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
