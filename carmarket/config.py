"""Runtime settings read from the environment (and `.env`, if present)."""
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./carmarket.db")
FLAT_CACHE_PATH = os.getenv("FLAT_CACHE_PATH", "./carmarket_cache.json")

REMOTE_DATABASE_URL = os.getenv("REMOTE_DATABASE_URL")
# SQLAlchemy 2.x doesn't accept the 'postgres://' scheme
if REMOTE_DATABASE_URL and REMOTE_DATABASE_URL.startswith("postgres://"):
    REMOTE_DATABASE_URL = REMOTE_DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)

REMOTE_FETCH_TRIES = int(os.getenv("REMOTE_FETCH_TRIES", "3"))
REMOTE_FETCH_DELAY = float(os.getenv("REMOTE_FETCH_DELAY", "1"))
FEATURED_LIMIT = int(os.getenv("FEATURED_LIMIT", "6"))
UNKNOWN_SELLER_NAME = os.getenv("UNKNOWN_SELLER_NAME", "Unknown")

SYNC_INTERVAL_MINUTES = int(os.getenv("SYNC_INTERVAL_MINUTES", "0"))
