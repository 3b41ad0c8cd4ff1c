from functools import lru_cache
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from supabase import create_client, Client
from app.config import settings
import logging

logger = logging.getLogger(__name__)

def build_engine(database_url: str):
    """Create the SQLAlchemy engine for the given URL"""
    if database_url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions and threads
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)

engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
Base = declarative_base()

def get_db():
    """Yield a database session for one request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind=None):
    """Create all tables that don't exist yet"""
    # Model modules register themselves on Base.metadata when imported
    import app.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)

# Supabase Client Setup (identity provider only)
@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Get Supabase client for authentication operations"""
    if not settings.supabase_url:
        raise RuntimeError("SUPABASE_URL is not configured")
    return create_client(
        settings.supabase_url,
        settings.supabase_anon_key.get_secret_value()
    )

def test_supabase_connection() -> bool:
    """Test Supabase connection"""
    try:
        get_supabase_client().auth.get_session()
        return True
    except Exception as e:
        logger.error(f"Supabase auth test failed: {e}")
        return False
