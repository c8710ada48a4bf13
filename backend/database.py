"""
Analysis store engine and sessions
"""

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import config
from models import Base

logger = logging.getLogger(__name__)

# Built on first use so tests can point config.DATABASE_URL elsewhere first
_engine = None
_SessionLocal = None

SQLITE_FALLBACK_URL = "sqlite:///./blockforward.db"


def get_database_url() -> str:
    url = config.DATABASE_URL or SQLITE_FALLBACK_URL
    # SQLAlchemy only accepts the postgresql:// scheme
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def get_engine():
    global _engine
    if _engine is None:
        url = get_database_url()
        if url.startswith("sqlite"):
            # Sessions cross into the executor thread that persists analyses
            kwargs = {"connect_args": {"check_same_thread": False}}
        else:
            kwargs = {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}

        _engine = create_engine(url, echo=config.SQL_DEBUG, **kwargs)
        logger.info("Analysis store bound to %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def init_db():
    """Create the walk_forward_analyses table if it doesn't exist"""
    logger.info("🗄️ Initializing analysis store...")
    try:
        Base.metadata.create_all(bind=get_engine())
        logger.info("✅ Analysis store ready")
    except Exception as e:
        logger.error(f"❌ Failed to initialize analysis store: {e}")
        raise


def get_db():
    """FastAPI dependency: one session per request"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def dispose_engine():
    """Close pooled connections and forget the engine (shutdown, tests)"""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
