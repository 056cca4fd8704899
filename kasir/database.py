"""
Database lifecycle.
- One engine (and pool) per process, built at startup by init_engine()
- pool_pre_ping=True for server databases
- SSL enforced for Supabase
- Retry on OperationalError when checking the connection
- Sessions handed to handlers through get_db()
"""
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from typing import Generator, Optional
import logging
import time

from kasir.config import settings

logger = logging.getLogger(__name__)

# Bound to the engine in init_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

_engine: Optional[Engine] = None


def _normalize_url(url: str) -> str:
    # Add SSL mode for Supabase if not present
    if "supabase" in url and "sslmode" not in url:
        url += "?sslmode=require"
        logger.info("Added sslmode=require to DATABASE_URL")
    return url


def init_engine(url: Optional[str] = None) -> Engine:
    """Create the process-wide engine and bind the session factory to it."""
    global _engine

    if _engine is not None:
        return _engine

    url = _normalize_url(url or settings.DATABASE_URL)

    if url.startswith("sqlite"):
        _engine = create_engine(url, connect_args={"check_same_thread": False})
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_timeout=30,
            echo=False,
            connect_args={"connect_timeout": 10},
        )

    SessionLocal.configure(bind=_engine)
    logger.info(f"Database engine configured ({_engine.url.get_backend_name()})")
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        return init_engine()
    return _engine


def dispose_engine() -> None:
    """Close every pooled connection (application shutdown)."""
    global _engine

    if _engine is not None:
        _engine.dispose()
        logger.info("Database engine disposed")
        _engine = None


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection() -> tuple[bool, str]:
    """Test database connection with retry"""
    attempts = max(settings.DB_CONNECT_RETRIES, 1)
    engine = get_engine()

    for attempt in range(attempts):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True, "Database connection successful"
        except OperationalError as e:
            if attempt == attempts - 1:
                return False, f"Database connection failed: {str(e)}"
            logger.warning(f"Database connection attempt {attempt + 1} failed, retrying...")
            time.sleep(1)
    return False, "Database connection test failed"
