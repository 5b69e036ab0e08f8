"""Database session management with connection pooling"""

from typing import Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from fatura_engine.config import settings
from fatura_engine.infrastructure.database.change_feed import track_changes

# Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Live statement streams refresh after every committed write
track_changes()


def get_db() -> Generator[Session, None, None]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    """Session factory for long-lived consumers that open one session per query"""
    return SessionLocal
