"""
Database engine and session factory.

Connects to PostgreSQL/PostGIS using ``Settings.database_url``.
"""

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from safeplace.core.config import get_settings

settings = get_settings()

# Connection pool sized for the score engine's parallel leaf queries
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=10,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Iterator[Session]:
    """Dependency for getting a database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
