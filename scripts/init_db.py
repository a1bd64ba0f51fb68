#!/usr/bin/env python3
"""
Creates the PostGIS extension and the SafePlace tables if they are missing.
Usage: python scripts/init_db.py [attempts]
"""
import logging
import sys
import time
from pathlib import Path

# Make the safeplace package importable from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from safeplace.db.session import engine
from safeplace.models import Base

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("init_db")

RETRY_DELAY_SECONDS = 2


def wait_for_database(attempts: int) -> None:
    """
    Block until PostgreSQL accepts connections.

    Raises:
        OperationalError: If the last attempt still cannot connect
    """
    for attempt in range(1, attempts + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return
        except OperationalError as e:
            if attempt == attempts:
                raise
            logger.info(f"PostgreSQL unavailable ({attempt}/{attempts}): {e.orig}")
            time.sleep(RETRY_DELAY_SECONDS)


def create_schema() -> None:
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))
    Base.metadata.create_all(bind=engine)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    attempts = int(sys.argv[1]) if len(sys.argv) > 1 else 30
    try:
        wait_for_database(attempts)
        create_schema()
    except OperationalError as e:
        logger.error(f"Schema bootstrap failed: {e.orig}")
        sys.exit(1)
