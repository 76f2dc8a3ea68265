"""Database connection and session management.

This module handles the database connection using SQLAlchemy.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config import DATA_DIR, DATABASE_ECHO, DATABASE_URL
from models.base import Base
# Import models to ensure they are registered with Base.metadata
import models  # noqa: F401

logger = logging.getLogger(__name__)


def create_db_engine(url: str = DATABASE_URL, echo: bool = DATABASE_ECHO) -> Engine:
    """Create an engine for ``url``.

    SQLite needs ``check_same_thread`` disabled because sessions are handed
    across threads by the calling layer.
    """
    if url.startswith("sqlite"):
        # Ensure data directory exists
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return create_engine(
            url, echo=echo, connect_args={"check_same_thread": False}
        )
    return create_engine(url, echo=echo)


engine = create_db_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """Create tables that do not exist yet."""
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ensured on %s", bind.url.render_as_string(hide_password=True))

