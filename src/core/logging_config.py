"""Logging setup shared by the CLI and any embedding application."""

import logging
from typing import Optional

from config import LOG_FORMAT, LOG_LEVEL


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger.

    Args:
        level: Log level name; defaults to ``LOG_LEVEL`` from config.
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # SQLAlchemy engine logging is controlled by DATABASE_ECHO instead
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
