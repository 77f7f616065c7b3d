"""Database bootstrapping utilities."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from files_manager.db import session as db_session
from files_manager.models.base import Base
from files_manager.models.file_node import FileNode  # noqa: F401 - ensure table registration
from files_manager.models.user import User  # noqa: F401 - ensure table registration

logger = logging.getLogger(__name__)

_ready = False


def init_db() -> None:
    """Create all database tables if they do not exist and mark the store as ready."""
    global _ready
    Base.metadata.create_all(bind=db_session.engine)
    _ready = True
    logger.info("Database initialized")


def db_is_alive() -> bool:
    """Readiness probe: the schema was created and a trivial query succeeds."""
    if not _ready:
        return False
    try:
        with db_session.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Database liveness check failed: %s", exc)
        return False
