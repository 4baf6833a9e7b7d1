"""Process-wide store selected by ``STORE_BACKEND``."""

import logging
from functools import lru_cache

from timeshare.config import settings
from timeshare.repositories.base import Store

logger = logging.getLogger(__name__)


@lru_cache
def get_store() -> Store:
    """Return the configured store (FastAPI dependency; override in tests)."""
    if settings.store_backend == "memory":
        from timeshare.repositories.memory import InMemoryStore

        logger.warning("Using the in-memory store; data is lost on restart")
        return InMemoryStore()

    from timeshare.database import async_session_factory
    from timeshare.repositories.sql import SqlAlchemyStore

    return SqlAlchemyStore(async_session_factory)
