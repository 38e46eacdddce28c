"""
Store construction from configuration.

CHANGELOG:
- 2026-10-07: Initial creation (STORY-106)

TODO:
- None
"""

import logging

from portal.src.config import PortalSettings
from portal.src.stores.base import Store
from portal.src.stores.local import LocalStore
from portal.src.stores.memory import MemoryStore
from portal.src.stores.redis_store import RedisStore

logger = logging.getLogger(__name__)


async def open_store(settings: PortalSettings) -> Store:
    """Create and open the store selected by ``STORE_BACKEND``.

    The local backing opens its SQLite file here; the caller must later
    pass the returned store to :func:`close_store`.
    """
    if settings.store_backend == "redis":
        logger.info("Using Redis store backing")
        return RedisStore.from_url(settings.redis_url)
    if settings.store_backend == "local":
        logger.info("Using local SQLite store at %s", settings.local_store_path)
        store = LocalStore(settings.local_store_path)
        await store.open()
        return store
    logger.info("Using in-memory store backing")
    return MemoryStore()


async def close_store(store: Store) -> None:
    """Release connections held by *store*, if any."""
    if isinstance(store, LocalStore | RedisStore):
        await store.close()
