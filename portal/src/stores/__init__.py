"""
Document store adapters.

Exports the Store protocol, StoreError, and the three backings: in-memory,
local SQLite, and networked Redis.

CHANGELOG:
- 2026-10-06: Initial creation (STORY-105)

TODO:
- None
"""

from portal.src.stores.base import Store, StoreError
from portal.src.stores.local import LocalStore
from portal.src.stores.memory import MemoryStore
from portal.src.stores.redis_store import RedisStore

__all__ = ["LocalStore", "MemoryStore", "RedisStore", "Store", "StoreError"]
