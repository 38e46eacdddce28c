"""
Networked document store backed by Redis.

Each scope is one Redis hash (``portal:{scope}``) mapping item id to the
JSON-encoded document. HSET overwrites and HDEL ignores missing fields, so
both write paths are idempotent as the reconciler requires.

CHANGELOG:
- 2026-10-07: Initial creation, adapted from the realtime cache client (STORY-106)

TODO:
- None
"""

from __future__ import annotations

import json

import redis.asyncio as redis
from redis.exceptions import RedisError

from portal.src.stores.base import Document, StoreError

KEY_PREFIX = "portal"


def _text(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RedisStore:
    """Store protocol implementation on Redis hashes.

    Args:
        client: An async Redis client. Use :meth:`from_url` to build one
            from a connection URL.
        prefix: Key prefix isolating this application's hashes.
    """

    def __init__(self, client: redis.Redis, prefix: str = KEY_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = KEY_PREFIX) -> RedisStore:
        """Create a store with a new client for *url*."""
        return cls(redis.from_url(url), prefix=prefix)

    async def close(self) -> None:
        """Close the underlying client connection pool."""
        await self._client.aclose()

    def _hash_key(self, scope: str) -> str:
        return f"{self._prefix}:{scope}"

    # ------------------------------------------------------------------
    # Store protocol
    # ------------------------------------------------------------------

    async def get(self, scope: str, item_id: str) -> Document | None:
        try:
            raw = await self._client.hget(self._hash_key(scope), item_id)
        except RedisError as exc:
            raise StoreError(f"get {scope}/{item_id} failed: {exc}") from exc
        return json.loads(raw) if raw is not None else None

    async def list_keys(self, scope: str) -> set[str]:
        try:
            fields = await self._client.hkeys(self._hash_key(scope))
        except RedisError as exc:
            raise StoreError(f"list {scope} failed: {exc}") from exc
        return {_text(field) for field in fields}

    async def upsert(self, scope: str, item_id: str, value: Document) -> None:
        try:
            await self._client.hset(self._hash_key(scope), item_id, json.dumps(value))
        except RedisError as exc:
            raise StoreError(f"upsert {scope}/{item_id} failed: {exc}") from exc

    async def delete(self, scope: str, item_id: str) -> None:
        try:
            await self._client.hdel(self._hash_key(scope), item_id)
        except RedisError as exc:
            raise StoreError(f"delete {scope}/{item_id} failed: {exc}") from exc
