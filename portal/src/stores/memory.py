"""
In-memory store backing.

Keeps documents in a nested dict. Used for tests and for single-process
deployments where benchmark and access data may be lost on restart.

CHANGELOG:
- 2026-10-06: Initial creation (STORY-105)

TODO:
- None
"""

import copy

from portal.src.stores.base import Document


class MemoryStore:
    """Dict-backed implementation of the Store protocol.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state through a shared reference.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Document]] = {}

    async def get(self, scope: str, item_id: str) -> Document | None:
        doc = self._data.get(scope, {}).get(item_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def list_keys(self, scope: str) -> set[str]:
        return set(self._data.get(scope, {}))

    async def upsert(self, scope: str, item_id: str, value: Document) -> None:
        self._data.setdefault(scope, {})[item_id] = copy.deepcopy(value)

    async def delete(self, scope: str, item_id: str) -> None:
        items = self._data.get(scope)
        if items is None:
            return
        items.pop(item_id, None)
        if not items:
            del self._data[scope]
