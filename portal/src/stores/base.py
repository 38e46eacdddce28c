"""
Store adapter contract shared by every backing.

Documents are JSON-serialisable dicts addressed by ``(scope, item_id)``.
A scope groups the members of one reconciled set (for example
``access:alice`` holds one document per plant Alice may see), so
``list_keys(scope)`` is the "current state" read of a reconciliation.

Writes must be idempotent: ``upsert`` overwrites, and ``delete`` of a
missing item is a no-op. Backend failures surface as :class:`StoreError`.

CHANGELOG:
- 2026-10-06: Initial creation (STORY-105)

TODO:
- None
"""

from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]


class StoreError(Exception):
    """A store backend failed to complete an operation."""


@runtime_checkable
class Store(Protocol):
    """Narrow async get/list/upsert/delete contract over a document store."""

    async def get(self, scope: str, item_id: str) -> Document | None:
        """Return the document, or None if absent."""
        ...

    async def list_keys(self, scope: str) -> set[str]:
        """Return the item ids currently stored under *scope*."""
        ...

    async def upsert(self, scope: str, item_id: str, value: Document) -> None:
        """Create or overwrite a document."""
        ...

    async def delete(self, scope: str, item_id: str) -> None:
        """Delete a document if it exists."""
        ...
