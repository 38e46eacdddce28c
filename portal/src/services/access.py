"""
Access grant reconciliation: which plants a user may see.

Grants live under the store scope ``access:{username}``, one document per
plant. Updating a user's access computes the difference between the
administrator's selection and the stored grants and applies only that
difference through the StateReconciler. ``createdAt`` and ``grantedBy``
are written when a grant is added and are never touched again.

CHANGELOG:
- 2026-10-12: Record the granting administrator (STORY-113)
- 2026-10-08: Initial creation (STORY-108)

TODO:
- None
"""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from portal.src.models import ApplyReport
from portal.src.services.reconciler import StateReconciler
from portal.src.stores.base import Store

logger = logging.getLogger(__name__)


def access_scope(username: str) -> str:
    """Return the store scope holding a user's grants."""
    return f"access:{username}"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class AccessGrantReconciler:
    """Keeps a user's stored plant grants equal to a desired plant set.

    Args:
        store: Document store holding the grants.
        reconciler: Reconciler used to apply grant changes.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        store: Store,
        reconciler: StateReconciler,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._reconciler = reconciler
        self._clock = clock

    async def list_plants(self, username: str) -> set[str]:
        """Return the plant ids *username* currently has access to."""
        return await self._store.list_keys(access_scope(username))

    async def update(
        self,
        username: str,
        plant_ids: Iterable[str],
        granted_by: str | None = None,
    ) -> ApplyReport:
        """Grant exactly *plant_ids* to *username*.

        Plants already granted keep their original ``createdAt`` and
        ``grantedBy``; plants no longer selected are revoked. An empty
        selection revokes all.

        Args:
            username: User whose access is updated.
            plant_ids: Desired set of plant ids.
            granted_by: Administrator recorded on newly added grants.

        Returns:
            ApplyReport: Per-plant outcome of the grant/revoke operations.
        """
        scope = access_scope(username)

        async def grant(plant_id: str) -> None:
            await self._store.upsert(
                scope,
                plant_id,
                {
                    "username": username,
                    "plantId": plant_id,
                    "createdAt": self._clock().isoformat(),
                    "grantedBy": granted_by,
                },
            )

        async def revoke(plant_id: str) -> None:
            await self._store.delete(scope, plant_id)

        report = await self._reconciler.reconcile(
            desired=set(plant_ids),
            read_current=lambda: self._store.list_keys(scope),
            add_op=grant,
            remove_op=revoke,
        )
        logger.info("Access update for user %s: %s", username, report.summary())
        return report
