"""
GET/PUT /v1/users/{username}/plants endpoints for plant access grants.

PUT takes the administrator's full plant selection for a user and applies
only the difference against the stored grants. Concurrent updates for the
same user are serialised; a partial failure is reported with HTTP 207 so the
operator can retry.

CHANGELOG:
- 2026-10-12: Use ResourceLocks.hold, record grantedBy (STORY-113)
- 2026-10-08: Initial creation (STORY-111)

TODO:
- None
"""

import logging

from fastapi import APIRouter, Response

from portal.src.api.deps import AccessService, Admin, Locks
from portal.src.api.schemas import AccessOut, AccessUpdateIn, ReconcileReportOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["access"])


@router.get("/users/{username}/plants", response_model=AccessOut)
async def get_user_plants(
    username: str,
    admin: Admin,
    access: AccessService,
) -> AccessOut:
    """Return the plants a user currently has access to."""
    plant_ids = await access.list_plants(username)
    return AccessOut(username=username, plant_ids=sorted(plant_ids))


@router.put("/users/{username}/plants", response_model=ReconcileReportOut)
async def update_user_plants(
    username: str,
    body: AccessUpdateIn,
    response: Response,
    admin: Admin,
    access: AccessService,
    locks: Locks,
) -> ReconcileReportOut:
    """Reconcile a user's grants to exactly ``body.plant_ids``.

    Returns:
        ReconcileReportOut: Per-plant outcome. Status 207 when any grant or
        revoke failed, 200 otherwise.
    """
    async with locks.hold(("access", username)):
        report = await access.update(
            username, body.plant_ids, granted_by=admin.username
        )

    logger.info("Admin %s updated access for %s: %s", admin, username, report.summary())
    if report.has_failures:
        response.status_code = 207
    return ReconcileReportOut.from_report(report)
