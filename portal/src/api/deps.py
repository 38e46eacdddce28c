"""
FastAPI dependency injection providers.

Services are built once in the application lifespan and stored on
``app.state``; these providers hand them to route handlers via Depends().

CHANGELOG:
- 2026-10-12: Resolve an AdminPrincipal from the token registry (STORY-113)
- 2026-10-08: Initial creation (STORY-111)
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portal.src.auth.bearer import AdminPrincipal, AdminTokens
from portal.src.config import PortalSettings
from portal.src.services.access import AccessGrantReconciler
from portal.src.services.benchmark_records import BenchmarkRecordReconciler
from portal.src.services.measurements import MeasurementClient
from portal.src.services.reconciler import ResourceLocks


_bearer_scheme = HTTPBearer(auto_error=False)


async def require_admin(
    request: Request,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)
    ],
) -> AdminPrincipal:
    """Resolve the calling administrator from the Bearer token.

    Raises:
        HTTPException: 401 if the header is missing, is not a Bearer
            credential, or carries an unknown token.
    """
    tokens: AdminTokens = request.app.state.admin_tokens
    principal = tokens.authenticate(credentials.credentials if credentials else None)
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail="Missing or invalid admin token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def get_settings(request: Request) -> PortalSettings:
    return request.app.state.settings


def get_locks(request: Request) -> ResourceLocks:
    return request.app.state.locks


def get_access_service(request: Request) -> AccessGrantReconciler:
    return request.app.state.access


def get_benchmark_service(request: Request) -> BenchmarkRecordReconciler:
    return request.app.state.benchmarks


def get_measurement_client(request: Request) -> MeasurementClient:
    return request.app.state.measurements


# Type aliases for route handler signatures, e.g.
#   async def my_route(admin: Admin, access: AccessService): ...
Admin = Annotated[AdminPrincipal, Depends(require_admin)]
Settings = Annotated[PortalSettings, Depends(get_settings)]
Locks = Annotated[ResourceLocks, Depends(get_locks)]
AccessService = Annotated[AccessGrantReconciler, Depends(get_access_service)]
BenchmarkService = Annotated[BenchmarkRecordReconciler, Depends(get_benchmark_service)]
Measurements = Annotated[MeasurementClient, Depends(get_measurement_client)]
