"""
GET /health: liveness plus a store round trip.

Lists the benchmark scope on the configured store so a dead SQLite file or
unreachable Redis shows up as ``degraded`` with HTTP 503. No authentication
is required.

CHANGELOG:
- 2026-10-12: Round-trip the document store, report its backing (STORY-113)
- 2026-10-05: Initial creation (STORY-101)

TODO:
- None
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from portal.src.services.benchmark_records import BENCHMARK_SCOPE
from portal.src.stores.base import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    backend = request.app.state.settings.store_backend
    try:
        await request.app.state.store.list_keys(BENCHMARK_SCOPE)
    except StoreError as exc:
        logger.warning("Health check: %s store unavailable: %s", backend, exc)
        return JSONResponse(
            status_code=503, content={"status": "degraded", "store": backend}
        )
    return JSONResponse(content={"status": "ok", "store": backend})
