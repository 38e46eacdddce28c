"""
Benchmark endpoints: list, read, save, delete, bulk sync, and CSV export.

Saving a site replaces its monthly benchmarks wholesale and recomputes the
daily values. The bulk PUT /v1/benchmarks reconciles which sites have a
benchmark record at all. Invalid month keys are rejected with HTTP 422.

CHANGELOG:
- 2026-10-12: Use ResourceLocks.hold, log sync actor (STORY-113)
- 2026-10-10: Add CSV export (STORY-110)
- 2026-10-09: Add bulk sync (STORY-108)
- 2026-10-08: Initial creation (STORY-111)

TODO:
- None
"""

import logging

from fastapi import APIRouter, HTTPException, Response

from portal.src.api.deps import Admin, BenchmarkService, Locks
from portal.src.api.schemas import (
    BenchmarkSyncIn,
    BenchmarkSyncOut,
    KeyFailureOut,
    ReconcileReportOut,
    SiteBenchmarksIn,
)
from portal.src.services.benchmark_records import SiteBenchmarks
from portal.src.services.export import benchmarks_to_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["benchmarks"])

# All benchmark writes share one lock: sync touches every site record.
_BENCHMARKS_LOCK = ("benchmarks",)


@router.get("/benchmarks")
async def list_benchmarks(admin: Admin, benchmarks: BenchmarkService) -> dict:
    """Return every stored site benchmark document."""
    return {"benchmarks": await benchmarks.list_sites()}


@router.put("/benchmarks", response_model=BenchmarkSyncOut)
async def sync_benchmarks(
    body: BenchmarkSyncIn,
    response: Response,
    admin: Admin,
    benchmarks: BenchmarkService,
    locks: Locks,
) -> BenchmarkSyncOut:
    """Make the stored set of benchmarked sites equal ``body.sites``."""
    desired = {
        site_id: SiteBenchmarks(site_name=site.site_name, monthly=site.monthly)
        for site_id, site in body.sites.items()
    }
    async with locks.hold(_BENCHMARKS_LOCK):
        result = await benchmarks.sync(desired)

    logger.info(
        "Admin %s synced benchmark sites: %s", admin, result.membership.summary()
    )
    if result.has_failures:
        response.status_code = 207
    return BenchmarkSyncOut(
        membership=ReconcileReportOut.from_report(result.membership),
        updated=sorted(result.updated),
        failed_updates=[
            KeyFailureOut(key=site_id, operation="update", error=str(exc))
            for site_id, exc in sorted(result.failed_updates.items())
        ],
    )


@router.get("/benchmarks/export.csv")
async def export_benchmarks(admin: Admin, benchmarks: BenchmarkService) -> Response:
    """Download all monthly benchmarks as a Month x Site CSV table."""
    csv_text = benchmarks_to_csv(await benchmarks.list_sites())
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="solar-benchmarks.csv"'},
    )


@router.get("/benchmarks/{site_id}")
async def get_benchmark(
    site_id: str, admin: Admin, benchmarks: BenchmarkService
) -> dict:
    """Return one site's benchmark document.

    Raises:
        HTTPException: 404 if the site has no benchmark record.
    """
    doc = await benchmarks.get(site_id)
    if doc is None:
        raise HTTPException(
            status_code=404,
            detail=f"No benchmarks found for site '{site_id}'.",
        )
    return doc


@router.put("/benchmarks/{site_id}")
async def save_benchmark(
    site_id: str,
    body: SiteBenchmarksIn,
    admin: Admin,
    benchmarks: BenchmarkService,
    locks: Locks,
) -> dict:
    """Overwrite one site's monthly benchmarks and return the stored document."""
    async with locks.hold(_BENCHMARKS_LOCK):
        await benchmarks.save(site_id, body.site_name, body.monthly)
        doc = await benchmarks.get(site_id)
    logger.info("Admin %s saved benchmarks for site %s", admin, site_id)
    return doc or {}


@router.delete("/benchmarks/{site_id}", status_code=204)
async def delete_benchmark(
    site_id: str,
    admin: Admin,
    benchmarks: BenchmarkService,
    locks: Locks,
) -> Response:
    """Delete a site's benchmark record. Deleting a missing site is a no-op."""
    async with locks.hold(_BENCHMARKS_LOCK):
        await benchmarks.delete(site_id)
    logger.info("Admin %s deleted benchmarks for site %s", admin, site_id)
    return Response(status_code=204)
