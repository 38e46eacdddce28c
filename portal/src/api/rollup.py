"""
GET /v1/plants/{plant_id}/rollup endpoint for generation rollups.

Fetches the plant's raw measurement series for the requested resolution,
aggregates it into labelled kWh buckets in the plant's timezone, and for
day rollups adds the current power reading and the day's energy.

Bucket values are summed power samples in kW, exactly as aggregated; they
equal energy only for a series with one reading per hour. The day's energy
is the day total divided by DAY_SAMPLES_PER_HOUR (4 for the quarter-hour
series the plant API delivers). When a benchmark site is given, that energy
is compared against the site's daily benchmark for the current month.

CHANGELOG:
- 2026-10-12: Compare day energy, not summed samples, to the benchmark (STORY-113)
- 2026-10-10: Add benchmark comparison for day rollups (STORY-109)
- 2026-10-09: Initial creation (STORY-107)

TODO:
- None
"""

import logging
from datetime import UTC, datetime, tzinfo
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, HTTPException, Query

from portal.src.api.deps import Admin, BenchmarkService, Measurements, Settings
from portal.src.api.schemas import BucketOut, RollupOut
from portal.src.models import Resolution
from portal.src.services.aggregation import aggregate, current_power_kw
from portal.src.services.benchmarks import assess_performance

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["rollup"])


def _site_zone(name: str | None) -> tzinfo | None:
    """Resolve a plant timezone name, ignoring unknown zones."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown plant timezone '%s', using timestamps as given", name)
        return None


@router.get("/plants/{plant_id}/rollup", response_model=RollupOut)
async def get_rollup(
    plant_id: str,
    admin: Admin,
    settings: Settings,
    measurements: Measurements,
    benchmarks: BenchmarkService,
    resolution: Annotated[
        Resolution,
        Query(description="Bucket granularity: day, month, or year."),
    ],
    year: Annotated[
        int | None,
        Query(ge=1970, le=9999, description="Calendar year for year rollups."),
    ] = None,
    benchmark_site_id: Annotated[
        str | None,
        Query(description="Benchmark site to compare a day rollup against."),
    ] = None,
) -> RollupOut:
    """Return the aggregated generation rollup of a plant.

    Raises:
        HTTPException: 502 if the measurement API could not be read.
    """
    fetched = await measurements.fetch(plant_id, resolution)
    if not fetched.ok:
        raise HTTPException(
            status_code=502,
            detail=f"Measurements unavailable for plant '{plant_id}': {fetched.error}",
        )

    zone = _site_zone(fetched.timezone)
    if resolution is Resolution.YEAR and year is None:
        year = datetime.now(tz=zone or UTC).year
    rollup = aggregate(fetched.series, resolution, reference_year=year, tz=zone)

    out = RollupOut(
        plant_id=plant_id,
        resolution=resolution.value,
        reference_year=year if resolution is Resolution.YEAR else None,
        buckets=[
            BucketOut(label=b.label, value=b.value, source_count=b.source_count)
            for b in rollup.buckets
        ],
        total=rollup.total,
        skipped=rollup.skipped,
    )

    if resolution is Resolution.DAY:
        out.current_power_kw = current_power_kw(fetched.series)
        out.day_energy_kwh = rollup.total / settings.day_samples_per_hour
        if benchmark_site_id:
            month = datetime.now(tz=zone or UTC).month
            entry = (await benchmarks.entries(benchmark_site_id)).get(month)
            if entry is not None:
                assessment = assess_performance(
                    out.day_energy_kwh, entry, settings.underperformance_threshold
                )
                out.daily_benchmark_kwh = entry.daily_benchmark_kwh
                out.performance_ratio = assessment.ratio
                out.underperforming = assessment.underperforming

    logger.debug(
        "Rollup query: plant_id=%s resolution=%s buckets=%d",
        plant_id,
        resolution.value,
        len(rollup.buckets),
    )
    return out
