"""
Aggregation service for labelled generation rollups.

Turns a raw plant measurement series into ordered buckets (hour-of-day for a
day series, day-of-month for a month series, month-of-year for a year
series) with kWh totals. The series is consumed in the order given: bucket
order is the first-occurrence order of labels and is never sorted.

Bad input never aborts a rollup. A point whose pvGeneration is missing or
non-numeric contributes 0 kWh; a point whose timestamp cannot be parsed is
skipped and counted in ``RollupResult.skipped``.

CHANGELOG:
- 2026-10-09: Add site timezone conversion and current_power_kw (STORY-107)
- 2026-10-06: Initial creation (STORY-103)

TODO:
- None
"""

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from portal.src.models import (
    Bucket,
    MeasurementPoint,
    MeasurementSeries,
    Resolution,
    RollupResult,
)

logger = logging.getLogger(__name__)

WATTS_PER_KILOWATT = 1000.0

_MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


# ---------------------------------------------------------------------------
# Label functions per resolution
# ---------------------------------------------------------------------------


def _hour_label(ts: datetime) -> str:
    """12-hour clock label, e.g. ``"12 AM"``, ``"9 AM"``, ``"3 PM"``."""
    hour = ts.hour % 12 or 12
    suffix = "AM" if ts.hour < 12 else "PM"
    return f"{hour} {suffix}"


def _day_label(ts: datetime) -> str:
    return str(ts.day)


def _month_label(ts: datetime) -> str:
    return _MONTH_ABBR[ts.month - 1]


LABELLERS: dict[Resolution, Callable[[datetime], str]] = {
    Resolution.DAY: _hour_label,
    Resolution.MONTH: _day_label,
    Resolution.YEAR: _month_label,
}


# ---------------------------------------------------------------------------
# Raw value parsing
# ---------------------------------------------------------------------------


def parse_timestamp(value: Any, tz: tzinfo | None = None) -> datetime | None:
    """Parse a raw measurement timestamp.

    Accepts ``datetime`` objects and ISO-8601 strings (a trailing ``Z`` is
    understood as UTC). Aware timestamps are converted to *tz* when given;
    naive timestamps are taken as wall-clock time and left untouched.

    Args:
        value: Raw timestamp from a MeasurementPoint.
        tz: Optional site timezone.

    Returns:
        datetime | None: The parsed timestamp, or None if unparsable.
    """
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str) and value.strip():
        try:
            ts = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if tz is not None and ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts


def watts_to_kwh(value: Any) -> float:
    """Convert a raw watt reading to kWh, treating non-numeric input as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        watts = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(watts):
        return 0.0
    return watts / WATTS_PER_KILOWATT


def _resolve_tz(tz: tzinfo | str | None) -> tzinfo | None:
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def aggregate(
    series: MeasurementSeries,
    resolution: Resolution | str,
    reference_year: int | None = None,
    tz: tzinfo | str | None = None,
) -> RollupResult:
    """Aggregate a measurement series into labelled kWh buckets.

    For a year rollup, points outside *reference_year* are discarded (the
    current UTC year is used when *reference_year* is None). Day and month
    series are consumed as given; the caller scopes those windows.

    Args:
        series: Raw measurement series, never mutated.
        resolution: Bucket granularity (day, month, year).
        reference_year: Calendar year kept by a year rollup.
        tz: Site timezone (ZoneInfo or IANA name) used for labelling.

    Returns:
        RollupResult: Buckets in first-occurrence order and their total.

    Raises:
        ValueError: If *resolution* is not a known resolution.
        zoneinfo.ZoneInfoNotFoundError: If *tz* names an unknown zone.
    """
    resolution = Resolution(resolution)
    zone = _resolve_tz(tz)
    label_for = LABELLERS[resolution]
    if resolution is Resolution.YEAR and reference_year is None:
        reference_year = datetime.now(tz=UTC).year

    values: dict[str, float] = {}
    counts: dict[str, int] = {}
    skipped = 0

    for point in series.points:
        ts = parse_timestamp(point.timestamp, zone)
        if ts is None:
            skipped += 1
            continue
        if resolution is Resolution.YEAR and ts.year != reference_year:
            continue

        label = label_for(ts)
        # dicts keep insertion order, which is first-occurrence order here
        values[label] = values.get(label, 0.0) + watts_to_kwh(point.pv_generation)
        counts[label] = counts.get(label, 0) + 1

    if skipped:
        logger.warning(
            "Skipped %d of %d %s points with unparsable timestamps",
            skipped,
            len(series.points),
            resolution.value,
        )

    buckets = tuple(
        Bucket(label=label, value=value, source_count=counts[label])
        for label, value in values.items()
    )
    return RollupResult(
        buckets=buckets,
        total=sum((b.value for b in buckets), 0.0),
        skipped=skipped,
    )


def current_power_kw(series: MeasurementSeries) -> float:
    """Return the latest reading of a series in kW (0.0 if unavailable)."""
    if not series.points:
        return 0.0
    latest: MeasurementPoint = series.points[-1]
    return watts_to_kwh(latest.pv_generation)
