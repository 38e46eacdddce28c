"""
Benchmark derivation: daily expected generation from monthly targets.

A site's benchmark is entered as expected kWh per calendar month. The daily
benchmark is the monthly value spread evenly over the days of that month,
using a fixed days-in-month table. February is always 28 days: stored
benchmarks were derived with this table, so it must not change without a
migration of existing records.

All functions are pure and perform no I/O.

CHANGELOG:
- 2026-10-12: Reject non-finite expected generation (STORY-113)
- 2026-10-10: Add assess_performance for underperformance flags (STORY-109)
- 2026-10-06: Initial creation (STORY-102)

TODO:
- None
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass

from portal.src.models import BenchmarkEntry

DAYS_IN_MONTH: tuple[int, ...] = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

DEFAULT_UNDERPERFORMANCE_THRESHOLD = 0.8


class InvalidBenchmarkError(ValueError):
    """A monthly benchmark entry cannot be used to derive daily values."""


class InvalidMonthError(InvalidBenchmarkError):
    """Raised when a month index is not an integer in 1..12."""


def _month_index(value: object) -> int:
    """Coerce a month key (int or numeric string) and validate its range."""
    if isinstance(value, bool):
        raise InvalidMonthError(f"Month index must be 1..12, got {value!r}")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidMonthError(
                f"Month index must be 1..12, got {value!r}"
            ) from None
    if not isinstance(value, int) or not 1 <= value <= 12:
        raise InvalidMonthError(f"Month index must be 1..12, got {value!r}")
    return value


def _expected_kwh(month: int, value: object) -> float:
    """Coerce a monthly expected generation to a finite float."""
    try:
        kwh = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidBenchmarkError(
            f"Expected generation for month {month} must be a number, got {value!r}"
        ) from None
    if not math.isfinite(kwh):
        raise InvalidBenchmarkError(
            f"Expected generation for month {month} must be finite, got {value!r}"
        )
    return kwh


def days_in_month(month_index: int) -> int:
    """Return the table value for a 1-based month (no leap-year adjustment)."""
    return DAYS_IN_MONTH[_month_index(month_index) - 1]


def daily_benchmark(expected_generation_kwh: float, month_index: int) -> float:
    """Spread a monthly expected generation evenly over the month's days.

    Args:
        expected_generation_kwh: Expected generation for the whole month.
        month_index: Calendar month, 1 = January.

    Returns:
        float: Expected generation per day in kWh.

    Raises:
        InvalidMonthError: If *month_index* is outside 1..12.
    """
    return expected_generation_kwh / days_in_month(month_index)


def recompute(
    site_id: str,
    monthly: Mapping[int | str, float],
) -> dict[int, BenchmarkEntry]:
    """Derive a BenchmarkEntry for every month present in *monthly*.

    Month keys may be ints or numeric strings (the JSON document form).
    Months absent from *monthly* get no entry.

    Raises:
        InvalidMonthError: If any key is not a month in 1..12.
        InvalidBenchmarkError: If any value is not a finite number.
    """
    entries: dict[int, BenchmarkEntry] = {}
    for key, expected in monthly.items():
        month = _month_index(key)
        expected_kwh = _expected_kwh(month, expected)
        entries[month] = BenchmarkEntry(
            site_id=site_id,
            month_index=month,
            expected_generation_kwh=expected_kwh,
            days_in_month=DAYS_IN_MONTH[month - 1],
            daily_benchmark_kwh=daily_benchmark(expected_kwh, month),
        )
    return entries


# ---------------------------------------------------------------------------
# Performance against benchmark
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PerformanceAssessment:
    """Actual daily generation compared to the daily benchmark.

    Attributes:
        ratio: actual / benchmark, or None when the benchmark is zero.
        underperforming: True when the ratio is below the threshold.
    """

    ratio: float | None
    underperforming: bool


def assess_performance(
    actual_kwh: float,
    entry: BenchmarkEntry,
    threshold: float = DEFAULT_UNDERPERFORMANCE_THRESHOLD,
) -> PerformanceAssessment:
    """Compare one day's generation against the site's daily benchmark."""
    if entry.daily_benchmark_kwh == 0:
        return PerformanceAssessment(ratio=None, underperforming=False)
    ratio = actual_kwh / entry.daily_benchmark_kwh
    return PerformanceAssessment(ratio=ratio, underperforming=ratio < threshold)
