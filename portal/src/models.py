"""
Value types shared by the aggregation, benchmark, and reconciliation services.

Measurement types keep raw values exactly as they arrived from the plant API
(strings, numbers, or None); parsing and unit conversion happen in the
aggregation service so that a single bad point never breaks series
construction. Rollup, benchmark, and plan types are immutable once built.

CHANGELOG:
- 2026-10-07: Add skipped counters to RollupResult and ApplyReport (STORY-104)
- 2026-10-05: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

K = TypeVar("K", bound=Hashable)


class Resolution(str, Enum):
    """Reporting period of a measurement series."""

    DAY = "day"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class MeasurementPoint:
    """A single raw plant reading.

    Attributes:
        timestamp: ISO-8601 string or datetime as delivered by the source.
        pv_generation: PV generation in watts; may be a numeric string,
            a number, or missing.
        total_generation: Total generation in watts, same raw form.
    """

    timestamp: str | datetime | None
    pv_generation: Any = None
    total_generation: Any = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> MeasurementPoint:
        """Build a point from one entry of the plant API ``set`` list."""
        return cls(
            timestamp=row.get("time"),
            pv_generation=row.get("pvGeneration"),
            total_generation=row.get("totalGeneration"),
        )


@dataclass(frozen=True)
class MeasurementSeries:
    """Chronologically ordered readings for one reporting period.

    Duplicate timestamps are kept; each point contributes independently.
    """

    resolution: Resolution
    points: tuple[MeasurementPoint, ...] = ()

    @classmethod
    def from_set(
        cls,
        resolution: Resolution | str,
        rows: Iterable[Mapping[str, Any]],
    ) -> MeasurementSeries:
        """Build a series from the plant API ``set`` list."""
        return cls(
            resolution=Resolution(resolution),
            points=tuple(MeasurementPoint.from_row(row) for row in rows),
        )

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class Bucket:
    """One aggregated unit of a rollup (an hour, a day, or a month).

    Attributes:
        label: Display label of the bucket ("9 AM", "14", "Mar").
        value: Summed generation in kWh.
        source_count: Number of points that contributed to the bucket.
    """

    label: str
    value: float
    source_count: int


@dataclass(frozen=True)
class RollupResult:
    """Ordered buckets plus their total.

    Attributes:
        buckets: Buckets in first-occurrence order of their labels.
        total: Float sum of all bucket values in kWh.
        skipped: Points dropped because their timestamp could not be parsed.
    """

    buckets: tuple[Bucket, ...] = ()
    total: float = 0.0
    skipped: int = 0

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable representation."""
        return {
            "buckets": [
                {
                    "label": b.label,
                    "value": b.value,
                    "source_count": b.source_count,
                }
                for b in self.buckets
            ],
            "total": self.total,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class BenchmarkEntry:
    """Expected generation of a site for one calendar month.

    ``daily_benchmark_kwh`` is always derived from the monthly value and the
    fixed days-in-month table; it is never stored independently.
    """

    site_id: str
    month_index: int
    expected_generation_kwh: float
    days_in_month: int
    daily_benchmark_kwh: float

    def as_dict(self) -> dict[str, Any]:
        """Return the wire form used in stored benchmark documents."""
        return {
            "expectedGeneration": self.expected_generation_kwh,
            "daysInMonth": self.days_in_month,
            "dailyBenchmark": self.daily_benchmark_kwh,
        }


@dataclass(frozen=True)
class ReconcilePlan(Generic[K]):
    """Keys to add and keys to remove to reach a desired membership set.

    Invariants: ``to_add`` and ``to_remove`` are disjoint, ``to_add`` holds
    no currently persisted key, and ``to_remove`` is a subset of the
    persisted keys.
    """

    to_add: frozenset[K] = frozenset()
    to_remove: frozenset[K] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass
class ApplyReport(Generic[K]):
    """Per-key outcome of applying a ReconcilePlan.

    Attributes:
        succeeded_adds: Keys whose add operation completed.
        failed_adds: Keys whose add operation raised, mapped to the error.
        succeeded_removes: Keys whose remove operation completed.
        failed_removes: Keys whose remove operation raised, mapped to the error.
        skipped: Keys never attempted because the apply was cancelled.
    """

    succeeded_adds: set[K] = field(default_factory=set)
    failed_adds: dict[K, Exception] = field(default_factory=dict)
    succeeded_removes: set[K] = field(default_factory=set)
    failed_removes: dict[K, Exception] = field(default_factory=dict)
    skipped: set[K] = field(default_factory=set)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_adds or self.failed_removes)

    @property
    def is_complete(self) -> bool:
        """True when every planned key was attempted and succeeded."""
        return not self.has_failures and not self.skipped

    def summary(self) -> str:
        """Return a one-line operator-facing summary."""
        attempted = (
            len(self.succeeded_adds)
            + len(self.failed_adds)
            + len(self.succeeded_removes)
            + len(self.failed_removes)
        )
        failed = len(self.failed_adds) + len(self.failed_removes)
        text = f"{attempted - failed} of {attempted} changes applied"
        if failed:
            text += f"; {failed} failed"
        if self.skipped:
            text += f"; {len(self.skipped)} skipped"
        return text
