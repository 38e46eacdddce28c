"""
Pydantic request and response models shared by the portal routes.

CHANGELOG:
- 2026-10-12: Reject NaN and Infinity monthly values (STORY-113)
- 2026-10-08: Initial creation (STORY-111)

TODO:
- None
"""

from pydantic import BaseModel, Field, FiniteFloat

from portal.src.models import ApplyReport


class KeyFailureOut(BaseModel):
    """A single failed store operation.

    Attributes:
        key: Resource key the operation targeted.
        operation: ``add`` or ``remove``.
        error: Error message raised by the store.
    """

    key: str
    operation: str
    error: str


class ReconcileReportOut(BaseModel):
    """Serialised ApplyReport.

    Attributes:
        added: Keys added successfully.
        removed: Keys removed successfully.
        failed: Operations that raised, one entry per key.
        skipped: Keys never attempted.
        summary: Operator-facing one-line summary.
    """

    added: list[str]
    removed: list[str]
    failed: list[KeyFailureOut]
    skipped: list[str]
    summary: str

    @classmethod
    def from_report(cls, report: ApplyReport) -> "ReconcileReportOut":
        failed = [
            KeyFailureOut(key=str(key), operation="add", error=str(exc))
            for key, exc in report.failed_adds.items()
        ] + [
            KeyFailureOut(key=str(key), operation="remove", error=str(exc))
            for key, exc in report.failed_removes.items()
        ]
        return cls(
            added=sorted(str(k) for k in report.succeeded_adds),
            removed=sorted(str(k) for k in report.succeeded_removes),
            failed=sorted(failed, key=lambda f: (f.operation, f.key)),
            skipped=sorted(str(k) for k in report.skipped),
            summary=report.summary(),
        )


class AccessUpdateIn(BaseModel):
    """Desired plant set for a user."""

    plant_ids: list[str] = Field(default_factory=list)


class AccessOut(BaseModel):
    username: str
    plant_ids: list[str]


class SiteBenchmarksIn(BaseModel):
    """Monthly expected generation for one site, keyed by month "1".."12"."""

    site_name: str
    monthly: dict[str, FiniteFloat] = Field(default_factory=dict)


class BenchmarkSyncIn(BaseModel):
    """Full desired set of benchmarked sites, keyed by site id."""

    sites: dict[str, SiteBenchmarksIn] = Field(default_factory=dict)


class BenchmarkSyncOut(BaseModel):
    membership: ReconcileReportOut
    updated: list[str]
    failed_updates: list[KeyFailureOut]


class BucketOut(BaseModel):
    label: str
    value: float
    source_count: int


class RollupOut(BaseModel):
    """Aggregated generation for one plant and resolution.

    Attributes:
        plant_id: Plant the measurements belong to.
        resolution: day, month, or year.
        reference_year: Year kept by a year rollup, else None.
        buckets: Labelled kWh buckets in chronological first-occurrence order.
        total: Sum of bucket values in kWh.
        skipped: Points dropped for unparsable timestamps.
        current_power_kw: Latest reading, day resolution only.
        day_energy_kwh: Day total divided by DAY_SAMPLES_PER_HOUR, day
            resolution only.
        daily_benchmark_kwh: Benchmark for the current month, when requested.
        performance_ratio: day_energy_kwh / daily benchmark, when available.
        underperforming: Whether the ratio is below the configured threshold.
    """

    plant_id: str
    resolution: str
    reference_year: int | None = None
    buckets: list[BucketOut]
    total: float
    skipped: int
    current_power_kw: float | None = None
    day_energy_kwh: float | None = None
    daily_benchmark_kwh: float | None = None
    performance_ratio: float | None = None
    underperforming: bool | None = None
