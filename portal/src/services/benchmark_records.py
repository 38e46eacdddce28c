"""
Benchmark record persistence and site-level reconciliation.

Each site with benchmarks has one document under the ``benchmarks`` scope:

    {"siteId": ..., "siteName": ..., "monthly": {"1": kWh, ...},
     "daily": {"1": {"expectedGeneration", "daysInMonth", "dailyBenchmark"}}}

Saving a site's benchmarks overwrites the whole document; months are never
diffed. Only site membership (does a site have a benchmark record at all)
goes through the StateReconciler, in :meth:`BenchmarkRecordReconciler.sync`.

CHANGELOG:
- 2026-10-09: Add sync for bulk site membership changes (STORY-108)
- 2026-10-08: Initial creation (STORY-108)

TODO:
- None
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from portal.src.models import ApplyReport, BenchmarkEntry
from portal.src.services.benchmarks import recompute
from portal.src.services.reconciler import StateReconciler
from portal.src.stores.base import Document, Store

logger = logging.getLogger(__name__)

BENCHMARK_SCOPE = "benchmarks"


@dataclass(frozen=True)
class SiteBenchmarks:
    """A site's name and its monthly expected generation in kWh."""

    site_name: str
    monthly: Mapping[int | str, float] = field(default_factory=dict)


@dataclass
class BenchmarkSyncResult:
    """Outcome of a site-level benchmark sync.

    Attributes:
        membership: Adds/removes of whole site records.
        updated: Retained sites whose monthly values were overwritten.
        failed_updates: Retained sites whose overwrite raised.
    """

    membership: ApplyReport
    updated: set[str] = field(default_factory=set)
    failed_updates: dict[str, Exception] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return self.membership.has_failures or bool(self.failed_updates)


def build_document(
    site_id: str,
    site_name: str,
    entries: Mapping[int, BenchmarkEntry],
) -> Document:
    """Build the stored benchmark document from derived entries."""
    months = sorted(entries)
    return {
        "siteId": site_id,
        "siteName": site_name,
        "monthly": {str(m): entries[m].expected_generation_kwh for m in months},
        "daily": {str(m): entries[m].as_dict() for m in months},
    }


class BenchmarkRecordReconciler:
    """Reads and writes per-site benchmark documents.

    Args:
        store: Document store holding benchmark records.
        reconciler: Reconciler used for site membership changes.
    """

    def __init__(self, store: Store, reconciler: StateReconciler) -> None:
        self._store = store
        self._reconciler = reconciler

    # ------------------------------------------------------------------
    # Single-site operations
    # ------------------------------------------------------------------

    async def save(
        self,
        site_id: str,
        site_name: str,
        monthly: Mapping[int | str, float],
    ) -> dict[int, BenchmarkEntry]:
        """Overwrite a site's benchmark record with freshly derived entries.

        Raises:
            InvalidBenchmarkError: If a month key is outside 1..12 or a value
                is not a finite number. Nothing is written in that case.
            StoreError: If the store write fails.
        """
        entries = recompute(site_id, monthly)
        await self._store.upsert(
            BENCHMARK_SCOPE, site_id, build_document(site_id, site_name, entries)
        )
        logger.info("Saved %d monthly benchmarks for site %s", len(entries), site_id)
        return entries

    async def delete(self, site_id: str) -> None:
        """Delete a site's benchmark record (no-op if absent)."""
        await self._store.delete(BENCHMARK_SCOPE, site_id)

    async def get(self, site_id: str) -> Document | None:
        """Return the stored benchmark document for a site, or None."""
        return await self._store.get(BENCHMARK_SCOPE, site_id)

    async def entries(self, site_id: str) -> dict[int, BenchmarkEntry]:
        """Return the site's entries, re-derived from its stored monthly map."""
        doc = await self.get(site_id)
        if doc is None:
            return {}
        return recompute(site_id, doc.get("monthly", {}))

    async def list_sites(self) -> list[Document]:
        """Return every stored benchmark document, ordered by site name."""
        site_ids = await self._store.list_keys(BENCHMARK_SCOPE)
        docs = await asyncio.gather(*(self.get(site_id) for site_id in site_ids))
        present = [doc for doc in docs if doc is not None]
        return sorted(present, key=lambda d: (d.get("siteName", ""), d["siteId"]))

    # ------------------------------------------------------------------
    # Bulk sync
    # ------------------------------------------------------------------

    async def sync(self, desired: Mapping[str, SiteBenchmarks]) -> BenchmarkSyncResult:
        """Make the stored site records match *desired*.

        Sites missing from the store are created, stored sites absent from
        *desired* are deleted, and retained sites whose name or monthly
        values changed are overwritten wholesale.

        Raises:
            InvalidBenchmarkError: If any desired site has an invalid month
                key or a non-finite value. Validation happens before any
                write.
        """
        documents = {
            site_id: build_document(
                site_id, site.site_name, recompute(site_id, site.monthly)
            )
            for site_id, site in desired.items()
        }

        async def add(site_id: str) -> None:
            await self._store.upsert(BENCHMARK_SCOPE, site_id, documents[site_id])

        async def remove(site_id: str) -> None:
            await self._store.delete(BENCHMARK_SCOPE, site_id)

        current = await self._store.list_keys(BENCHMARK_SCOPE)
        membership = await self._reconciler.reconcile(
            desired=documents.keys(),
            read_current=_constant(current),
            add_op=add,
            remove_op=remove,
        )
        result = BenchmarkSyncResult(membership=membership)

        for site_id in sorted(current & documents.keys()):
            try:
                stored = await self.get(site_id)
                if stored == documents[site_id]:
                    continue
                await add(site_id)
            except Exception as exc:
                logger.warning(
                    "Benchmark overwrite failed for site %s", site_id, exc_info=True
                )
                result.failed_updates[site_id] = exc
            else:
                result.updated.add(site_id)

        logger.info(
            "Benchmark sync: %s; %d overwritten, %d overwrite failures",
            membership.summary(),
            len(result.updated),
            len(result.failed_updates),
        )
        return result


def _constant(value: set[str]):
    """Wrap an already-read key set as a read_current coroutine function."""

    async def _read() -> set[str]:
        return value

    return _read
