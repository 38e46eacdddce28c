"""
Generic set reconciliation: plan and apply add/remove operations.

Moves a persisted membership set to a desired set with the fewest store
writes. ``plan`` is a pure set difference. ``StateReconciler.apply`` runs
the plan in two phases: every removal finishes before the first addition
starts. Within a phase, keys are independent and are dispatched
concurrently, bounded by an ``asyncio.Semaphore``.

Per-key failures are recorded in the ApplyReport and never abort sibling
operations. Completed operations are not rolled back. Store operations must
be idempotent (upsert / delete-if-exists) so a partially applied plan can
simply be reconciled again.

Two reconciliations of the same resource set must not overlap; callers
serialise them, e.g. with :class:`ResourceLocks`.

CHANGELOG:
- 2026-10-12: Evict idle ResourceLocks entries (STORY-113)
- 2026-10-08: Add cancel_event support and skipped keys (STORY-104)
- 2026-10-07: Replace sequential per-key loop with two-phase bounded apply (STORY-104)
- 2026-10-06: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import (
    AsyncIterator,
    Awaitable,
    Callable,
    Collection,
    Hashable,
    Iterable,
)
from contextlib import asynccontextmanager
from typing import Any

from portal.src.models import ApplyReport, ReconcilePlan

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4

KeyOp = Callable[[Any], Awaitable[object]]


def plan(desired: Iterable[Hashable], current: Iterable[Hashable]) -> ReconcilePlan:
    """Compute the add/remove plan that turns *current* into *desired*.

    Args:
        desired: Target membership set.
        current: Membership set as last read from the store.

    Returns:
        ReconcilePlan: ``to_add = desired - current`` and
        ``to_remove = current - desired``.
    """
    desired_set = frozenset(desired)
    current_set = frozenset(current)
    return ReconcilePlan(
        to_add=desired_set - current_set,
        to_remove=current_set - desired_set,
    )


class StateReconciler:
    """Applies reconcile plans through injected add/remove operations.

    Args:
        concurrency: Maximum number of store operations in flight within
            one phase. Must be >= 1.

    Raises:
        ValueError: If *concurrency* is less than 1.

    Usage::

        reconciler = StateReconciler(concurrency=4)
        report = await reconciler.reconcile(
            desired={"plant-1", "plant-2"},
            read_current=lambda: store.list_keys("access:alice"),
            add_op=grant,
            remove_op=revoke,
        )
    """

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._concurrency = concurrency

    @property
    def concurrency(self) -> int:
        return self._concurrency

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def apply(
        self,
        reconcile_plan: ReconcilePlan,
        add_op: KeyOp,
        remove_op: KeyOp,
        cancel_event: asyncio.Event | None = None,
    ) -> ApplyReport:
        """Apply a plan: all removals first, then all additions.

        Once *cancel_event* is set, operations that have not started yet are
        recorded as skipped; operations already in flight run to completion.

        Args:
            reconcile_plan: Plan produced by :func:`plan`.
            add_op: Coroutine function adding one key to the store.
            remove_op: Coroutine function removing one key from the store.
            cancel_event: Optional event that stops further dispatch.

        Returns:
            ApplyReport: Per-key successes, failures, and skipped keys.
        """
        report = ApplyReport()
        if reconcile_plan.is_empty:
            return report

        await self._run_phase(
            "remove",
            reconcile_plan.to_remove,
            remove_op,
            report.succeeded_removes,
            report.failed_removes,
            report,
            cancel_event,
        )
        await self._run_phase(
            "add",
            reconcile_plan.to_add,
            add_op,
            report.succeeded_adds,
            report.failed_adds,
            report,
            cancel_event,
        )
        return report

    async def reconcile(
        self,
        desired: Iterable[Hashable],
        read_current: Callable[[], Awaitable[Iterable[Hashable]]],
        add_op: KeyOp,
        remove_op: KeyOp,
        cancel_event: asyncio.Event | None = None,
    ) -> ApplyReport:
        """Read current state, plan against *desired*, and apply.

        An exception from *read_current* propagates: without a current
        state there is no plan, and nothing has been written.
        """
        current = await read_current()
        reconcile_plan = plan(desired, current)

        if cancel_event is not None and cancel_event.is_set():
            logger.info("Reconcile cancelled before apply, plan discarded")
            report = ApplyReport()
            report.skipped.update(reconcile_plan.to_add | reconcile_plan.to_remove)
            return report

        report = await self.apply(reconcile_plan, add_op, remove_op, cancel_event)
        logger.info(
            "Reconcile finished: +%d -%d planned, %s",
            len(reconcile_plan.to_add),
            len(reconcile_plan.to_remove),
            report.summary(),
        )
        return report

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run_phase(
        self,
        phase: str,
        keys: Collection[Hashable],
        op: KeyOp,
        succeeded: set,
        failed: dict,
        report: ApplyReport,
        cancel_event: asyncio.Event | None,
    ) -> None:
        """Run *op* for every key with bounded concurrency."""
        if not keys:
            return
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _one(key: Hashable) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    report.skipped.add(key)
                    return
                try:
                    await op(key)
                except Exception as exc:
                    logger.warning(
                        "Reconcile %s failed for key %r",
                        phase,
                        key,
                        exc_info=True,
                    )
                    failed[key] = exc
                else:
                    succeeded.add(key)

        await asyncio.gather(*(_one(key) for key in keys))


class ResourceLocks:
    """Registry of per-resource asyncio locks.

    Reconciliations of one logical resource (a username, a site set) must
    run one at a time; different resources proceed in parallel. A lock is
    dropped from the registry once no task holds or waits for it, so the
    registry only ever contains resources with work in progress.

    Usage::

        async with locks.hold(("access", username)):
            await access.update(username, plant_ids)
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, resource: Hashable) -> bool:
        return resource in self._locks

    @asynccontextmanager
    async def hold(self, resource: Hashable) -> AsyncIterator[None]:
        """Hold the lock guarding *resource* for the duration of the block."""
        lock = self._locks.setdefault(resource, asyncio.Lock())
        self._users[resource] = self._users.get(resource, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[resource] -= 1
            if not self._users[resource]:
                del self._users[resource]
                del self._locks[resource]
