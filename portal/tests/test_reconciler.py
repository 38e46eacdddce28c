"""
Unit tests for the generic state reconciler.

Tests verify:
- plan() is the set difference in both directions.
- Plans are disjoint and reach the desired set, for randomized set pairs.
- apply() issues every removal before any addition.
- Per-key failures are recorded without aborting siblings.
- Concurrency within a phase is bounded.
- A cancel event stops further dispatch and records skipped keys.

CHANGELOG:
- 2026-10-12: Add ResourceLocks eviction tests (STORY-113)
- 2026-10-08: Add cancellation tests (STORY-104)
- 2026-10-06: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import random

import pytest

from portal.src.models import ReconcilePlan
from portal.src.services.reconciler import ResourceLocks, StateReconciler, plan

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RecordingOps:
    """Add/remove operations that log calls and can fail for chosen keys."""

    def __init__(
        self,
        fail_adds: set[str] | None = None,
        fail_removes: set[str] | None = None,
    ) -> None:
        self.calls: list[tuple[str, str]] = []
        self._fail_adds = fail_adds or set()
        self._fail_removes = fail_removes or set()

    async def add(self, key: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(("add", key))
        if key in self._fail_adds:
            raise RuntimeError(f"add {key} rejected")

    async def remove(self, key: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(("remove", key))
        if key in self._fail_removes:
            raise RuntimeError(f"remove {key} rejected")


# ---------------------------------------------------------------------------
# plan()
# ---------------------------------------------------------------------------


class TestPlan:
    """plan() computes the minimal add/remove sets."""

    def test_example_reconcile(self) -> None:
        result = plan({"A", "B", "C"}, {"B", "C", "D"})

        assert result.to_add == {"A"}
        assert result.to_remove == {"D"}

    def test_identical_sets_give_empty_plan(self) -> None:
        result = plan({"A", "B"}, {"A", "B"})

        assert result == ReconcilePlan()
        assert result.is_empty

    def test_empty_desired_removes_everything(self) -> None:
        result = plan(set(), {"A", "B"})

        assert result.to_add == frozenset()
        assert result.to_remove == {"A", "B"}

    def test_empty_current_adds_everything(self) -> None:
        result = plan(["A", "B", "A"], [])

        assert result.to_add == {"A", "B"}
        assert result.to_remove == frozenset()

    def test_tuple_keys_use_structural_equality(self) -> None:
        result = plan({("alice", "p1"), ("alice", "p2")}, {("alice", "p1")})

        assert result.to_add == {("alice", "p2")}

    def test_randomized_plan_invariants(self) -> None:
        """Plans are disjoint, well-formed, and reach the desired set."""
        rng = random.Random(20261006)
        universe = [f"k{i}" for i in range(12)]

        for _ in range(300):
            desired = {k for k in universe if rng.random() < 0.5}
            current = {k for k in universe if rng.random() < 0.5}
            result = plan(desired, current)

            assert result.to_add == desired - current
            assert result.to_remove == current - desired
            assert not (result.to_add & result.to_remove)
            assert not (result.to_add & current)
            assert result.to_remove <= current
            assert (current - result.to_remove) | result.to_add == desired


# ---------------------------------------------------------------------------
# apply()
# ---------------------------------------------------------------------------


class TestApply:
    """apply() runs removals before additions and isolates failures."""

    def test_concurrency_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="concurrency"):
            StateReconciler(concurrency=0)

    @pytest.mark.asyncio
    async def test_empty_plan_issues_no_operations(self) -> None:
        ops = RecordingOps()
        report = await StateReconciler().apply(ReconcilePlan(), ops.add, ops.remove)

        assert ops.calls == []
        assert not report.succeeded_adds
        assert not report.succeeded_removes
        assert not report.has_failures
        assert report.is_complete

    @pytest.mark.asyncio
    async def test_removals_complete_before_additions(self) -> None:
        ops = RecordingOps()
        reconcile_plan = plan({"A", "B", "C"}, {"D", "E", "F"})

        report = await StateReconciler(concurrency=3).apply(
            reconcile_plan, ops.add, ops.remove
        )

        kinds = [kind for kind, _ in ops.calls]
        assert kinds == ["remove"] * 3 + ["add"] * 3
        assert report.succeeded_removes == {"D", "E", "F"}
        assert report.succeeded_adds == {"A", "B", "C"}

    @pytest.mark.asyncio
    async def test_untouched_keys_receive_no_operation(self) -> None:
        ops = RecordingOps()
        reconcile_plan = plan({"A", "B"}, {"B", "C"})

        await StateReconciler().apply(reconcile_plan, ops.add, ops.remove)

        assert sorted(ops.calls) == [("add", "A"), ("remove", "C")]

    @pytest.mark.asyncio
    async def test_one_failed_add_does_not_affect_others(self) -> None:
        ops = RecordingOps(fail_adds={"B"})
        reconcile_plan = plan({"A", "B", "C"}, set())

        report = await StateReconciler().apply(reconcile_plan, ops.add, ops.remove)

        assert len(report.succeeded_adds) == 2
        assert len(report.failed_adds) == 1
        assert report.succeeded_adds == {"A", "C"}
        assert isinstance(report.failed_adds["B"], RuntimeError)
        assert report.has_failures

    @pytest.mark.asyncio
    async def test_failed_remove_does_not_block_additions(self) -> None:
        ops = RecordingOps(fail_removes={"D"})
        reconcile_plan = plan({"A"}, {"D", "E"})

        report = await StateReconciler().apply(reconcile_plan, ops.add, ops.remove)

        assert report.failed_removes.keys() == {"D"}
        assert report.succeeded_removes == {"E"}
        assert report.succeeded_adds == {"A"}
        assert report.summary() == "2 of 3 changes applied; 1 failed"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded_within_a_phase(self) -> None:
        in_flight = 0
        peak = 0

        async def add(key: str) -> None:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        async def remove(key: str) -> None:
            raise AssertionError("no removals planned")

        reconcile_plan = plan({f"k{i}" for i in range(6)}, set())
        report = await StateReconciler(concurrency=2).apply(reconcile_plan, add, remove)

        assert peak == 2
        assert len(report.succeeded_adds) == 6


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    """A set cancel event stops dispatch; finished work is kept."""

    @pytest.mark.asyncio
    async def test_cancel_mid_apply_returns_partial_report(self) -> None:
        cancel = asyncio.Event()
        calls: list[str] = []

        async def remove(key: str) -> None:
            calls.append(key)
            cancel.set()

        async def add(key: str) -> None:
            calls.append(key)

        reconcile_plan = plan({"A", "B"}, {"X", "Y", "Z"})
        report = await StateReconciler(concurrency=1).apply(
            reconcile_plan, add, remove, cancel_event=cancel
        )

        assert len(calls) == 1
        assert len(report.succeeded_removes) == 1
        assert report.skipped == ({"X", "Y", "Z"} - report.succeeded_removes) | {
            "A",
            "B",
        }
        assert not report.is_complete
        assert "skipped" in report.summary()

    @pytest.mark.asyncio
    async def test_cancel_before_apply_discards_plan(self) -> None:
        cancel = asyncio.Event()
        cancel.set()
        ops = RecordingOps()

        async def read_current() -> set[str]:
            return {"B"}

        report = await StateReconciler().reconcile(
            {"A"}, read_current, ops.add, ops.remove, cancel_event=cancel
        )

        assert ops.calls == []
        assert report.skipped == {"A", "B"}


# ---------------------------------------------------------------------------
# reconcile()
# ---------------------------------------------------------------------------


class TestReconcile:
    """reconcile() reads current state, plans, and applies."""

    @pytest.mark.asyncio
    async def test_reconcile_applies_difference_against_read_state(self) -> None:
        ops = RecordingOps()

        async def read_current() -> set[str]:
            return {"B", "C", "D"}

        report = await StateReconciler().reconcile(
            {"A", "B", "C"}, read_current, ops.add, ops.remove
        )

        assert report.succeeded_adds == {"A"}
        assert report.succeeded_removes == {"D"}

    @pytest.mark.asyncio
    async def test_read_failure_propagates_without_writes(self) -> None:
        ops = RecordingOps()

        async def read_current() -> set[str]:
            raise ConnectionError("store down")

        with pytest.raises(ConnectionError):
            await StateReconciler().reconcile({"A"}, read_current, ops.add, ops.remove)
        assert ops.calls == []


class TestResourceLocks:
    """Locks serialise one resource and are dropped once idle."""

    @pytest.mark.asyncio
    async def test_same_resource_is_serialised(self) -> None:
        locks = ResourceLocks()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold(("access", "alice")):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_different_resources_run_in_parallel(self) -> None:
        locks = ResourceLocks()
        inside = asyncio.Event()

        async def holder() -> None:
            async with locks.hold(("access", "alice")):
                inside.set()
                await asyncio.sleep(0.01)

        task = asyncio.create_task(holder())
        await inside.wait()
        async with locks.hold(("access", "bob")):
            assert ("access", "alice") in locks
        await task

    @pytest.mark.asyncio
    async def test_idle_locks_are_evicted(self) -> None:
        locks = ResourceLocks()

        for i in range(50):
            async with locks.hold(("access", f"user-{i}")):
                assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_waiter_queued(self) -> None:
        locks = ResourceLocks()
        release = asyncio.Event()

        async def first() -> None:
            async with locks.hold("benchmarks"):
                await release.wait()

        async def second() -> None:
            async with locks.hold("benchmarks"):
                pass

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await asyncio.sleep(0)
        assert "benchmarks" in locks

        release.set()
        await asyncio.gather(*tasks)

        assert "benchmarks" not in locks

    @pytest.mark.asyncio
    async def test_lock_released_when_block_raises(self) -> None:
        locks = ResourceLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold("benchmarks"):
                raise RuntimeError("store down")

        assert len(locks) == 0
