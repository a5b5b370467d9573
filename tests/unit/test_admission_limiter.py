"""Unit tests for AdmissionLimiter.

Tests cover:
- Constructor rejects capacities below 1
- run() returns the task's result
- Never more than `capacity` tasks run at once, for several capacities
- Waiters are admitted in arrival order (FIFO)
- A failing task releases its slot and the queue keeps moving
- A waiter cancelled while queued does not leak a slot
- running / waiting properties reflect the current state
"""

from __future__ import annotations

import asyncio

import pytest

from wayback_timeline.archive.limiter import AdmissionLimiter


async def _drain() -> None:
    """Let every ready callback run."""
    for _ in range(5):
        await asyncio.sleep(0)


class TestConstruction:
    def test_default_capacity_is_five(self) -> None:
        assert AdmissionLimiter().capacity == 5

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_rejects_capacity_below_one(self, capacity: int) -> None:
        with pytest.raises(ValueError):
            AdmissionLimiter(capacity)


@pytest.mark.asyncio
class TestRun:
    async def test_returns_task_result(self) -> None:
        limiter = AdmissionLimiter(2)

        async def task() -> str:
            return "done"

        assert await limiter.run(task) == "done"
        assert limiter.running == 0

    @pytest.mark.parametrize("capacity,task_count", [(1, 4), (3, 10), (5, 23)])
    async def test_never_exceeds_capacity(self, capacity: int, task_count: int) -> None:
        limiter = AdmissionLimiter(capacity)
        active = 0
        peak = 0

        async def task() -> None:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.001)
            active -= 1

        await asyncio.gather(*(limiter.run(task) for _ in range(task_count)))

        assert peak == capacity
        assert limiter.running == 0
        assert limiter.waiting == 0

    async def test_waiters_admitted_in_arrival_order(self) -> None:
        limiter = AdmissionLimiter(1)
        gate = asyncio.Event()
        started: list[int] = []

        async def blocker() -> None:
            await gate.wait()

        def make_task(index: int):
            async def task() -> None:
                started.append(index)
            return task

        first = asyncio.create_task(limiter.run(blocker))
        await _drain()

        waiters = []
        for index in range(6):
            waiters.append(asyncio.create_task(limiter.run(make_task(index))))
            await _drain()

        assert limiter.waiting == 6
        gate.set()
        await asyncio.gather(first, *waiters)

        assert started == [0, 1, 2, 3, 4, 5]

    async def test_newcomer_does_not_overtake_queued_waiter(self) -> None:
        limiter = AdmissionLimiter(1)
        gate = asyncio.Event()
        order: list[str] = []

        async def blocker() -> None:
            await gate.wait()
            order.append("blocker")

        def named(name: str):
            async def task() -> None:
                order.append(name)
            return task

        first = asyncio.create_task(limiter.run(blocker))
        await _drain()
        queued = asyncio.create_task(limiter.run(named("queued")))
        await _drain()

        gate.set()
        # Arrives after the release is scheduled but before "queued" resumes.
        late = asyncio.create_task(limiter.run(named("late")))
        await asyncio.gather(first, queued, late)

        assert order == ["blocker", "queued", "late"]

    async def test_failing_task_releases_slot(self) -> None:
        limiter = AdmissionLimiter(1)

        async def boom() -> None:
            raise RuntimeError("snapshot exploded")

        async def ok() -> str:
            return "ok"

        results = await asyncio.gather(
            limiter.run(boom), limiter.run(ok), limiter.run(ok), return_exceptions=True
        )

        assert isinstance(results[0], RuntimeError)
        assert results[1:] == ["ok", "ok"]
        assert limiter.running == 0

    async def test_cancelled_waiter_does_not_leak_slot(self) -> None:
        limiter = AdmissionLimiter(1)
        gate = asyncio.Event()

        async def blocker() -> None:
            await gate.wait()

        async def ok() -> str:
            return "ok"

        first = asyncio.create_task(limiter.run(blocker))
        await _drain()
        doomed = asyncio.create_task(limiter.run(ok))
        await _drain()
        assert limiter.waiting == 1

        doomed.cancel()
        with pytest.raises(asyncio.CancelledError):
            await doomed
        assert limiter.waiting == 0

        gate.set()
        await first
        assert limiter.running == 0
        assert await limiter.run(ok) == "ok"

    async def test_running_counts_held_slots(self) -> None:
        limiter = AdmissionLimiter(2)
        gate = asyncio.Event()

        async def blocker() -> None:
            await gate.wait()

        tasks = [asyncio.create_task(limiter.run(blocker)) for _ in range(3)]
        await _drain()

        assert limiter.running == 2
        assert limiter.waiting == 1

        gate.set()
        await asyncio.gather(*tasks)
        assert limiter.running == 0
