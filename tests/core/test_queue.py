import asyncio
import logging

import pytest

from manual_sorting.core.queue import OperationQueue


@pytest.mark.asyncio
async def test_tasks_run_one_at_a_time_in_fifo_order():
    events = []
    queue = OperationQueue()

    def make(label, delay):
        async def task():
            events.append(f"start {label}")
            await asyncio.sleep(delay)
            events.append(f"end {label}")
            return label
        return task

    results = await asyncio.gather(
        queue.enqueue(make("a", 0.02)),
        queue.enqueue(make("b", 0)),
        queue.enqueue(make("c", 0.01)),
    )

    assert results == ["a", "b", "c"]
    assert events == ["start a", "end a", "start b", "end b", "start c", "end c"]


@pytest.mark.asyncio
async def test_concurrent_producers_never_overlap():
    active = 0
    peak = 0
    order = []
    queue = OperationQueue()

    async def task(label):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0)
        order.append(label)
        active -= 1

    async def producer(name):
        for i in range(5):
            queue.enqueue(lambda label=f"{name}{i}": task(label))
            await asyncio.sleep(0)

    await asyncio.gather(producer("x"), producer("y"), producer("z"))
    await queue.drain()

    assert peak == 1
    assert len(order) == 15
    assert queue.pending == 0
    # each producer's own tasks stay in its enqueue order
    for name in "xyz":
        assert [o for o in order if o.startswith(name)] == [f"{name}{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_cancelling_a_waiting_caller_keeps_tasks_serialized():
    active = 0
    peak = 0
    finished = []
    queue = OperationQueue()

    def make(label):
        async def task():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.05)
            finished.append(label)
            active -= 1
            return label
        return task

    first = queue.enqueue(make("a"))
    second = queue.enqueue(make("b"))
    third = queue.enqueue(make("c"))
    await asyncio.sleep(0.01)
    second.cancel()
    await queue.drain()

    assert peak == 1
    # the cancelled caller stopped waiting, the task itself still ran in turn
    assert finished == ["a", "b", "c"]
    assert second.cancelled()
    assert await first == "a"
    assert await third == "c"


@pytest.mark.asyncio
async def test_wait_for_timeout_does_not_cancel_running_task():
    queue = OperationQueue()
    log = []

    async def slow():
        await asyncio.sleep(0.05)
        log.append("slow done")

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(queue.enqueue(slow), timeout=0.01)
    follow_up = queue.enqueue(lambda: log.append("next"))
    await follow_up

    assert log == ["slow done", "next"]


@pytest.mark.asyncio
async def test_failed_task_does_not_block_the_next_one(caplog):
    queue = OperationQueue()

    async def boom():
        raise RuntimeError("persistence failed")

    with caplog.at_level(logging.ERROR, logger="manual_sorting.core.queue"):
        failing = queue.enqueue(boom)
        after = queue.enqueue(lambda: "still running")
        with pytest.raises(RuntimeError):
            await failing
        assert await after == "still running"

    assert "failed" in caplog.text


@pytest.mark.asyncio
async def test_fire_and_forget_failure_is_logged_not_raised(caplog):
    queue = OperationQueue()

    def sync_boom():
        raise ValueError("bad task")

    with caplog.at_level(logging.ERROR, logger="manual_sorting.core.queue"):
        queue.enqueue(sync_boom, name="sync_boom")
        await queue.drain()
        assert await queue.enqueue(lambda: 42) == 42

    assert "sync_boom failed" in caplog.text


@pytest.mark.asyncio
async def test_task_enqueued_from_inside_a_task_runs_afterwards():
    order = []
    queue = OperationQueue()

    async def outer():
        order.append("outer start")
        queue.enqueue(lambda: order.append("follow-up"))
        await asyncio.sleep(0)
        order.append("outer end")

    queue.enqueue(outer)
    queue.enqueue(lambda: order.append("second"))
    await queue.drain()

    assert order == ["outer start", "outer end", "second", "follow-up"]


@pytest.mark.asyncio
async def test_slow_task_warning(caplog):
    queue = OperationQueue(slow_task_warning_seconds=0.01)

    with caplog.at_level(logging.WARNING, logger="manual_sorting.core.queue"):
        await queue.enqueue(lambda: asyncio.sleep(0.05), name="slow_save")

    assert "slow_save still running" in caplog.text


@pytest.mark.asyncio
async def test_pending_counts_unsettled_tasks():
    queue = OperationQueue()
    gate = asyncio.Event()
    queue.enqueue(gate.wait)
    queue.enqueue(lambda: None)

    assert queue.pending == 2

    gate.set()
    await queue.drain()

    assert queue.pending == 0
