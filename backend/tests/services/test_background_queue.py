"""Background Job Queue — retry, drop on full or stopped queue, join semantics."""

import asyncio

from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.services.jobs import submit_job


async def test_job_runs_and_join_waits():
    queue = BackgroundJobQueue(workers=2)
    queue.start()
    seen: list[int] = []

    async def job(value: int):
        await asyncio.sleep(0.01)
        seen.append(value)

    for i in range(5):
        assert queue.submit("collect", job, i)
    await queue.join()
    assert sorted(seen) == [0, 1, 2, 3, 4]
    await queue.stop()


async def test_failing_job_is_retried_then_succeeds():
    queue = BackgroundJobQueue(workers=1, max_attempts=3, retry_delay=0.001)
    queue.start()
    attempts = 0

    async def flaky():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise RuntimeError("transient")

    queue.submit("flaky", flaky)
    await queue.join()
    assert attempts == 3
    await queue.stop()


async def test_job_dropped_after_max_attempts_without_raising():
    queue = BackgroundJobQueue(workers=1, max_attempts=2, retry_delay=0.001)
    queue.start()
    attempts = 0

    async def broken():
        nonlocal attempts
        attempts += 1
        raise RuntimeError("always")

    queue.submit("broken", broken)
    await queue.join()
    assert attempts == 2

    # Worker survives the failure
    done = asyncio.Event()

    async def ok():
        done.set()

    queue.submit("ok", ok)
    await queue.join()
    assert done.is_set()
    await queue.stop()


async def test_submit_before_start_is_rejected():
    queue = BackgroundJobQueue()

    async def job():
        pass

    assert queue.submit("early", job) is False
    assert not queue.running


async def test_submit_to_full_queue_is_rejected():
    queue = BackgroundJobQueue(workers=1, max_size=1)
    queue.start()
    gate = asyncio.Event()

    async def blocker():
        await gate.wait()

    assert queue.submit("first", blocker)
    await asyncio.sleep(0.01)  # worker takes the first job
    assert queue.submit("second", blocker)
    assert queue.submit("third", blocker) is False

    gate.set()
    await queue.join()
    await queue.stop()


async def test_stop_drains_pending_jobs():
    queue = BackgroundJobQueue(workers=1)
    queue.start()
    seen: list[str] = []

    async def job(name: str):
        await asyncio.sleep(0.005)
        seen.append(name)

    queue.submit("a", job, "a")
    queue.submit("b", job, "b")
    await queue.stop()
    assert seen == ["a", "b"]
    assert queue.submit("late", job, "late") is False


def test_submit_job_without_queue_drops():
    async def job():
        pass

    assert submit_job(None, "orphan", job) is False
