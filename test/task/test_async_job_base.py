import asyncio

import pytest

from core.task.async_job_base import AsyncRecurringJob


class CountingJob(AsyncRecurringJob):
    def __init__(self, fail_first: bool = False):
        super().__init__(interval_seconds=0)
        self.calls = 0
        self.fail_first = fail_first
        self.reached = asyncio.Event()

    async def run_once(self) -> None:
        self.calls += 1
        if self.fail_first and self.calls == 1:
            raise RuntimeError("first run fails")
        if self.calls >= 3:
            self.reached.set()


@pytest.mark.asyncio
async def test_job_keeps_running_after_exception():
    job = CountingJob(fail_first=True)

    job.start()
    await asyncio.wait_for(job.reached.wait(), timeout=1.0)
    await job.stop()

    assert job.calls >= 3
    assert job.is_running is False


@pytest.mark.asyncio
async def test_start_twice_returns_same_task():
    job = CountingJob()

    first = job.start()
    second = job.start()
    await job.stop()

    assert first is second


@pytest.mark.asyncio
async def test_stop_without_start_is_safe():
    job = CountingJob()

    await job.stop()

    assert job.is_running is False
    assert job.name == "CountingJob"
