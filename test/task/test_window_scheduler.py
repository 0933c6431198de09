import asyncio
from datetime import datetime
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from core.evaluator.reset_window_evaluator import ResetWindowEvaluator
from core.task.window_scheduler import WindowScheduler, WindowTrigger

JAKARTA = ZoneInfo("Asia/Jakarta")


@pytest.fixture
def evaluator(schedule) -> ResetWindowEvaluator:
    return ResetWindowEvaluator(schedule)


def _freeze(evaluator: ResetWindowEvaluator, hour: int, minute: int) -> None:
    evaluator.now = lambda: datetime(2026, 10, 19, hour, minute, 0, tzinfo=JAKARTA)


class TestWindowTrigger:
    @pytest.mark.asyncio
    async def test_tick_inside_window_dispatches_entry_point(self, evaluator):
        entry_point = AsyncMock(return_value=None)
        trigger = WindowTrigger("PrimaryTrigger", evaluator.primary, evaluator, entry_point)
        _freeze(evaluator, 16, 25)

        await trigger.run_once()
        await asyncio.sleep(0)

        entry_point.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tick_outside_window_does_nothing(self, evaluator):
        entry_point = AsyncMock(return_value=None)
        trigger = WindowTrigger("PrimaryTrigger", evaluator.primary, evaluator, entry_point)
        _freeze(evaluator, 16, 40)

        await trigger.run_once()
        await asyncio.sleep(0)

        entry_point.assert_not_called()

    @pytest.mark.asyncio
    async def test_pre_check_fires_before_primary_window(self, evaluator):
        entry_point = AsyncMock(return_value=None)
        trigger = WindowTrigger("PreCheckTrigger", evaluator.pre_check, evaluator, entry_point)
        _freeze(evaluator, 16, 20)

        await trigger.run_once()
        await asyncio.sleep(0)

        entry_point.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tick_does_not_wait_for_entry_point(self, evaluator):
        release = asyncio.Event()

        async def slow_entry_point():
            await release.wait()

        trigger = WindowTrigger("PrimaryTrigger", evaluator.primary, evaluator, slow_entry_point)
        _freeze(evaluator, 16, 25)

        await trigger.run_once()
        await trigger.run_once()
        await asyncio.sleep(0)

        assert len(trigger._dispatched) == 2
        release.set()
        for _ in range(3):
            await asyncio.sleep(0)
        assert len(trigger._dispatched) == 0

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_dispatch(self, evaluator):
        async def hung_entry_point():
            await asyncio.Event().wait()

        trigger = WindowTrigger("PrimaryTrigger", evaluator.primary, evaluator, hung_entry_point)
        task = trigger.dispatch()
        await asyncio.sleep(0)

        await trigger.stop()

        assert task.cancelled()
        assert trigger.is_running is False


class TestWindowScheduler:
    @pytest.mark.asyncio
    async def test_start_runs_both_triggers(self, evaluator):
        scheduler = WindowScheduler(evaluator, AsyncMock())

        await scheduler.start()
        try:
            assert scheduler.is_running is True
            assert scheduler.primary.window == evaluator.primary
            assert scheduler.pre_check.window == evaluator.pre_check
        finally:
            await scheduler.stop()

        assert scheduler.is_running is False
        assert scheduler.primary is None
        assert scheduler.pre_check is None

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, evaluator):
        scheduler = WindowScheduler(evaluator, AsyncMock())

        await scheduler.stop()
        await scheduler.start()
        await scheduler.stop()
        await scheduler.stop()

        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_restart_replaces_triggers(self, evaluator):
        scheduler = WindowScheduler(evaluator, AsyncMock())

        await scheduler.start()
        first_primary = scheduler.primary
        await scheduler.start()
        try:
            assert scheduler.primary is not first_primary
            assert first_primary.is_running is False
        finally:
            await scheduler.stop()


class TestWindowTriggerInterval:
    @pytest.mark.asyncio
    async def test_sub_second_interval_keeps_ticking(self, evaluator):
        entry_point = AsyncMock(return_value=None)
        trigger = WindowTrigger("PrimaryTrigger", evaluator.primary, evaluator, entry_point, interval_seconds=0.05)
        _freeze(evaluator, 16, 25)

        trigger.start()
        try:
            for _ in range(50):
                if entry_point.await_count >= 2:
                    break
                await asyncio.sleep(0.02)
            assert trigger.is_running is True
        finally:
            await trigger.stop()

        assert entry_point.await_count >= 2

    def test_non_positive_interval_is_rejected(self, evaluator):
        with pytest.raises(ValueError):
            WindowTrigger("PrimaryTrigger", evaluator.primary, evaluator, AsyncMock(), interval_seconds=0)
