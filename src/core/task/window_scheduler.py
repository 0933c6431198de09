import asyncio
import logging
from typing import Awaitable, Callable

from core.evaluator.reset_window_evaluator import ResetWindow, ResetWindowEvaluator
from core.task.async_job_base import AsyncRecurringJob
from core.util.time_util import sleep_until_next_tick

logger = logging.getLogger("WindowScheduler")

TICK_INTERVAL_SEC = 60.0

EntryPoint = Callable[[], Awaitable[object]]


class WindowTrigger(AsyncRecurringJob):
    """
    Minute-aligned timer that dispatches the entry point on every tick inside its window.

    Each dispatch runs as its own task so a long reset cycle never delays the next tick;
    overlapping dispatches are the entry point's guards' business.
    """

    def __init__(
        self,
        name: str,
        window: ResetWindow,
        evaluator: ResetWindowEvaluator,
        entry_point: EntryPoint,
        interval_seconds: float = TICK_INTERVAL_SEC,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        super().__init__(interval_seconds, name=name)
        self.window = window
        self._evaluator = evaluator
        self._entry_point = entry_point
        self._dispatched: set[asyncio.Task] = set()

    async def wait_next_tick(self) -> None:
        await sleep_until_next_tick(self._interval, self._evaluator.tz)

    async def run_once(self) -> None:
        local_now = self._evaluator.now()
        if not self.window.contains(local_now):
            return

        logger.debug(f"[{self.name}] tick {local_now.strftime('%H:%M:%S')} inside {self.window.describe()}")
        self.dispatch()

    def dispatch(self) -> asyncio.Task:
        task = asyncio.create_task(self._entry_point(), name=f"tick:{self.name}")
        self._dispatched.add(task)
        task.add_done_callback(self._on_dispatch_done)
        return task

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        self._dispatched.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[{self.name}] entry point raised: {exc!r}")

    async def stop(self) -> None:
        await super().stop()

        pending = list(self._dispatched)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._dispatched.clear()


class WindowScheduler:
    """
    Two redundant triggers (primary + pre_check) calling one idempotent entry point.
    The pre_check window overlaps both ends of the primary window to cover a stalled timer.
    """

    def __init__(
        self,
        evaluator: ResetWindowEvaluator,
        entry_point: EntryPoint,
        interval_seconds: float = TICK_INTERVAL_SEC,
    ):
        self._evaluator = evaluator
        self._entry_point = entry_point
        self._interval = interval_seconds
        self.primary: WindowTrigger | None = None
        self.pre_check: WindowTrigger | None = None

    @property
    def is_running(self) -> bool:
        return any(t is not None and t.is_running for t in (self.primary, self.pre_check))

    async def start(self) -> None:
        if self.primary or self.pre_check:
            await self.stop()

        self.primary = WindowTrigger(
            "PrimaryTrigger", self._evaluator.primary, self._evaluator, self._entry_point, self._interval
        )
        self.pre_check = WindowTrigger(
            "PreCheckTrigger", self._evaluator.pre_check, self._evaluator, self._entry_point, self._interval
        )
        self.primary.start()
        self.pre_check.start()

        logger.info(f"[Scheduler] Reset scheduler started: {self._evaluator.describe()}")

    async def stop(self) -> None:
        triggers = [t for t in (self.primary, self.pre_check) if t is not None]
        self.primary = None
        self.pre_check = None
        if not triggers:
            return

        await asyncio.gather(*(t.stop() for t in triggers))
        logger.info("[Scheduler] Reset scheduler stopped")
