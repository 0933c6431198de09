import asyncio
import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class AsyncRecurringJob(ABC):
    """
    Base class for recurring asynchronous background jobs.

    Subclasses must implement `run_once()`, which will be executed
    every interval. Task lifecycle, exception management, and
    cooperative cancellation are all provided by this base class.
    Subclasses may override `wait_next_tick()` to align ticks to the wall clock.
    """

    def __init__(self, interval_seconds: float, name: str | None = None):
        """
        Args:
            interval_seconds: Time between each execution of `run_once()`.
            name: Label used in logs and as the asyncio task name.
        """
        self._interval = float(interval_seconds)
        self._name = name or self.__class__.__name__
        self._task: asyncio.Task | None = None
        self._stopping: bool = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ----------------------------------------------------------------------
    # Required implementation in subclasses
    # ----------------------------------------------------------------------
    @abstractmethod
    async def run_once(self) -> None:
        """
        The operation that should be executed once per loop.
        Subclasses must implement this method.
        """
        ...

    async def wait_next_tick(self) -> None:
        """Sleep until the next iteration; fixed interval by default."""
        await asyncio.sleep(self._interval)

    # ----------------------------------------------------------------------
    # Internal background loop
    # ----------------------------------------------------------------------
    async def _loop(self) -> None:
        """Internal loop executed inside the background task."""
        logger.info(f"[{self._name}] loop started (interval={self._interval}s)")

        while not self._stopping:
            try:
                await self.wait_next_tick()
            except asyncio.CancelledError:
                break

            if self._stopping:
                break

            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info(f"[{self._name}] task cancelled")
                break
            except Exception as e:
                logger.exception(f"[{self._name}] exception in run_once: {e}")

        logger.info(f"[{self._name}] loop stopped")

    # ----------------------------------------------------------------------
    # Public API: start & stop
    # ----------------------------------------------------------------------
    def start(self) -> asyncio.Task:
        """
        Start the recurring job in the background.

        Returns:
            asyncio.Task: The background task handle.
        """
        if self.is_running:
            logger.warning(f"[{self._name}] already running")
            return self._task

        self._stopping = False
        self._task = asyncio.create_task(self._loop(), name=f"job:{self._name}")
        return self._task

    async def stop(self) -> None:
        """
        Stop the background job and wait for the task to finish.
        Safe to call even if the job is not running.
        """
        self._stopping = True

        if not self._task:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
