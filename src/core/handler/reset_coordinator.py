import asyncio
import logging
from datetime import date, datetime

from core.evaluator.reset_window_evaluator import ResetWindowEvaluator
from core.executor.reset_worker import ResetWorker
from core.model.reset_state import CycleResult, FleetCycleState, ResetOutcome
from exception import DeviceNotFoundError

logger = logging.getLogger("ResetCoordinator")


class ResetCoordinator:
    """
    Owns the fleet-wide guards and fans one reset cycle out to every ResetWorker.

    Decision path for `maybe_run_daily_reset()` (no await between check and set):
      1. a cycle is already running          -> skip
      2. now is outside the primary window   -> skip
      3. the fleet was already reset today   -> skip
      4. mark the cycle in progress and run it

    `last_reset_date` only advances when every machine reports success, so a partial
    failure is retried on the next in-window tick.
    """

    def __init__(
        self,
        worker_dict: dict[str, ResetWorker],
        window_evaluator: ResetWindowEvaluator,
        fleet_state: FleetCycleState | None = None,
    ):
        self._worker_dict = worker_dict
        self._window = window_evaluator
        self._fleet_state = fleet_state or FleetCycleState()

    @property
    def fleet_state(self) -> FleetCycleState:
        return self._fleet_state

    @property
    def worker_dict(self) -> dict[str, ResetWorker]:
        return self._worker_dict

    # ---------- Public API ----------

    def should_perform_reset(self, now: datetime | None = None) -> bool:
        if self._fleet_state.reset_in_progress:
            logger.debug("[Reset] Reset operation already in progress")
            return False

        if not self._window.in_primary_window(now):
            return False

        if self._fleet_state.last_reset_date == self._window.today(now):
            logger.debug("[Reset] Already performed reset operations today")
            return False

        return True

    async def maybe_run_daily_reset(self, now: datetime | None = None) -> CycleResult | None:
        """Run one fleet cycle if the guards allow it; return None when the tick is skipped."""
        local_now: datetime = self._window.localize(now)
        if not self.should_perform_reset(local_now):
            return None

        self._fleet_state.reset_in_progress = True
        return await self._execute_cycle(local_now, forced=False)

    async def run_cycle(self, now: datetime | None = None) -> CycleResult | None:
        """
        Force one fleet cycle regardless of window and daily guard.
        Still refuses to overlap a running cycle.
        """
        local_now: datetime = self._window.localize(now)
        if self._fleet_state.reset_in_progress:
            logger.warning("[Reset] Forced cycle refused: reset operation already in progress")
            return None

        self._fleet_state.reset_in_progress = True
        return await self._execute_cycle(local_now, forced=True)

    async def reset_device(self, device_id: str) -> ResetOutcome:
        worker: ResetWorker | None = self._worker_dict.get(device_id)
        if worker is None:
            raise DeviceNotFoundError(f"Machine {device_id} not found", device_id)
        return await worker.reset_device()

    def status(self) -> dict:
        last_date: date | None = self._fleet_state.last_reset_date
        return {
            "reset_in_progress": self._fleet_state.reset_in_progress,
            "last_reset_date": last_date.isoformat() if last_date else None,
            "devices": {
                device_id: {
                    "last_attempt_at": (
                        worker.state.last_attempt_at.isoformat() if worker.state.last_attempt_at else None
                    ),
                    "retry_count": worker.state.retry_count,
                    "last_reset_succeeded": worker.state.last_reset_succeeded,
                }
                for device_id, worker in self._worker_dict.items()
            },
        }

    # ---------- Private helpers ----------

    async def _execute_cycle(self, local_now: datetime, forced: bool) -> CycleResult | None:
        cycle_date: date = local_now.date()
        try:
            label = "forced" if forced else "daily"
            logger.info(
                f"[Reset] Initiating {label} PLC counter reset at {local_now.strftime('%Y-%m-%d %H:%M:%S')} "
                f"({len(self._worker_dict)} machines)"
            )

            outcome_list: list[ResetOutcome] = await asyncio.gather(
                *(worker.reset_device() for worker in self._worker_dict.values())
            )
            result = CycleResult(cycle_date=cycle_date, forced=forced, outcome_list=list(outcome_list))

            if result.all_succeeded:
                self._fleet_state.last_reset_date = cycle_date
                logger.info("[Reset] Daily reset operation completed successfully for all machines")
            else:
                logger.warning(
                    f"[Reset] Daily reset operation completed with failures: {result.failed_device_ids}; "
                    f"will retry on the next tick inside the window"
                )
            return result

        except Exception as e:
            logger.exception(f"[Reset] Error during daily reset operation: {e}")
            return None

        finally:
            self._fleet_state.reset_in_progress = False
