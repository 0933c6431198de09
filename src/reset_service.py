"""
PLC Counter Reset Service

Wires the registry, one ResetWorker per machine, the ResetCoordinator and the
WindowScheduler into a start()/stop() lifecycle.
"""

import logging

from core.evaluator.reset_window_evaluator import ResetWindowEvaluator
from core.executor.reset_worker import ResetWorker
from core.handler.reset_coordinator import ResetCoordinator
from core.model.reset_state import CycleResult
from core.schema.reset_config_schema import ResetServiceConfig
from core.task.window_scheduler import TICK_INTERVAL_SEC, WindowScheduler
from device_manager import AsyncDeviceManager, GatewayFactory

logger = logging.getLogger("ResetService")


class PLCResetService:
    def __init__(
        self,
        config: ResetServiceConfig,
        gateway_factory: GatewayFactory | None = None,
        tick_interval_sec: float = TICK_INTERVAL_SEC,
    ):
        self.config = config
        schedule = config.reset_schedule

        self.device_manager = AsyncDeviceManager(
            config.machine_list,
            gateway_factory=gateway_factory,
            connect_settle_sec=config.connect_settle_ms / 1000.0,
        )
        self.window_evaluator = ResetWindowEvaluator(schedule)

        worker_dict: dict[str, ResetWorker] = {
            descriptor.code: ResetWorker(descriptor, self.device_manager.get_gateway(descriptor.code), schedule)
            for descriptor in self.device_manager.descriptor_list
        }
        self.coordinator = ResetCoordinator(worker_dict, self.window_evaluator)
        self.scheduler = WindowScheduler(
            self.window_evaluator, self.coordinator.maybe_run_daily_reset, interval_seconds=tick_interval_sec
        )
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            logger.warning("[ResetService] already started")
            return

        logger.info("Initializing Reset Service...")
        connected: dict[str, bool] = await self.device_manager.connect_all()
        online = sum(1 for ok in connected.values() if ok)
        logger.info(f"[ResetService] {online}/{len(connected)} machines connected")

        logger.info("Starting reset scheduler...")
        await self.scheduler.start()
        self._started = True
        logger.info("Reset Service initialized successfully")

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.device_manager.disconnect_all()
        if self._started:
            logger.info("Reset Service cleanup completed")
        self._started = False

    async def run_once(self) -> CycleResult | None:
        """Connect, force a single fleet cycle, and report the result (maintenance use)."""
        await self.device_manager.connect_all()
        return await self.coordinator.run_cycle()
