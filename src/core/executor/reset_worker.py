import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable

from core.device.base import BaseDeviceGateway
from core.model.reset_state import ResetOutcome, ResetState
from core.schema.reset_config_schema import DeviceDescriptor, ResetScheduleConfig
from exception import (
    DeviceConnectionError,
    DeviceError,
    DeviceReadError,
    DeviceVerificationError,
    DeviceWriteError,
)

logger = logging.getLogger("ResetWorker")

COUNTER_RESET_VALUE = 0


class ResetWorker:
    """
    Read -> write 0 -> verify sequence for one machine, with a bounded constant-delay retry.

    Attempts for the same machine are strictly sequential. `reset_device()` never raises
    device errors: every failure is folded into ResetState and the returned ResetOutcome.
    """

    def __init__(
        self,
        descriptor: DeviceDescriptor,
        gateway: BaseDeviceGateway,
        schedule: ResetScheduleConfig,
        clock: Callable[[], datetime] | None = None,
    ):
        self.descriptor = descriptor
        self.gateway = gateway
        self.device_id: str = descriptor.code
        self.state = ResetState(device_id=descriptor.code)

        self._max_retries: int = schedule.max_retries
        self._retry_delay_sec: float = schedule.retry_delay_sec
        self._settle_delay_sec: float = schedule.settle_delay_sec
        self._io_timeout_sec: float | None = schedule.io_timeout_sec
        self._tz = schedule.tzinfo
        self._clock = clock or (lambda: datetime.now(self._tz))

        # serialize attempts for this machine across cycles and manual resets
        self._lock = asyncio.Lock()

    async def reset_device(self) -> ResetOutcome:
        async with self._lock:
            return await self._run_retry_loop()

    async def _run_retry_loop(self) -> ResetOutcome:
        attempts = 0
        try:
            while True:
                attempts += 1
                try:
                    await self._attempt_once()
                    return ResetOutcome(self.device_id, succeeded=True, attempts=attempts)
                except DeviceError as e:
                    error_msg = f"{e.__class__.__name__}: {e}"
                except Exception as e:
                    logger.exception(f"[{self.device_id}] Unexpected error during reset attempt: {e}")
                    error_msg = f"{e.__class__.__name__}: {e}"

                retry_count: int = self.state.mark_failure()
                logger.error(
                    f"[{self.device_id}] Reset attempt {retry_count}/{self._max_retries} failed "
                    f"at {self._clock().isoformat(timespec='seconds')}: {error_msg}"
                )

                if retry_count >= self._max_retries:
                    logger.error(f"[{self.device_id}] Max retry attempts reached, giving up for this cycle")
                    self.state.mark_exhausted()
                    return ResetOutcome(self.device_id, succeeded=False, attempts=attempts, error_msg=error_msg)

                logger.info(
                    f"[{self.device_id}] Scheduling retry in {self._retry_delay_sec}s (retry_count={retry_count})"
                )
                await asyncio.sleep(self._retry_delay_sec)
        except asyncio.CancelledError:
            logger.warning(f"[{self.device_id}] Reset cancelled after {attempts} attempt(s)")
            self.state.mark_interrupted()
            raise

    async def _attempt_once(self) -> None:
        layout = self.descriptor.registers

        if not self.gateway.is_connected:
            logger.info(f"[{self.device_id}] Reconnecting before reset...")
            await self._call(self.gateway.connect(), DeviceConnectionError, "connect")
            await asyncio.sleep(self._settle_delay_sec)

        data: list[int] = await self._call(self.gateway.read_registers(), DeviceReadError, "read")
        if not data or len(data) < layout.length:
            raise DeviceReadError(
                f"Invalid data read (got {len(data or [])} registers, expected {layout.length})", self.device_id
            )

        current_counter: int = data[layout.counter_offset]
        logger.info(f"[{self.device_id}] Current counter value: {current_counter}")

        await self._call(
            self.gateway.write_register(layout.counter_address, COUNTER_RESET_VALUE), DeviceWriteError, "write"
        )
        await asyncio.sleep(self._settle_delay_sec)

        verify_data: list[int] = await self._call(self.gateway.read_registers(), DeviceReadError, "verify read")
        if not verify_data or len(verify_data) <= layout.counter_offset:
            raise DeviceVerificationError("Verification read returned no counter", self.device_id)

        verified: int = verify_data[layout.counter_offset]
        if verified != COUNTER_RESET_VALUE:
            raise DeviceVerificationError(
                f"Counter reset verification failed (counter={verified})", self.device_id, value=verified
            )

        self.state.mark_success(self._clock())
        logger.info(f"[{self.device_id}] Successfully reset counter from {current_counter} to {COUNTER_RESET_VALUE}")

    async def _call(self, awaitable: Awaitable[Any], error_cls: type[DeviceError], op: str) -> Any:
        """Await a gateway call, bounded by io_timeout_sec when configured."""
        if self._io_timeout_sec is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self._io_timeout_sec)
        except asyncio.TimeoutError as e:
            raise error_cls(f"{op} timed out after {self._io_timeout_sec}s", self.device_id) from e
