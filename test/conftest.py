import asyncio

import pytest

from core.device.base import BaseDeviceGateway
from core.schema.reset_config_schema import DeviceDescriptor, RegisterLayout, ResetScheduleConfig
from exception import DeviceConnectionError, DeviceReadError, DeviceWriteError


class FakeGateway(BaseDeviceGateway):
    """
    In-memory PLC link.

    Failure knobs count down per call (e.g. fail_reads=2 fails the next two reads);
    use a large number for "always fails".
    """

    def __init__(
        self,
        descriptor: DeviceDescriptor,
        counter: int = 1234,
        connected: bool = True,
    ):
        super().__init__(descriptor.code)
        self.layout: RegisterLayout = descriptor.registers
        self.registers: list[int] = [0] * self.layout.length
        self.registers[self.layout.counter_offset] = counter
        self._connected = connected

        self.fail_connects = 0
        self.fail_reads = 0
        self.fail_writes = 0
        self.ignore_writes = False
        self.short_read = False
        self.read_gate: asyncio.Event | None = None

        self.connect_calls = 0
        self.disconnect_calls = 0
        self.read_calls = 0
        self.write_calls: list[tuple[int, int]] = []

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connects > 0:
            self.fail_connects -= 1
            raise DeviceConnectionError("connection refused", self.device_id)
        self._connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False

    async def read_registers(self) -> list[int]:
        self.read_calls += 1
        if self.read_gate is not None:
            await self.read_gate.wait()
        if self.fail_reads > 0:
            self.fail_reads -= 1
            raise DeviceReadError("read timeout", self.device_id)
        if self.short_read:
            return self.registers[:1]
        return list(self.registers)

    async def write_register(self, address: int, value: int) -> None:
        self.write_calls.append((address, value))
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise DeviceWriteError("write rejected", self.device_id)
        if not self.ignore_writes:
            self.registers[address - self.layout.start_address] = value

    @property
    def counter(self) -> int:
        return self.registers[self.layout.counter_offset]


def build_descriptor(code: str = "45051", host: str = "10.42.46.1") -> DeviceDescriptor:
    return DeviceDescriptor(
        code=code,
        host=host,
        port=502,
        registers=RegisterLayout(start_address=45, length=3, counter_address=47),
    )


@pytest.fixture
def fake_gateway_cls():
    return FakeGateway


@pytest.fixture
def make_descriptor():
    return build_descriptor


@pytest.fixture
def schedule() -> ResetScheduleConfig:
    """16:24 Asia/Jakarta, 15 minute window, no real delays."""
    return ResetScheduleConfig(
        hour=16,
        minute=24,
        timezone="Asia/Jakarta",
        max_retries=5,
        retry_delay_ms=0,
        settle_delay_ms=0,
    )
