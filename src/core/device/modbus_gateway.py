import logging

from pymodbus.client import AsyncModbusTcpClient
from pymodbus.exceptions import ModbusException
from pymodbus.pdu.pdu import ModbusPDU

from core.device.base import BaseDeviceGateway
from core.schema.reset_config_schema import DeviceDescriptor
from exception import DeviceConnectionError, DeviceReadError, DeviceWriteError

logger = logging.getLogger("ModbusGateway")


class ModbusTcpGateway(BaseDeviceGateway):
    def __init__(
        self,
        descriptor: DeviceDescriptor,
        client: AsyncModbusTcpClient | None = None,
        timeout: float = 5.0,
    ):
        """
        Initialize ModbusTcpGateway.

        Args:
            descriptor: machine descriptor (host, port, unit id, register layout)
            client: pre-built pymodbus client, mainly for tests
            timeout: pymodbus client timeout (seconds)
        """
        super().__init__(descriptor.code)
        self.descriptor = descriptor
        self.unit_id = descriptor.unit_id
        self.client = client or AsyncModbusTcpClient(host=descriptor.host, port=descriptor.port, timeout=timeout)

    @property
    def is_connected(self) -> bool:
        return bool(self.client.connected)

    async def connect(self) -> None:
        target = f"{self.descriptor.host}:{self.descriptor.port}"
        try:
            is_ok: bool = await self.client.connect()
        except (ModbusException, OSError) as e:
            raise DeviceConnectionError(f"connect to {target} failed: {e}", self.device_id) from e

        if not is_ok:
            raise DeviceConnectionError(f"connect to {target} failed", self.device_id)
        logger.debug(f"[Gateway] {self.device_id} connected to {target}")

    async def disconnect(self) -> None:
        # pymodbus close() is sync and tolerates a never-opened transport
        self.client.close()
        logger.debug(f"[Gateway] {self.device_id} disconnected")

    async def read_registers(self) -> list[int]:
        layout = self.descriptor.registers
        try:
            resp: ModbusPDU = await self.client.read_holding_registers(
                address=layout.start_address, count=layout.length, slave=self.unit_id
            )
        except ModbusException as e:
            raise DeviceReadError(f"read failed: {e}", self.device_id) from e

        if resp.isError():
            raise DeviceReadError(f"Modbus error response: {resp}", self.device_id)

        regs = getattr(resp, "registers", None)
        if not isinstance(regs, list):
            raise DeviceReadError(f"response without registers: {resp}", self.device_id)
        return [int(r) for r in regs]

    async def write_register(self, address: int, value: int) -> None:
        try:
            resp: ModbusPDU = await self.client.write_register(address=address, value=int(value), slave=self.unit_id)
        except ModbusException as e:
            raise DeviceWriteError(f"write address={address} failed: {e}", self.device_id) from e

        if resp.isError():
            raise DeviceWriteError(f"Register write error: {resp}", self.device_id)
        logger.debug(f"[Gateway] {self.device_id} write success: address={address}, value={value}")
