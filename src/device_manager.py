import asyncio
import logging
from typing import Callable

from core.device.base import BaseDeviceGateway
from core.device.modbus_gateway import ModbusTcpGateway
from core.schema.reset_config_schema import DeviceDescriptor
from exception import DeviceError, DeviceNotFoundError

logger = logging.getLogger("DeviceManager")

GatewayFactory = Callable[[DeviceDescriptor], BaseDeviceGateway]


class AsyncDeviceManager:
    """
    DeviceManager is responsible for:
    - Holding the static machine registry (immutable for the process lifetime)
    - Building one gateway per machine
    - Connecting / disconnecting the whole fleet at startup and shutdown

    Note: reset bookkeeping is NOT managed here.
    That is owned by ResetWorker and ResetCoordinator.
    """

    def __init__(
        self,
        descriptor_list: list[DeviceDescriptor],
        gateway_factory: GatewayFactory | None = None,
        connect_settle_sec: float = 1.0,
    ):
        """
        Initialize AsyncDeviceManager.

        Args:
            descriptor_list: Machines from the reset service configuration
            gateway_factory: Builds a gateway per machine (default: Modbus/TCP)
            connect_settle_sec: Pause after a successful connect before the link is used
        """
        self._descriptor_dict: dict[str, DeviceDescriptor] = {d.code: d for d in descriptor_list}
        self._gateway_factory: GatewayFactory = gateway_factory or ModbusTcpGateway
        self._connect_settle_sec = float(connect_settle_sec)

        self.gateway_dict: dict[str, BaseDeviceGateway] = {
            code: self._gateway_factory(descriptor) for code, descriptor in self._descriptor_dict.items()
        }

    @property
    def descriptor_list(self) -> list[DeviceDescriptor]:
        return list(self._descriptor_dict.values())

    @property
    def device_ids(self) -> list[str]:
        return list(self._descriptor_dict.keys())

    def get_descriptor(self, device_id: str) -> DeviceDescriptor:
        descriptor = self._descriptor_dict.get(device_id)
        if descriptor is None:
            raise DeviceNotFoundError(f"Machine {device_id} not found", device_id)
        return descriptor

    def get_gateway(self, device_id: str) -> BaseDeviceGateway:
        gateway = self.gateway_dict.get(device_id)
        if gateway is None:
            raise DeviceNotFoundError(f"Machine {device_id} not found", device_id)
        return gateway

    async def connect_all(self) -> dict[str, bool]:
        """Connect every machine concurrently; failures are logged, not raised."""
        results = await asyncio.gather(*(self._connect_one(code) for code in self.gateway_dict))
        return dict(zip(self.gateway_dict.keys(), results))

    async def disconnect_all(self) -> None:
        for device_id, gateway in self.gateway_dict.items():
            if not gateway.is_connected:
                continue
            try:
                await gateway.disconnect()
                logger.info(f"Disconnected from PLC {device_id}")
            except Exception as e:
                logger.error(f"Error disconnecting from PLC {device_id}: {e}")

    async def _connect_one(self, device_id: str) -> bool:
        gateway = self.gateway_dict[device_id]
        if gateway.is_connected:
            return True
        try:
            await gateway.connect()
            await asyncio.sleep(self._connect_settle_sec)
            logger.info(f"Connected to PLC {device_id} for reset service")
            return True
        except DeviceError as e:
            logger.error(f"Failed to connect to PLC {device_id} for reset service: {e}")
            return False
