import logging
from abc import ABC, abstractmethod


class BaseDeviceGateway(ABC):
    """
    One connection to one machine.

    The reset core only relies on this surface. Implementations own all
    protocol encoding and raise the device errors from `exception`:
    DeviceConnectionError, DeviceReadError, DeviceWriteError.
    """

    def __init__(self, device_id: str):
        self.device_id = device_id
        self.logger = logging.getLogger(f"Gateway.{self.device_id}")

    # ==================== Abstract methods ====================

    @abstractmethod
    async def connect(self) -> None:
        """Open the link; raise DeviceConnectionError on transport failure."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the link. Safe to call on a gateway that never connected."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def read_registers(self) -> list[int]:
        """Read the configured register block; raise DeviceReadError on failure."""
        pass

    @abstractmethod
    async def write_register(self, address: int, value: int) -> None:
        """Write a single holding register; raise DeviceWriteError on failure."""
        pass
