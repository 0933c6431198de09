"""PLC Counter Reset Service Exception Definitions"""


class ResetServiceError(Exception):
    """Base exception for the reset service"""

    pass


class DeviceError(ResetServiceError):
    """Base class for device-related exceptions"""

    def __init__(self, message: str, device_id: str | None = None):
        super().__init__(message)
        self.device_id = device_id


class DeviceNotFoundError(DeviceError):
    """Device code not present in the registry"""

    pass


class DeviceConnectionError(DeviceError):
    """Device unreachable or handshake failed"""

    pass


class DeviceReadError(DeviceError):
    """Register read failed, or the response was malformed or short"""

    pass


class DeviceWriteError(DeviceError):
    """Register write rejected or unconfirmed"""

    pass


class DeviceVerificationError(DeviceError):
    """Counter did not read back as zero after the reset write"""

    def __init__(self, message: str, device_id: str | None = None, value: int | None = None):
        super().__init__(message, device_id)
        self.value = value


class DeviceConfigError(DeviceError):
    """Device configuration error"""

    pass
