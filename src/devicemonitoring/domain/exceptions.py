class DeviceNotFoundError(LookupError):
    """Raised when a device id does not match any registered device"""

    def __init__(self, device_id):
        super().__init__(f"Device not found: {device_id}")
        self.device_id = device_id


class DuplicateDeviceError(ValueError):
    """Raised when registering a deviceId that already exists"""

    def __init__(self, device_id: str):
        super().__init__(f"Device with deviceId '{device_id}' already exists")
        self.device_id = device_id


class ReadingNotStoredError(RuntimeError):
    """Raised on the ingestion path when the reading could not be persisted"""
