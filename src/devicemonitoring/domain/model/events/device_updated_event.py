from dataclasses import dataclass, field
from datetime import datetime

from src.devicemonitoring.domain.model.aggregates import Device


@dataclass
class DeviceUpdatedEvent:
    """
    Dashboard Event: a device record changed

    Emitted after every status transition and every administrative
    create/update.

    Envelope:
    {
        "type": "device_update",
        "data": {...device record...},
        "timestamp": "2025-11-29T23:45:00"
    }
    """

    device: Device
    occurred_at: datetime = field(default_factory=datetime.now)

    def to_message(self) -> dict:
        return {
            "type": "device_update",
            "data": self.device.to_dict(),
            "timestamp": self.occurred_at.isoformat()
        }

    def __repr__(self) -> str:
        return (
            f"DeviceUpdatedEvent(device_id='{self.device.device_id}', "
            f"status='{self.device.status.value}')"
        )
