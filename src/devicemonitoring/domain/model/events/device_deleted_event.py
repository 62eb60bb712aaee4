from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class DeviceDeletedEvent:
    """
    Dashboard Event: a device was deregistered

    Envelope:
    {
        "type": "device_deleted",
        "deviceId": "D1",
        "id": 7,
        "timestamp": "2025-11-29T23:45:00"
    }
    """

    device_id: str
    id: Optional[int]
    occurred_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not self.device_id:
            raise ValueError("device_id cannot be empty")

    def to_message(self) -> dict:
        return {
            "type": "device_deleted",
            "deviceId": self.device_id,
            "id": self.id,
            "timestamp": self.occurred_at.isoformat()
        }
