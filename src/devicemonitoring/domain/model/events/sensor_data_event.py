from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class SensorDataEvent:
    """
    Dashboard Event: a new reading arrived

    Emitted before the reading is persisted so the live chart does not
    wait on storage.

    Envelope:
    {
        "type": "sensor_data",
        "deviceId": "D1",
        "data": {"value": 123.0, "timestamp": "...", "rawData": "{...}"},
        "timestamp": "2025-11-29T23:45:00"
    }
    """

    device_id: str
    value: float
    recorded_at: datetime
    raw_payload: Optional[str] = None
    occurred_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not self.device_id:
            raise ValueError("device_id cannot be empty")

    def to_message(self) -> dict:
        return {
            "type": "sensor_data",
            "deviceId": self.device_id,
            "data": {
                "value": self.value,
                "timestamp": self.recorded_at.isoformat(),
                "rawData": self.raw_payload
            },
            "timestamp": self.occurred_at.isoformat()
        }
