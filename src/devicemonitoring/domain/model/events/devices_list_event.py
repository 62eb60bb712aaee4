from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from src.devicemonitoring.domain.model.aggregates import Device


@dataclass
class DevicesListEvent:
    """
    Dashboard Event: full device snapshot

    Sent once to each newly connected dashboard session.

    Envelope:
    {
        "type": "devices_list",
        "data": [{...device record...}],
        "timestamp": "2025-11-29T23:45:00"
    }
    """

    devices: List[Device]
    occurred_at: datetime = field(default_factory=datetime.now)

    def to_message(self) -> dict:
        return {
            "type": "devices_list",
            "data": [device.to_dict() for device in self.devices],
            "timestamp": self.occurred_at.isoformat()
        }
