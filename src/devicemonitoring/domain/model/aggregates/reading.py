from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Reading:
    """
    Reading Aggregate - one ingested sensor sample

    Append-only: readings are never updated, only removed in bulk by
    retention cleanup.
    """
    device_id: str
    value: float
    raw_payload: str
    timestamp: datetime
    id: Optional[int] = None

    def __post_init__(self):
        """Validations after initialization"""
        if not self.device_id:
            raise ValueError("device_id cannot be empty")

        if self.raw_payload is None:
            raise ValueError("raw_payload cannot be None")

        self.value = float(self.value)

    @staticmethod
    def record(device_id: str, value: float, raw_payload: str,
               timestamp: Optional[datetime] = None) -> 'Reading':
        """
        Factory method: Creates a Reading stamped with the server time
        unless an explicit timestamp is provided
        """
        return Reading(
            device_id=device_id,
            value=value,
            raw_payload=raw_payload,
            timestamp=timestamp or datetime.now()
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'deviceId': self.device_id,
            'timestamp': self.timestamp.isoformat(),
            'value': self.value,
            'rawData': self.raw_payload
        }

    def __repr__(self) -> str:
        return (
            f"Reading(device_id='{self.device_id}', value={self.value}, "
            f"timestamp='{self.timestamp.isoformat()}')"
        )
