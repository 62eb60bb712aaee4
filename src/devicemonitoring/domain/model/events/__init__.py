from .devices_list_event import DevicesListEvent
from .device_updated_event import DeviceUpdatedEvent
from .device_deleted_event import DeviceDeletedEvent
from .sensor_data_event import SensorDataEvent

__all__ = [
    'DevicesListEvent',
    'DeviceUpdatedEvent',
    'DeviceDeletedEvent',
    'SensorDataEvent'
]
