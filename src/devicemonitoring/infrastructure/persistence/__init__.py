from .device_repository import DeviceRepository, DeviceModel
from .reading_repository import ReadingRepository, ReadingModel

__all__ = [
    'DeviceRepository',
    'DeviceModel',
    'ReadingRepository',
    'ReadingModel'
]
