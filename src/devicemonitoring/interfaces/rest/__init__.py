from .device_controller import DeviceController
from .reading_controller import ReadingController
from .cleanup_controller import CleanupController

__all__ = ['DeviceController', 'ReadingController', 'CleanupController']
