from .device import Device, DeviceStatus, BrokerProtocol
from .reading import Reading

__all__ = ['Device', 'DeviceStatus', 'BrokerProtocol', 'Reading']
