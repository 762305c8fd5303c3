"""Mount drivers package"""

from nodemount.drivers.base import BaseMountDriver
from nodemount.drivers.device import DeviceResolver
from nodemount.drivers.lvm import VolumeActivator
from nodemount.drivers.mount import MountExecutor
from nodemount.drivers.probe import MountProber

__all__ = ['BaseMountDriver', 'DeviceResolver', 'VolumeActivator', 'MountExecutor', 'MountProber']
