"""Resolve device descriptors to the string handed to mount"""

import os

from nodemount.drivers.lvm import VolumeActivator
from nodemount.models.schemas import Device, LustreDevice, LVMDevice
from nodemount.utils.exceptions import ResolutionFailure

DEFAULT_DEVICE_ROOT = '/dev'


class DeviceResolver:
    """Builds the mount source for each device variant."""

    def __init__(self, activator: VolumeActivator, device_root: str = DEFAULT_DEVICE_ROOT):
        self.activator = activator
        self.device_root = device_root

    def resolve(self, device: Device, shared: bool = False) -> str:
        """
        Get the device string for the mount command.

        LVM devices are activated first, with a shared lock when the file
        system is clustered.

        Raises:
            ActivationFailure: If the logical volume could not be activated
            ResolutionFailure: For device variants this agent cannot mount
        """
        if isinstance(device, LustreDevice):
            return f"{device.mgs_addresses}:/{device.file_system_name}"

        if isinstance(device, LVMDevice):
            self.activator.set_active(device, True, shared)
            return os.path.join(self.device_root, device.volume_group, device.logical_volume)

        raise ResolutionFailure(f"Invalid device type: {getattr(device, 'type', device)!r}")
