"""Mount executor for Lustre and LVM backed file systems"""

import os
from typing import Iterable, List

from nodemount.drivers.base import BaseMountDriver
from nodemount.drivers.device import DeviceResolver
from nodemount.drivers.lvm import VolumeActivator
from nodemount.drivers.probe import MountProber
from nodemount.models.schemas import LVMDevice, MountSpec, TargetType
from nodemount.utils.command import CommandRunner
from nodemount.utils.exceptions import (
    ActivationFailure, CleanupFailure, CommandError, MountOperationFailure,
    TargetCreationFailure
)
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)

DEFAULT_CLUSTERED_FS_TYPES = ('gfs2',)


class MountExecutor(BaseMountDriver):
    """Mounts and unmounts single entries, skipping work already done."""

    def __init__(self, runner: CommandRunner, prober: MountProber,
                 resolver: DeviceResolver, activator: VolumeActivator,
                 clustered_fs_types: Iterable[str] = DEFAULT_CLUSTERED_FS_TYPES):
        self.runner = runner
        self.prober = prober
        self.resolver = resolver
        self.activator = activator
        self.clustered_fs_types = tuple(clustered_fs_types)

    def is_mounted(self, mount_path: str) -> bool:
        return self.prober.is_mounted(mount_path)

    def is_shared(self, spec: MountSpec) -> bool:
        """Clustered file systems need the volume group activated in shared mode"""
        return spec.fs_type in self.clustered_fs_types

    def mount(self, spec: MountSpec) -> None:
        """
        Mount one entry.

        Steps: probe, resolve the device (activating LVM volumes), create the
        mount target, run mount. The first failing step ends the attempt.
        """
        if self.is_mounted(spec.mount_path):
            LOG.info(f"Already mounted: {spec.mount_path}")
            return

        device = self.resolver.resolve(spec.device, shared=self.is_shared(spec))

        self._create_target(spec, device)

        cmd = self.build_mount_command(spec, device)
        try:
            self.runner.run(cmd)
        except CommandError as e:
            LOG.info(f"Could not mount file system at {spec.mount_path} "
                     f"from {device}: {e.output}")
            raise MountOperationFailure(str(e), output=e.output)

        LOG.info(f"Mounted file system {device} at {spec.mount_path}")

    def unmount(self, spec: MountSpec) -> None:
        """
        Unmount one entry.

        LVM volumes are deactivated even if nothing was mounted. Removing
        the mount target afterwards is best effort.
        """
        if self.is_mounted(spec.mount_path):
            try:
                self.runner.run(['umount', spec.mount_path])
            except CommandError as e:
                LOG.info(f"Could not unmount file system at {spec.mount_path}: {e.output}")
                raise MountOperationFailure(str(e), output=e.output)

        if isinstance(spec.device, LVMDevice):
            try:
                self.activator.set_active(spec.device, False, self.is_shared(spec))
            except ActivationFailure as e:
                LOG.error(f"Could not deactivate LVM volume for {spec.mount_path}: {e}")
                raise

        try:
            self._remove_target(spec.mount_path)
        except CleanupFailure as e:
            LOG.warning(f"Unable to remove mount target {spec.mount_path}: {e}")

        LOG.info(f"Unmounted file system at {spec.mount_path}")

    @staticmethod
    def build_mount_command(spec: MountSpec, device: str) -> List[str]:
        cmd = ['mount', '-t', spec.fs_type, device, spec.mount_path]
        if spec.options:
            cmd.extend(['-o', spec.options])
        return cmd

    def _create_target(self, spec: MountSpec, device: str) -> None:
        """Create the mount directory, or the parent directory and an empty file"""
        path = spec.mount_path
        if self.runner.mock:
            LOG.info(f"Mock create {spec.target_type.value} target: {path}")
            return

        try:
            if spec.target_type == TargetType.DIRECTORY:
                os.makedirs(path, mode=0o755, exist_ok=True)
            else:
                os.makedirs(os.path.dirname(path), mode=0o755, exist_ok=True)
                with open(path, 'a'):
                    pass
        except OSError as e:
            LOG.error(f"Could not create mount target {path} for {device}: {e}")
            raise TargetCreationFailure(f"Could not create mount target {path}: {e}")

    def _remove_target(self, path: str) -> None:
        if self.runner.mock:
            LOG.info(f"Mock remove target: {path}")
            return

        if not os.path.lexists(path):
            return

        try:
            if os.path.isdir(path) and not os.path.islink(path):
                os.rmdir(path)
            else:
                os.remove(path)
        except OSError as e:
            raise CleanupFailure(str(e))
