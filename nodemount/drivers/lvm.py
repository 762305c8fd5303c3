"""Logical volume activation"""

from typing import List, Optional

from nodemount.models.schemas import LVMDevice
from nodemount.utils.command import CommandRunner
from nodemount.utils.exceptions import ActivationFailure, CommandError
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)

LIST_VOLUMES_COMMAND = ['lvs', '--noheadings', '--separator', ' ']

# lv_attr, e.g. '-wi-a-----': the fifth character is the activation state
ACTIVE_ATTR_INDEX = 4
ACTIVE_ATTR = 'a'

ACCESS_MESSAGE = 'Client could not access storage'
RELEASE_MESSAGE = 'Client could not release storage'


class VolumeActivator:
    """
    Activates and deactivates the volume group holding a logical volume.

    Shared activation is used for clustered file systems: the volume group
    lockspace is started before activation and stopped after deactivation.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def set_active(self, lvm: LVMDevice, active: bool, shared: bool = False) -> None:
        """
        Move the logical volume to the requested activation state.

        Does nothing when the volume is already in that state.

        Raises:
            ActivationFailure: If listing, lock handling or (de)activation
                fails, or the VG/LV pair is not known to the volume manager
        """
        user_message = ACCESS_MESSAGE if active else RELEASE_MESSAGE

        try:
            output = self.runner.run(LIST_VOLUMES_COMMAND)
        except CommandError as e:
            raise ActivationFailure(str(e), user_message=user_message, output=e.output)

        if self.runner.mock:
            return

        is_active = self._find_activation(output, lvm)
        if is_active is None:
            message = (f"Could not find VG/LV pair {lvm.volume_group}/{lvm.logical_volume}: "
                       f"{output.strip()}")
            LOG.info(message)
            raise ActivationFailure(message)

        if active and not is_active:
            if shared:
                self._run(['vgchange', '--lockstart', lvm.volume_group], user_message)
                self._run(['vgchange', '--activate', 'sy', lvm.volume_group], user_message)
            else:
                self._run(['vgchange', '--activate', 'y', lvm.volume_group], user_message)
            LOG.info(f"Activated {lvm.volume_group}/{lvm.logical_volume} (shared={shared})")

        elif not active and is_active:
            self._run(['vgchange', '--activate', 'n', lvm.volume_group], user_message)
            if shared:
                self._run(['vgchange', '--lockstop', lvm.volume_group], user_message)
            LOG.info(f"Deactivated {lvm.volume_group}/{lvm.logical_volume} (shared={shared})")

        else:
            LOG.debug(f"{lvm.volume_group}/{lvm.logical_volume} already active={active}")

    def _find_activation(self, output: str, lvm: LVMDevice) -> Optional[bool]:
        """
        Parse the lvs listing. Example with headings:

          LV        VG        Attr       LSize
          lv0       vg0       -wi-------  46.59g

        Returns the activation state of the matching line, or None if no
        line matches.
        """
        for line in output.splitlines():
            fields = line.split()
            if len(fields) < 3:
                continue

            if fields[0] != lvm.logical_volume or fields[1] != lvm.volume_group:
                continue

            attrs = fields[2]
            if len(attrs) <= ACTIVE_ATTR_INDEX:
                raise ActivationFailure(
                    f"Unexpected lvs attribute field '{attrs}' for "
                    f"{lvm.volume_group}/{lvm.logical_volume}",
                    output=output,
                )

            return attrs[ACTIVE_ATTR_INDEX] == ACTIVE_ATTR

        return None

    def _run(self, cmd: List[str], user_message: str) -> None:
        try:
            self.runner.run(cmd)
        except CommandError as e:
            raise ActivationFailure(e.output or str(e), user_message=user_message, output=e.output)
