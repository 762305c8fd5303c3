"""Mount table inspection"""

from nodemount.utils.command import CommandRunner
from nodemount.utils.exceptions import CommandError, ProbeFailure
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)

MOUNT_TABLE_COMMAND = ['mount']


class MountProber:
    """Answers whether a path is a mount target in the live mount table."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_mounted(self, mount_path: str) -> bool:
        """
        Check the mount table for mount_path.

        Lines look like '<device> on <target> type <fstype> (<options>)', so
        the target is the third whitespace-separated field.

        Raises:
            ProbeFailure: If the mount table could not be read
        """
        try:
            output = self.runner.run(MOUNT_TABLE_COMMAND)
        except CommandError as e:
            raise ProbeFailure(str(e), output=e.output)

        for line in output.splitlines():
            fields = line.split()
            if len(fields) >= 3 and fields[2] == mount_path:
                return True

        return False
