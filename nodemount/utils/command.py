"""Blocking OS command execution shared by the drivers"""

import subprocess
from typing import List

from nodemount.utils.exceptions import CommandError
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)

DEFAULT_TIMEOUT = 60


class CommandRunner:
    """
    Runs host commands and returns their standard output.

    In mock mode nothing is executed: the command is logged and an empty
    output is returned, so a node without storage can dry-run every pass.
    """

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, mock: bool = False):
        self.timeout = timeout
        self.mock = mock

    def run(self, cmd: List[str]) -> str:
        """
        Run command

        Args:
            cmd: Command as list of strings

        Returns:
            Standard output of the command

        Raises:
            CommandError: If the command exits non-zero, times out or
                cannot be started
        """
        if self.mock:
            LOG.info(f"Mock run: {' '.join(cmd)}")
            return ''

        LOG.debug(f"Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                encoding='utf-8',
                errors='replace',
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            raise CommandError(cmd, -1, f'Command timeout after {self.timeout} seconds')
        except OSError as e:
            raise CommandError(cmd, -1, str(e))

        if result.returncode != 0:
            output = '\n'.join(
                part.strip() for part in (result.stdout, result.stderr) if part and part.strip()
            )
            raise CommandError(cmd, result.returncode, output)

        return result.stdout
