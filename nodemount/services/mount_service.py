"""Mount service - applies a desired state to every entry of a resource"""

from typing import List, Optional, Sequence, Tuple

from nodemount.drivers.base import BaseMountDriver
from nodemount.models.schemas import DesiredState, MountSpec, MountStatus
from nodemount.utils.exceptions import ResourceError
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)


class MountService:
    """Runs the mount driver over a list of entries with per-entry isolation"""

    def __init__(self, driver: BaseMountDriver):
        self.driver = driver

    def apply(self, mounts: Sequence[MountSpec],
              desired_state: DesiredState) -> Tuple[List[MountStatus], Optional[ResourceError]]:
        """
        Mount or unmount every entry.

        A failing entry does not stop the others. Returns one status per
        entry, index aligned with mounts, and the first error encountered.
        """
        operation = self.driver.mount if desired_state == DesiredState.MOUNTED else self.driver.unmount

        statuses = []
        first_error = None
        for spec in mounts:
            try:
                operation(spec)
            except ResourceError as e:
                LOG.info(f"{desired_state.value} failed for {spec.mount_path}: {e}")
                first_error = first_error or e
                statuses.append(MountStatus(
                    state=desired_state,
                    ready=False,
                    message=e.user_message or e.message,
                ))
            else:
                statuses.append(MountStatus(state=desired_state, ready=True))

        return statuses, first_error

    def mount_all(self, mounts: Sequence[MountSpec]):
        return self.apply(mounts, DesiredState.MOUNTED)

    def unmount_all(self, mounts: Sequence[MountSpec]):
        return self.apply(mounts, DesiredState.UNMOUNTED)
