"""Base mount driver interface"""

from abc import ABC, abstractmethod

from nodemount.models.schemas import MountSpec


class BaseMountDriver(ABC):
    """Abstract base class for mount drivers"""

    @abstractmethod
    def mount(self, spec: MountSpec) -> None:
        """
        Bring the mount entry into the mounted state.

        Args:
            spec: Desired mount entry

        Raises:
            ResourceError: If any step fails
        """
        pass

    @abstractmethod
    def unmount(self, spec: MountSpec) -> None:
        """
        Bring the mount entry into the unmounted state.

        Args:
            spec: Desired mount entry

        Raises:
            ResourceError: If the unmount or the device release fails
        """
        pass

    @abstractmethod
    def is_mounted(self, mount_path: str) -> bool:
        """
        Check if path is currently mounted.

        Args:
            mount_path: Path to check

        Returns:
            True if mounted, False otherwise
        """
        pass
