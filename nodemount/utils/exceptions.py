"""Custom exceptions for nodemount"""

from typing import List, Optional


class NodeMountException(Exception):
    """Base exception for nodemount"""
    pass


class ResourceError(NodeMountException):
    """
    Failure of a single mount entry.

    Carries an optional user-facing message and a fatal flag that end up in
    the resource status, plus the captured command output when an OS command
    was involved.
    """

    def __init__(self, message: str, user_message: Optional[str] = None,
                 fatal: bool = False, output: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.user_message = user_message
        self.fatal = fatal
        self.output = output

    def __str__(self):
        if self.user_message:
            return f"{self.user_message}: {self.message}"
        return self.message


class ProbeFailure(ResourceError):
    """Exception raised when the mount table could not be queried"""
    pass


class ActivationFailure(ResourceError):
    """Exception raised when a volume manager operation fails"""

    def __init__(self, message: str, user_message: Optional[str] = None,
                 fatal: bool = True, output: Optional[str] = None):
        super().__init__(message, user_message=user_message, fatal=fatal, output=output)


class ResolutionFailure(ResourceError):
    """Exception raised for device descriptors that cannot be resolved"""
    pass


class MountOperationFailure(ResourceError):
    """Exception raised when a mount or umount command fails"""
    pass


class TargetCreationFailure(ResourceError):
    """Exception raised when the mount target could not be created"""
    pass


class CleanupFailure(ResourceError):
    """Exception raised when the mount target could not be removed"""
    pass


class CommandError(NodeMountException):
    """Exception raised when an OS command exits non-zero or cannot run"""

    def __init__(self, cmd: List[str], returncode: int, output: str = ''):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"Command '{' '.join(cmd)}' failed with exit code {returncode}: {output}"
        )


class ConfigurationException(NodeMountException):
    """Exception raised for configuration errors"""
    pass


class ValidationException(NodeMountException):
    """Exception raised when a resource document is malformed"""
    pass


class DatabaseException(NodeMountException):
    """Exception raised for database errors"""
    pass


class MessagingException(NodeMountException):
    """Exception raised for messaging errors"""
    pass


class ResourceNotFoundException(NodeMountException):
    """Exception raised when a client mount resource is not found"""
    pass


class ConflictException(NodeMountException):
    """Exception raised when a compare-and-write finds a newer version"""
    pass
