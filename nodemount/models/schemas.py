"""Client mount resource schemas"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from nodemount.utils.exceptions import ValidationException
from nodemount.utils.validators import validate_mount_path, validate_volume_name

FINALIZER = 'nodemount.io/client-mount'


class DesiredState(str, Enum):
    MOUNTED = 'mounted'
    UNMOUNTED = 'unmounted'


class TargetType(str, Enum):
    FILE = 'file'
    DIRECTORY = 'directory'


@dataclass(frozen=True)
class LustreDevice:
    """Lustre file system reachable through its MGS nodes"""
    mgs_addresses: str
    file_system_name: str

    TYPE = 'lustre'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.TYPE,
            'lustre': {
                'mgs_addresses': self.mgs_addresses,
                'file_system_name': self.file_system_name,
            },
        }


@dataclass(frozen=True)
class LVMDevice:
    """Logical volume inside a volume group"""
    volume_group: str
    logical_volume: str

    TYPE = 'lvm'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.TYPE,
            'lvm': {
                'volume_group': self.volume_group,
                'logical_volume': self.logical_volume,
            },
        }


@dataclass(frozen=True)
class UnknownDevice:
    """Device with a tag this agent does not understand"""
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type}


Device = Union[LustreDevice, LVMDevice, UnknownDevice]


def device_from_dict(data: Dict[str, Any]) -> Device:
    """Build the device variant named by the 'type' tag"""
    if not isinstance(data, dict):
        raise ValidationException(f"Device must be a mapping, got {type(data).__name__}")

    device_type = str(data.get('type', '')).lower()
    try:
        if device_type == LustreDevice.TYPE:
            lustre = data['lustre']
            return LustreDevice(
                mgs_addresses=lustre['mgs_addresses'],
                file_system_name=lustre['file_system_name'],
            )
        if device_type == LVMDevice.TYPE:
            lvm = data['lvm']
            device = LVMDevice(
                volume_group=lvm['volume_group'],
                logical_volume=lvm['logical_volume'],
            )
            for volume_name in (device.volume_group, device.logical_volume):
                if not validate_volume_name(volume_name):
                    raise ValidationException(f"Invalid LVM name: {volume_name!r}")
            return device
    except (KeyError, TypeError) as e:
        raise ValidationException(f"Incomplete {device_type} device: missing {e}")

    return UnknownDevice(type=device_type)


@dataclass(frozen=True)
class MountSpec:
    """One desired mount point"""
    mount_path: str
    target_type: TargetType
    fs_type: str
    device: Device
    options: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mount_path': self.mount_path,
            'target_type': self.target_type.value,
            'fs_type': self.fs_type,
            'options': self.options,
            'device': self.device.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MountSpec':
        if not isinstance(data, dict):
            raise ValidationException(f"Mount entry must be a mapping, got {type(data).__name__}")

        try:
            mount_path = data['mount_path']
            fs_type = data['fs_type']
            device = data['device']
        except KeyError as e:
            raise ValidationException(f"Mount entry missing required field {e}")

        if not validate_mount_path(mount_path):
            raise ValidationException(f"Invalid mount path: {mount_path}")

        try:
            target_type = TargetType(str(data.get('target_type', TargetType.DIRECTORY.value)).lower())
        except ValueError:
            raise ValidationException(f"Invalid target type: {data.get('target_type')}")

        return cls(
            mount_path=mount_path,
            target_type=target_type,
            fs_type=fs_type,
            device=device_from_dict(device),
            options=data.get('options') or '',
        )


@dataclass(frozen=True)
class MountStatus:
    """Outcome of the most recent attempt for one mount entry"""
    state: Optional[DesiredState] = None
    ready: bool = False
    message: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value if self.state else None,
            'ready': self.ready,
            'message': self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MountStatus':
        state = data.get('state')
        return cls(
            state=DesiredState(state) if state else None,
            ready=bool(data.get('ready', False)),
            message=data.get('message') or '',
        )


@dataclass(frozen=True)
class StatusError:
    """Resource level error reported back to the control plane"""
    message: str
    user_message: Optional[str] = None
    fatal: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'message': self.message,
            'user_message': self.user_message,
            'fatal': self.fatal,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['StatusError']:
        if not data:
            return None
        return cls(
            message=data.get('message', ''),
            user_message=data.get('user_message'),
            fatal=bool(data.get('fatal', False)),
        )


@dataclass(frozen=True)
class ClientMountSpec:
    desired_state: DesiredState
    mounts: Tuple[MountSpec, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'desired_state': self.desired_state.value,
            'mounts': [m.to_dict() for m in self.mounts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClientMountSpec':
        if not isinstance(data, dict):
            raise ValidationException(f"Spec must be a mapping, got {type(data).__name__}")

        try:
            desired_state = DesiredState(str(data['desired_state']).lower())
        except KeyError:
            raise ValidationException("Spec missing required field 'desired_state'")
        except ValueError:
            raise ValidationException(f"Invalid desired state: {data['desired_state']}")

        mounts = data.get('mounts') or []
        if not isinstance(mounts, list):
            raise ValidationException("Spec field 'mounts' must be a list")

        return cls(
            desired_state=desired_state,
            mounts=tuple(MountSpec.from_dict(m) for m in mounts),
        )


@dataclass(frozen=True)
class ClientMountStatus:
    mounts: Tuple[MountStatus, ...] = ()
    error: Optional[StatusError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mounts': [m.to_dict() for m in self.mounts],
            'error': self.error.to_dict() if self.error else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ClientMountStatus':
        data = data or {}
        return cls(
            mounts=tuple(MountStatus.from_dict(m) for m in data.get('mounts') or []),
            error=StatusError.from_dict(data.get('error')),
        )


@dataclass(frozen=True)
class ClientMount:
    """Desired mount state for one node, with the status reported for it"""
    name: str
    node: str
    spec: ClientMountSpec
    status: ClientMountStatus = field(default_factory=ClientMountStatus)
    finalizers: Tuple[str, ...] = ()
    deletion_requested: bool = False
    version: int = 0

    def has_finalizer(self, finalizer: str = FINALIZER) -> bool:
        return finalizer in self.finalizers

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'node': self.node,
            'spec': self.spec.to_dict(),
            'status': self.status.to_dict(),
            'finalizers': list(self.finalizers),
            'deletion_requested': self.deletion_requested,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClientMount':
        if not isinstance(data, dict):
            raise ValidationException(f"Resource must be a mapping, got {type(data).__name__}")

        try:
            name = data['name']
            node = data['node']
            spec = data['spec']
        except KeyError as e:
            raise ValidationException(f"Resource missing required field {e}")

        return cls(
            name=name,
            node=node,
            spec=ClientMountSpec.from_dict(spec),
            status=ClientMountStatus.from_dict(data.get('status')),
            finalizers=tuple(data.get('finalizers') or ()),
            deletion_requested=bool(data.get('deletion_requested', False)),
            version=int(data.get('version', 0)),
        )
