"""Resource and database models package"""

from nodemount.models.schemas import (
    FINALIZER,
    ClientMount,
    ClientMountSpec,
    ClientMountStatus,
    DesiredState,
    Device,
    LustreDevice,
    LVMDevice,
    MountSpec,
    MountStatus,
    StatusError,
    TargetType,
    UnknownDevice,
)
from nodemount.models.database import (
    ClientMountRecord,
    Base,
    close_database,
    get_session,
    session_scope,
    initialize_database
)

__all__ = [
    'FINALIZER',
    'ClientMount',
    'ClientMountSpec',
    'ClientMountStatus',
    'DesiredState',
    'Device',
    'LustreDevice',
    'LVMDevice',
    'MountSpec',
    'MountStatus',
    'StatusError',
    'TargetType',
    'UnknownDevice',
    'ClientMountRecord',
    'Base',
    'close_database',
    'get_session',
    'session_scope',
    'initialize_database'
]
