"""
Node Mount Agent

Node-local agent that keeps a host's mounts in line with the client mount
resources declared for it. Each resource lists Lustre or LVM backed file
systems and whether they should be mounted; the agent mounts or unmounts
them, activates LVM volume groups (shared for clustered file systems), and
reports per-entry status back onto the resource.

Example:
    >>> from nodemount.server import build_reconciler
    >>> from nodemount.config import NodeMountConfig
    >>> from nodemount.models import initialize_database
    >>> from nodemount.utils import CommandRunner
    >>>
    >>> NodeMountConfig.load_config(config_type='client')
    >>> initialize_database(NodeMountConfig.DB_URL)
    >>> reconciler = build_reconciler(NodeMountConfig, CommandRunner(mock=True))
    >>> reconciler.reconcile('scratch', 'compute-01')
"""

from nodemount.models.schemas import (
    FINALIZER,
    ClientMount,
    ClientMountSpec,
    ClientMountStatus,
    DesiredState,
    LustreDevice,
    LVMDevice,
    MountSpec,
    MountStatus,
)
from nodemount.services import ReconcileResult, ReconciliationService

__version__ = '1.0.0'
__license__ = 'Apache 2.0'

__all__ = [
    # Resources
    'FINALIZER',
    'ClientMount',
    'ClientMountSpec',
    'ClientMountStatus',
    'DesiredState',
    'LustreDevice',
    'LVMDevice',
    'MountSpec',
    'MountStatus',

    # Reconciliation
    'ReconcileResult',
    'ReconciliationService',

    # Version
    '__version__',
]


def get_version():
    """Get the current version of the package."""
    return __version__
