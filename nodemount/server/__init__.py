"""Node mount agent package"""

from nodemount.server.mount_server import MountServer, build_reconciler

__all__ = ['MountServer', 'build_reconciler']
