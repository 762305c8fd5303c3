"""Services package"""

from nodemount.services.mount_service import MountService
from nodemount.services.reconciliation import ReconcileResult, ReconciliationService
from nodemount.services.resource_store import ResourceStore

__all__ = ['MountService', 'ReconcileResult', 'ReconciliationService', 'ResourceStore']
